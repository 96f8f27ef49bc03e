"""URL routes for the orders app (v1)."""

from django.urls import path

from .views import (
    OrderDetailView,
    OrderItemDetailView,
    OrderItemListCreateView,
    OrderListCreateView,
    OrderServiceDetailView,
    OrderServiceListCreateView,
)

app_name = "orders"

urlpatterns = [
    path("", OrderListCreateView.as_view(), name="order-list"),
    path("<int:order_id>/", OrderDetailView.as_view(), name="order-detail"),
    path("<int:order_id>/items/", OrderItemListCreateView.as_view(), name="order-item-list"),
    path("items/<int:item_id>/", OrderItemDetailView.as_view(), name="order-item-detail"),
    path("<int:order_id>/services/", OrderServiceListCreateView.as_view(), name="order-service-list"),
    path("services/<int:line_id>/", OrderServiceDetailView.as_view(), name="order-service-detail"),
]
