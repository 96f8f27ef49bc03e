"""URL routes for the catalog app."""

from django.urls import path

from .views import ProductDetailView, ProductListCreateView, WarehouseDetailView, WarehouseListCreateView

app_name = "catalog"

urlpatterns = [
    path("products/", ProductListCreateView.as_view(), name="product-list"),
    path("products/<int:product_id>/", ProductDetailView.as_view(), name="product-detail"),
    path("warehouses/", WarehouseListCreateView.as_view(), name="warehouse-list"),
    path("warehouses/<int:warehouse_id>/", WarehouseDetailView.as_view(), name="warehouse-detail"),
]
