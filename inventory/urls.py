from django.urls import path

from .views import ProductMovementListView

app_name = "inventory"

urlpatterns = [
    path("products/<int:product_id>/movements/", ProductMovementListView.as_view(), name="product-movements"),
]

# EOF
