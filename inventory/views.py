"""Inventory read endpoints: the per-product stock movement ledger."""

from catalog.selectors import get_product
from common.pagination import ProjectPagination
from common.throttling import ReadWriteThrottleMixin
from django.http import Http404
from drf_spectacular.types import OpenApiTypes
from drf_spectacular.utils import OpenApiExample, OpenApiParameter, extend_schema
from projects.access import require_project_access
from rest_framework import generics
from rest_framework.permissions import IsAuthenticated

from . import selectors
from .serializers import MovementQuerySerializer, StockMovementSerializer


class ProductMovementListView(ReadWriteThrottleMixin, generics.ListAPIView):
    permission_classes = [IsAuthenticated]
    serializer_class = StockMovementSerializer
    pagination_class = ProjectPagination
    read_throttle_scope = "inventory"
    write_throttle_scope = "inventory"

    @extend_schema(
        tags=["Inventory"],
        summary="List stock movements of a product",
        description=(
            "Ledger entries of one product across its warehouses, newest first. "
            "Pass `created_at` (YYYY-MM-DD) to limit the list to one day."
        ),
        parameters=[
            OpenApiParameter("project_id", OpenApiTypes.INT, required=True, description="Project id"),
            OpenApiParameter("created_at", OpenApiTypes.DATE, description="Calendar day filter"),
            OpenApiParameter("page", OpenApiTypes.INT, description="Page number"),
            OpenApiParameter("limit", OpenApiTypes.INT, description="Items per page"),
        ],
        examples=[
            OpenApiExample(
                "Movements",
                value={
                    "results": [
                        {
                            "id": 7,
                            "movement_id": "m002",
                            "product": 10,
                            "warehouse": 1,
                            "warehouse_code": "a001",
                            "warehouse_name": "Main",
                            "movement_type": "ORDER_CREATE",
                            "quantity": -4,
                            "previous_stock": 10,
                            "new_stock": 6,
                            "order": 3,
                            "order_number": "o001",
                            "created_at": "2025-03-01T09:30:00Z",
                        }
                    ],
                    "pagination": {
                        "current_page": 1,
                        "total_pages": 1,
                        "total_items": 1,
                        "items_per_page": 10,
                        "has_next_page": False,
                        "has_prev_page": False,
                    },
                },
                response_only=True,
            )
        ],
    )
    def get(self, request, *args, **kwargs):
        return super().get(request, *args, **kwargs)

    def get_queryset(self):
        params = MovementQuerySerializer(data=self.request.query_params)
        params.is_valid(raise_exception=True)
        project_id = params.validated_data["project_id"]
        require_project_access(user=self.request.user, project_id=project_id)
        product = get_product(self.kwargs["product_id"])
        if product.project_id != project_id:
            raise Http404("Product not found")
        return selectors.list_movements_for_product(
            product_id=product.id, created_on=params.validated_data.get("created_at")
        )


# EOF
