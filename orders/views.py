"""Orders API endpoints.

Orders, their product lines and their service lines. Lifecycle and stock
failures from the services come back as 400 with a ``detail`` message;
access failures as 403 and unknown resources as 404.
"""

from common.pagination import ProjectPagination
from common.throttling import ReadWriteThrottleMixin
from drf_spectacular.types import OpenApiTypes
from drf_spectacular.utils import OpenApiExample, OpenApiParameter, extend_schema
from inventory.services import MovementError
from projects.access import require_project_access
from rest_framework import generics, status
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response
from rest_framework.views import APIView

from . import selectors, services
from .models import OrderItem
from .serializers import (
    OrderCreateSerializer,
    OrderItemInputSerializer,
    OrderItemSerializer,
    OrderItemUpdateSerializer,
    OrderListQuerySerializer,
    OrderListSerializer,
    OrderSerializer,
    OrderServiceInputSerializer,
    OrderServiceItemSerializer,
    OrderServiceUpdateSerializer,
    OrderUpdateSerializer,
)
from .services import OrderError

DOMAIN_ERRORS = (OrderError, MovementError)

ERROR_EXAMPLES = [
    OpenApiExample(
        "Insufficient stock",
        value={"detail": "Insufficient stock for Desk Lamp in Main (a001). Available: 3, Requested: 5"},
        response_only=True,
        status_codes=["400"],
    ),
    OpenApiExample(
        "Delivered order",
        value={"detail": "Cannot cancel an order that has been delivered"},
        response_only=True,
        status_codes=["400"],
    ),
]


class OrderBaseView(ReadWriteThrottleMixin, APIView):
    permission_classes = [IsAuthenticated]
    read_throttle_scope = "orders"
    write_throttle_scope = "orders_write"


class OrderListCreateView(ReadWriteThrottleMixin, generics.ListAPIView):
    """List a project's orders or create a new one."""

    permission_classes = [IsAuthenticated]
    serializer_class = OrderListSerializer
    pagination_class = ProjectPagination
    read_throttle_scope = "orders"
    write_throttle_scope = "orders_write"

    def get_queryset(self):
        params = OrderListQuerySerializer(data=self.request.query_params)
        params.is_valid(raise_exception=True)
        filters = dict(params.validated_data)
        project_id = filters.pop("project_id")
        require_project_access(
            user=self.request.user, project_id=project_id, message="You don't have access to this project"
        )
        return selectors.list_orders(project_id=project_id, **filters)

    @extend_schema(
        tags=["Orders"],
        summary="List orders",
        description="Paginated orders of a project, newest first.",
        parameters=[
            OpenApiParameter("project_id", OpenApiTypes.INT, required=True, description="Project id"),
            OpenApiParameter("page", OpenApiTypes.INT, description="Page number"),
            OpenApiParameter("limit", OpenApiTypes.INT, description="Items per page"),
            OpenApiParameter("search", OpenApiTypes.STR, description="Order number or customer name contains"),
            OpenApiParameter("type", OpenApiTypes.STR, description="PRODUCT, SERVICE or MIXED"),
            OpenApiParameter("status", OpenApiTypes.STR, description="Order status"),
            OpenApiParameter("payment", OpenApiTypes.STR, description="PAID, UNPAID or COD"),
            OpenApiParameter("is_paid", OpenApiTypes.BOOL, description="Only paid orders"),
            OpenApiParameter("is_unpaid", OpenApiTypes.BOOL, description="Only unpaid orders"),
            OpenApiParameter("min_amount", OpenApiTypes.DECIMAL, description="Total amount >= min_amount"),
            OpenApiParameter("max_amount", OpenApiTypes.DECIMAL, description="Total amount <= max_amount"),
            OpenApiParameter(
                "selected_statuses", OpenApiTypes.STR, many=True, description="Any of these statuses (repeatable)"
            ),
        ],
    )
    def get(self, request, *args, **kwargs):
        return super().get(request, *args, **kwargs)

    @extend_schema(
        tags=["Orders"],
        summary="Create order",
        description=(
            "Creates an order with product and service lines. Product lines deduct warehouse stock. "
            "`type` and `total_amount` are computed server-side. Requires project admin."
        ),
        request=OrderCreateSerializer,
        responses={201: OrderSerializer},
        examples=[
            OpenApiExample(
                "Create order",
                value={
                    "project_id": 1,
                    "customer_id": 4,
                    "items": [{"product_id": 10, "warehouse_id": 2, "quantity": 4, "price": "12.50"}],
                    "services": [{"service_id": 3, "quantity": 1}],
                    "tax_percentage": "19.00",
                },
                request_only=True,
            ),
            *ERROR_EXAMPLES,
        ],
    )
    def post(self, request):
        serializer = OrderCreateSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        try:
            order = services.create_order(user=request.user, **serializer.validated_data)
        except DOMAIN_ERRORS as exc:
            return Response({"detail": str(exc)}, status=status.HTTP_400_BAD_REQUEST)
        return Response(OrderSerializer(selectors.get_order(order.id)).data, status=status.HTTP_201_CREATED)


class OrderDetailView(OrderBaseView):
    @extend_schema(
        tags=["Orders"],
        summary="Get order",
        description="Order with product and service lines and their files.",
        responses={200: OrderSerializer},
    )
    def get(self, request, order_id: int):
        order = selectors.get_order(order_id)
        require_project_access(user=request.user, project_id=order.project_id)
        return Response(OrderSerializer(order).data)

    @extend_schema(
        tags=["Orders"],
        summary="Update order",
        description=(
            "Updates header fields. Cancelling returns stock; leaving CANCELLED deducts it again. "
            "A delivered order cannot be cancelled. Requires project admin."
        ),
        request=OrderUpdateSerializer,
        responses={200: OrderSerializer},
        examples=ERROR_EXAMPLES,
    )
    def patch(self, request, order_id: int):
        serializer = OrderUpdateSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        try:
            services.update_order(user=request.user, order_id=order_id, changes=serializer.validated_data)
        except DOMAIN_ERRORS as exc:
            return Response({"detail": str(exc)}, status=status.HTTP_400_BAD_REQUEST)
        return Response(OrderSerializer(selectors.get_order(order_id)).data)

    @extend_schema(
        tags=["Orders"],
        summary="Delete order",
        description="Deletes the order; stock is returned unless it was cancelled. Requires project admin.",
        examples=[OpenApiExample("Deleted", value={"success": True}, response_only=True)],
    )
    def delete(self, request, order_id: int):
        services.delete_order(user=request.user, order_id=order_id)
        return Response({"success": True})


class OrderItemListCreateView(OrderBaseView):
    @extend_schema(tags=["Orders"], summary="List order items", responses={200: OrderItemSerializer(many=True)})
    def get(self, request, order_id: int):
        order = selectors.get_order(order_id)
        require_project_access(user=request.user, project_id=order.project_id)
        return Response(OrderItemSerializer(order.items.all(), many=True).data)

    @extend_schema(
        tags=["Orders"],
        summary="Add order item",
        description="Adds a product line; stock is deducted unless the order is cancelled.",
        request=OrderItemInputSerializer,
        responses={201: OrderItemSerializer},
        examples=ERROR_EXAMPLES,
    )
    def post(self, request, order_id: int):
        serializer = OrderItemInputSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        try:
            line = services.add_order_item(user=request.user, order_id=order_id, **serializer.validated_data)
        except DOMAIN_ERRORS as exc:
            return Response({"detail": str(exc)}, status=status.HTTP_400_BAD_REQUEST)
        return Response(OrderItemSerializer(line).data, status=status.HTTP_201_CREATED)


class OrderItemDetailView(OrderBaseView):
    @extend_schema(
        tags=["Orders"],
        summary="Update order item",
        request=OrderItemUpdateSerializer,
        responses={200: OrderItemSerializer},
        examples=ERROR_EXAMPLES,
    )
    def patch(self, request, item_id: int):
        serializer = OrderItemUpdateSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        try:
            line = services.update_order_item(user=request.user, item_id=item_id, **serializer.validated_data)
        except DOMAIN_ERRORS as exc:
            return Response({"detail": str(exc)}, status=status.HTTP_400_BAD_REQUEST)
        return Response(OrderItemSerializer(OrderItem.objects.select_related("warehouse").get(id=line.id)).data)

    @extend_schema(tags=["Orders"], summary="Delete order item", description="Requires project admin.")
    def delete(self, request, item_id: int):
        services.delete_order_item(user=request.user, item_id=item_id)
        return Response({"success": True})


class OrderServiceListCreateView(OrderBaseView):
    @extend_schema(
        tags=["Orders"],
        summary="List order services",
        description="Service lines of an order, oldest first.",
        responses={200: OrderServiceItemSerializer(many=True)},
    )
    def get(self, request, order_id: int):
        lines = services.list_order_services(user=request.user, order_id=order_id)
        return Response(OrderServiceItemSerializer(lines, many=True).data)

    @extend_schema(
        tags=["Orders"],
        summary="Add order service",
        description="Attaches an active service of the same project and recomputes the order total.",
        request=OrderServiceInputSerializer,
        responses={201: OrderServiceItemSerializer},
    )
    def post(self, request, order_id: int):
        serializer = OrderServiceInputSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        try:
            line = services.create_order_service(user=request.user, order_id=order_id, **serializer.validated_data)
        except DOMAIN_ERRORS as exc:
            return Response({"detail": str(exc)}, status=status.HTTP_400_BAD_REQUEST)
        return Response(OrderServiceItemSerializer(line).data, status=status.HTTP_201_CREATED)


class OrderServiceDetailView(OrderBaseView):
    @extend_schema(
        tags=["Orders"],
        summary="Update order service",
        request=OrderServiceUpdateSerializer,
        responses={200: OrderServiceItemSerializer},
    )
    def patch(self, request, line_id: int):
        serializer = OrderServiceUpdateSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        try:
            line = services.update_order_service(user=request.user, line_id=line_id, **serializer.validated_data)
        except DOMAIN_ERRORS as exc:
            return Response({"detail": str(exc)}, status=status.HTTP_400_BAD_REQUEST)
        return Response(OrderServiceItemSerializer(line).data)

    @extend_schema(tags=["Orders"], summary="Delete order service", description="Requires project admin.")
    def delete(self, request, line_id: int):
        services.delete_order_service(user=request.user, line_id=line_id)
        return Response({"success": True})
