"""Catalog API: products with per-warehouse stock, and warehouses."""

from common.pagination import ProjectPagination
from common.throttling import ReadWriteThrottleMixin
from drf_spectacular.types import OpenApiTypes
from drf_spectacular.utils import OpenApiExample, OpenApiParameter, extend_schema
from inventory.services import MovementError
from projects.access import require_project_access
from projects.serializers import ProjectQuerySerializer
from rest_framework import generics, status
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response
from rest_framework.views import APIView

from . import selectors, services
from .filters import ProductFilterSet
from .serializers import ProductSerializer, ProductWriteSerializer, WarehouseCreateSerializer, WarehouseSerializer
from .services import CatalogError

DOMAIN_ERRORS = (CatalogError, MovementError)

PRODUCT_EXAMPLE = OpenApiExample(
    "Product payload",
    value={
        "project_id": 1,
        "name": "Desk Lamp",
        "description": "LED, warm white",
        "price": "24.90",
        "is_active": True,
        "category_ids": [2],
        "warehouses": [{"warehouse_id": 1, "stock": 40}, {"warehouse_id": 3, "stock": 12}],
    },
    request_only=True,
)


class CatalogBaseView(ReadWriteThrottleMixin, APIView):
    permission_classes = [IsAuthenticated]
    read_throttle_scope = "catalog"
    write_throttle_scope = "catalog_write"


class ProductListCreateView(ReadWriteThrottleMixin, generics.ListAPIView):
    permission_classes = [IsAuthenticated]
    serializer_class = ProductSerializer
    pagination_class = ProjectPagination
    filterset_class = ProductFilterSet
    read_throttle_scope = "catalog"
    write_throttle_scope = "catalog_write"

    def get_queryset(self):
        params = ProjectQuerySerializer(data=self.request.query_params)
        params.is_valid(raise_exception=True)
        project_id = params.validated_data["project_id"]
        require_project_access(user=self.request.user, project_id=project_id)
        return selectors.list_products(project_id=project_id)

    @extend_schema(
        tags=["Catalog"],
        summary="List products",
        description="Paginated products of a project with stock per warehouse, newest first.",
        parameters=[
            OpenApiParameter("project_id", OpenApiTypes.INT, required=True, description="Project id"),
            OpenApiParameter("page", OpenApiTypes.INT, description="Page number"),
            OpenApiParameter("limit", OpenApiTypes.INT, description="Items per page"),
            OpenApiParameter("search", OpenApiTypes.STR, description="Name or description contains"),
            OpenApiParameter("categories", OpenApiTypes.STR, description="Comma-separated category names"),
            OpenApiParameter("is_active", OpenApiTypes.BOOL, description="Filter by active flag"),
            OpenApiParameter("min_price", OpenApiTypes.DECIMAL, description="Price >= min_price"),
            OpenApiParameter("max_price", OpenApiTypes.DECIMAL, description="Price <= max_price"),
        ],
    )
    def get(self, request, *args, **kwargs):
        return super().get(request, *args, **kwargs)

    @extend_schema(
        tags=["Catalog"],
        summary="Create product",
        description="Creates a product and its opening stock; each stocked warehouse gets a PRODUCT_CREATE movement.",
        request=ProductWriteSerializer,
        responses={201: ProductSerializer},
        examples=[PRODUCT_EXAMPLE],
    )
    def post(self, request):
        serializer = ProductWriteSerializer(data=request.data, context={"creating": True})
        serializer.is_valid(raise_exception=True)
        try:
            product = services.create_product(
                user=request.user,
                project_id=serializer.validated_data["project_id"],
                **serializer.to_service_kwargs(),
            )
        except DOMAIN_ERRORS as exc:
            return Response({"detail": str(exc)}, status=status.HTTP_400_BAD_REQUEST)
        return Response(ProductSerializer(selectors.get_product(product.id)).data, status=status.HTTP_201_CREATED)


class ProductDetailView(CatalogBaseView):
    @extend_schema(tags=["Catalog"], summary="Get product", responses={200: ProductSerializer})
    def get(self, request, product_id: int):
        product = selectors.get_product(product_id)
        require_project_access(user=request.user, project_id=product.project_id)
        return Response(ProductSerializer(product).data)

    @extend_schema(
        tags=["Catalog"],
        summary="Replace product",
        description=(
            "Replaces fields, categories and the stock layout. Removing a warehouse is refused while "
            "NEW, PENDING or SHIPPING orders use the product there."
        ),
        request=ProductWriteSerializer,
        responses={200: ProductSerializer},
        examples=[
            PRODUCT_EXAMPLE,
            OpenApiExample(
                "Warehouse in use",
                value={
                    "detail": "Cannot remove warehouse(s): Main (a001). These warehouses have active orders "
                    "(o003) and their stock is needed. Complete or cancel these orders first."
                },
                response_only=True,
                status_codes=["400"],
            ),
        ],
    )
    def put(self, request, product_id: int):
        serializer = ProductWriteSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        try:
            services.update_product(user=request.user, product_id=product_id, **serializer.to_service_kwargs())
        except DOMAIN_ERRORS as exc:
            return Response({"detail": str(exc)}, status=status.HTTP_400_BAD_REQUEST)
        return Response(ProductSerializer(selectors.get_product(product_id)).data)

    @extend_schema(
        tags=["Catalog"],
        summary="Delete product",
        description="Deletes the product with its stock, ledger and files unless active orders or agents use it.",
    )
    def delete(self, request, product_id: int):
        try:
            services.delete_product(user=request.user, product_id=product_id)
        except DOMAIN_ERRORS as exc:
            return Response({"detail": str(exc)}, status=status.HTTP_400_BAD_REQUEST)
        return Response({"success": True})


class WarehouseListCreateView(CatalogBaseView):
    @extend_schema(
        tags=["Catalog"],
        summary="List warehouses",
        parameters=[OpenApiParameter("project_id", OpenApiTypes.INT, required=True, description="Project id")],
        responses={200: WarehouseSerializer(many=True)},
    )
    def get(self, request):
        params = ProjectQuerySerializer(data=request.query_params)
        params.is_valid(raise_exception=True)
        project_id = params.validated_data["project_id"]
        require_project_access(user=request.user, project_id=project_id)
        return Response(WarehouseSerializer(selectors.list_warehouses(project_id=project_id), many=True).data)

    @extend_schema(
        tags=["Catalog"],
        summary="Create warehouse",
        description="Adds a warehouse coded a001, a002, ... per project. Requires project admin.",
        request=WarehouseCreateSerializer,
        responses={201: WarehouseSerializer},
    )
    def post(self, request):
        serializer = WarehouseCreateSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        warehouse = services.create_warehouse(user=request.user, **serializer.validated_data)
        return Response(WarehouseSerializer(warehouse).data, status=status.HTTP_201_CREATED)


class WarehouseDetailView(CatalogBaseView):
    @extend_schema(tags=["Catalog"], summary="Delete warehouse", description="Requires project admin.")
    def delete(self, request, warehouse_id: int):
        try:
            services.delete_warehouse(user=request.user, warehouse_id=warehouse_id)
        except DOMAIN_ERRORS as exc:
            return Response({"detail": str(exc)}, status=status.HTTP_400_BAD_REQUEST)
        return Response({"success": True})
