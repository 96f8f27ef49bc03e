"""Serializers for the catalog app."""

from decimal import Decimal

from inventory.models import StockItem
from rest_framework import serializers

from .models import Category, Product, ProductFile, Warehouse


class CategorySerializer(serializers.ModelSerializer):
    class Meta:
        model = Category
        fields = ["id", "name", "description", "is_active"]


class ProductFileSerializer(serializers.ModelSerializer):
    class Meta:
        model = ProductFile
        fields = ["id", "url", "name"]


class WarehouseSerializer(serializers.ModelSerializer):
    class Meta:
        model = Warehouse
        fields = ["id", "code", "name", "description", "is_active", "is_default", "created_at"]
        read_only_fields = fields


class ProductStockSerializer(serializers.ModelSerializer):
    warehouse_id = serializers.IntegerField(read_only=True)
    warehouse_code = serializers.CharField(source="warehouse.code", read_only=True)
    warehouse_name = serializers.CharField(source="warehouse.name", read_only=True)
    stock = serializers.IntegerField(source="quantity", read_only=True)

    class Meta:
        model = StockItem
        fields = ["warehouse_id", "warehouse_code", "warehouse_name", "stock"]


class ProductSerializer(serializers.ModelSerializer):
    categories = CategorySerializer(many=True, read_only=True)
    files = ProductFileSerializer(many=True, read_only=True)
    warehouses = ProductStockSerializer(source="stock_items", many=True, read_only=True)
    total_stock = serializers.SerializerMethodField()

    class Meta:
        model = Product
        fields = [
            "id",
            "project",
            "name",
            "description",
            "price",
            "image_url",
            "is_active",
            "categories",
            "files",
            "warehouses",
            "total_stock",
            "created_at",
            "updated_at",
        ]
        read_only_fields = fields

    def get_total_stock(self, obj: Product) -> int:
        return sum(int(item.quantity) for item in obj.stock_items.all())


class WarehouseStockInputSerializer(serializers.Serializer):
    warehouse_id = serializers.IntegerField()
    stock = serializers.IntegerField(min_value=0)


class ProductWriteSerializer(serializers.Serializer):
    """Payload for product create (POST) and full replace (PUT).

    ``warehouses`` is the complete desired stock layout; on update, a
    warehouse left out is removed from the product.
    """

    project_id = serializers.IntegerField(required=False)
    name = serializers.CharField(max_length=200)
    description = serializers.CharField(required=False, allow_blank=True, default="")
    price = serializers.DecimalField(max_digits=12, decimal_places=2, min_value=Decimal("0"))
    image_url = serializers.URLField(required=False, allow_blank=True, default="")
    is_active = serializers.BooleanField(required=False, default=True)
    category_ids = serializers.ListField(child=serializers.IntegerField(), required=False, default=list)
    warehouses = WarehouseStockInputSerializer(many=True, required=False, default=list)

    def validate_warehouses(self, value):
        seen = set()
        for entry in value:
            if entry["warehouse_id"] in seen:
                raise serializers.ValidationError(f"Warehouse {entry['warehouse_id']} is listed more than once")
            seen.add(entry["warehouse_id"])
        return value

    def validate(self, attrs):
        if self.context.get("creating") and not attrs.get("project_id"):
            raise serializers.ValidationError({"project_id": "This field is required."})
        if attrs.get("is_active", True) and not attrs.get("warehouses"):
            raise serializers.ValidationError(
                {"warehouses": "An active product must be available in at least one warehouse"}
            )
        return attrs

    def to_service_kwargs(self) -> dict:
        data = dict(self.validated_data)
        data.pop("project_id", None)
        data["stock_by_warehouse"] = {w["warehouse_id"]: w["stock"] for w in data.pop("warehouses")}
        return data


class WarehouseCreateSerializer(serializers.Serializer):
    project_id = serializers.IntegerField()
    name = serializers.CharField(max_length=120)
    description = serializers.CharField(required=False, allow_blank=True, default="")
    is_default = serializers.BooleanField(required=False, default=False)
