"""Serializers for the inventory domain."""

from rest_framework import serializers

from .models import StockMovement


class StockMovementSerializer(serializers.ModelSerializer):
    """Read-only ledger entry."""

    warehouse_code = serializers.CharField(source="warehouse.code", read_only=True, default=None)

    class Meta:
        model = StockMovement
        fields = [
            "id",
            "movement_id",
            "product",
            "warehouse",
            "warehouse_code",
            "warehouse_name",
            "movement_type",
            "quantity",
            "previous_stock",
            "new_stock",
            "order",
            "order_number",
            "created_at",
        ]
        read_only_fields = fields


class MovementQuerySerializer(serializers.Serializer):
    project_id = serializers.IntegerField(min_value=1)
    created_at = serializers.DateField(required=False)


# EOF
