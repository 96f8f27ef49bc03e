"""DRF serializers for Orders.

Read serializers expose the persisted, server-derived ``type`` and
``total_amount``; write serializers never accept them.
"""

from decimal import Decimal

from rest_framework import serializers

from .models import Order, OrderItem, OrderServiceItem


class FileSerializer(serializers.Serializer):
    id = serializers.IntegerField(read_only=True)
    url = serializers.URLField(read_only=True)
    name = serializers.CharField(read_only=True)


class OrderItemSerializer(serializers.ModelSerializer):
    warehouse_code = serializers.CharField(source="warehouse.code", read_only=True, default=None)
    warehouse_name = serializers.CharField(source="warehouse.name", read_only=True, default=None)
    product_files = serializers.SerializerMethodField()

    class Meta:
        model = OrderItem
        fields = [
            "id",
            "product",
            "product_name",
            "warehouse",
            "warehouse_code",
            "warehouse_name",
            "quantity",
            "price",
            "total",
            "product_files",
        ]
        read_only_fields = fields

    def get_product_files(self, obj: OrderItem) -> list[dict]:
        if obj.product is None:
            return []
        return FileSerializer(obj.product.files.all(), many=True).data


class OrderServiceItemSerializer(serializers.ModelSerializer):
    service_files = serializers.SerializerMethodField()

    class Meta:
        model = OrderServiceItem
        fields = ["id", "order", "service", "service_name", "quantity", "price", "total", "created_at", "service_files"]
        read_only_fields = fields

    def get_service_files(self, obj: OrderServiceItem) -> list[dict]:
        if obj.service is None:
            return []
        return FileSerializer(obj.service.files.all(), many=True).data


class OrderListSerializer(serializers.ModelSerializer):
    items_count = serializers.IntegerField(read_only=True)
    services_count = serializers.IntegerField(read_only=True)

    class Meta:
        model = Order
        fields = [
            "id",
            "project",
            "order_number",
            "order_date",
            "delivered_date",
            "customer",
            "customer_name",
            "customer_email",
            "type",
            "status",
            "payment",
            "tax_percentage",
            "total_amount",
            "items_count",
            "services_count",
            "created_at",
        ]
        read_only_fields = fields


class OrderSerializer(serializers.ModelSerializer):
    """Full order representation with nested lines.

    ``subtotal`` is the sum of the line totals, never derived back from
    ``total_amount``.
    """

    items = OrderItemSerializer(many=True, read_only=True)
    services = OrderServiceItemSerializer(many=True, read_only=True)
    subtotal = serializers.SerializerMethodField()

    class Meta:
        model = Order
        fields = [
            "id",
            "project",
            "order_number",
            "order_date",
            "delivered_date",
            "customer",
            "customer_name",
            "customer_email",
            "type",
            "status",
            "payment",
            "tax_percentage",
            "subtotal",
            "total_amount",
            "items",
            "services",
            "created_at",
            "updated_at",
        ]
        read_only_fields = fields

    def get_subtotal(self, obj: Order) -> str:
        total = Decimal("0.00")
        for line in list(obj.items.all()) + list(obj.services.all()):
            total += line.total or Decimal("0.00")
        return str(total.quantize(Decimal("0.01")))


class OrderItemInputSerializer(serializers.Serializer):
    product_id = serializers.IntegerField()
    warehouse_id = serializers.IntegerField()
    quantity = serializers.IntegerField(min_value=1)
    price = serializers.DecimalField(max_digits=12, decimal_places=2, min_value=Decimal("0"), required=False)


class OrderServiceInputSerializer(serializers.Serializer):
    service_id = serializers.IntegerField()
    quantity = serializers.IntegerField(min_value=1)
    price = serializers.DecimalField(max_digits=12, decimal_places=2, min_value=Decimal("0"), required=False)


class OrderCreateSerializer(serializers.Serializer):
    project_id = serializers.IntegerField()
    customer_id = serializers.IntegerField()
    items = OrderItemInputSerializer(many=True, required=False, default=list)
    services = OrderServiceInputSerializer(many=True, required=False, default=list)
    order_date = serializers.DateTimeField(required=False)
    delivered_date = serializers.DateTimeField(required=False, allow_null=True)
    status = serializers.ChoiceField(choices=Order.STATUS_CHOICES, default=Order.STATUS_NEW)
    payment = serializers.ChoiceField(choices=Order.PAYMENT_CHOICES, default=Order.PAYMENT_UNPAID)
    tax_percentage = serializers.DecimalField(
        max_digits=5, decimal_places=2, min_value=Decimal("0"), max_value=Decimal("100"), default=Decimal("0")
    )


class OrderUpdateSerializer(serializers.Serializer):
    status = serializers.ChoiceField(choices=Order.STATUS_CHOICES, required=False)
    payment = serializers.ChoiceField(choices=Order.PAYMENT_CHOICES, required=False)
    customer_id = serializers.IntegerField(required=False)
    tax_percentage = serializers.DecimalField(
        max_digits=5, decimal_places=2, min_value=Decimal("0"), max_value=Decimal("100"), required=False
    )
    order_date = serializers.DateTimeField(required=False)
    delivered_date = serializers.DateTimeField(required=False, allow_null=True)


class OrderItemUpdateSerializer(serializers.Serializer):
    warehouse_id = serializers.IntegerField(required=False)
    quantity = serializers.IntegerField(min_value=1, required=False)
    price = serializers.DecimalField(max_digits=12, decimal_places=2, min_value=Decimal("0"), required=False)


class OrderServiceUpdateSerializer(serializers.Serializer):
    quantity = serializers.IntegerField(min_value=1, required=False)
    price = serializers.DecimalField(max_digits=12, decimal_places=2, min_value=Decimal("0"), required=False)


class OrderListQuerySerializer(serializers.Serializer):
    project_id = serializers.IntegerField()
    search = serializers.CharField(required=False, allow_blank=True)
    type = serializers.ChoiceField(choices=Order.TYPE_CHOICES, required=False)
    status = serializers.ChoiceField(choices=Order.STATUS_CHOICES, required=False)
    payment = serializers.ChoiceField(choices=Order.PAYMENT_CHOICES, required=False)
    is_paid = serializers.BooleanField(required=False, default=False)
    is_unpaid = serializers.BooleanField(required=False, default=False)
    min_amount = serializers.DecimalField(max_digits=12, decimal_places=2, required=False)
    max_amount = serializers.DecimalField(max_digits=12, decimal_places=2, required=False)
    selected_statuses = serializers.ListField(
        child=serializers.ChoiceField(choices=Order.STATUS_CHOICES), required=False, default=list
    )
