from rest_framework import serializers

from .services import STATUSES


class OrderLineSerializer(serializers.Serializer):
    item_id = serializers.CharField(read_only=True)
    name = serializers.CharField(read_only=True)
    unit_price_p = serializers.IntegerField(read_only=True, help_text='Catalog price in pence at order time')
    quantity = serializers.IntegerField(read_only=True)
    line_subtotal_p = serializers.IntegerField(read_only=True, help_text='unit_price_p x quantity')


class OrderSerializer(serializers.Serializer):
    id = serializers.CharField(read_only=True)
    user_id = serializers.CharField(read_only=True)
    customer_name = serializers.CharField(read_only=True)
    items = OrderLineSerializer(many=True, read_only=True)
    total_p = serializers.IntegerField(read_only=True, help_text='Sum of line subtotals in pence, frozen at creation')
    status = serializers.ChoiceField(choices=STATUSES, read_only=True)
    created_at = serializers.DateTimeField(read_only=True)


class OrderLineRequestSerializer(serializers.Serializer):
    item_id = serializers.CharField(help_text='Catalog item ID')
    quantity = serializers.IntegerField(min_value=1, help_text='Quantity to order (minimum 1)')


class CreateOrderSerializer(serializers.Serializer):
    customer_name = serializers.CharField(
        required=False,
        allow_blank=True,
        max_length=100,
        help_text="Name on the order; defaults to the signed-in user's name"
    )
    items = OrderLineRequestSerializer(many=True, allow_empty=False)


class OrderStatusSerializer(serializers.Serializer):
    status = serializers.ChoiceField(choices=STATUSES, help_text='New order status')
