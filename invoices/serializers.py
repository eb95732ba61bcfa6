from rest_framework import serializers

from orders.serializers import OrderLineSerializer


class InvoiceSerializer(serializers.Serializer):
    id = serializers.CharField(read_only=True)
    order_id = serializers.CharField(read_only=True)
    invoice_number = serializers.CharField(read_only=True)
    customer_name = serializers.CharField(read_only=True)
    items = OrderLineSerializer(many=True, read_only=True)
    subtotal_p = serializers.IntegerField(read_only=True, help_text='Order total in pence')
    tax_p = serializers.IntegerField(read_only=True, help_text='8% of the subtotal, rounded to the penny')
    total_p = serializers.IntegerField(read_only=True, help_text='subtotal_p + tax_p')
    created_at = serializers.DateTimeField(read_only=True)


class GenerateInvoiceSerializer(serializers.Serializer):
    order_id = serializers.CharField(help_text='Order to invoice')
