from rest_framework import serializers

from .services import METHODS


class PaymentSerializer(serializers.Serializer):
    id = serializers.CharField(read_only=True)
    order_id = serializers.CharField(read_only=True)
    user_id = serializers.CharField(read_only=True)
    amount_p = serializers.IntegerField(read_only=True)
    method = serializers.CharField(read_only=True)
    status = serializers.CharField(read_only=True)
    created_at = serializers.DateTimeField(read_only=True)


class ProcessPaymentSerializer(serializers.Serializer):
    """Serializer for submitting a payment"""
    order_id = serializers.CharField(help_text="Order being paid")
    amount_p = serializers.IntegerField(
        min_value=1,
        help_text="Amount in pence; must equal the order total plus tax"
    )
    method = serializers.ChoiceField(choices=METHODS, default='card')


class PaymentConfirmationSerializer(serializers.Serializer):
    payment = PaymentSerializer()
    message = serializers.CharField()
