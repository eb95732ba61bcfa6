from rest_framework.views import APIView
from rest_framework.response import Response
from rest_framework import status
from drf_spectacular.utils import extend_schema, OpenApiExample
from drf_spectacular.types import OpenApiTypes

from coffeehouse.permissions import IsAuthenticatedActor
from .serializers import PaymentConfirmationSerializer, PaymentSerializer, ProcessPaymentSerializer
from .services import PaymentService


class PaymentView(APIView):
    """Submit and list payments"""

    permission_classes = [IsAuthenticatedActor]

    @extend_schema(
        summary="List payments",
        description="Staff see every payment; customers see the payments they made",
        responses={200: PaymentSerializer(many=True)}
    )
    def get(self, request):
        payments = PaymentService().list_payments(request.user)
        return Response(PaymentSerializer(payments, many=True).data)

    @extend_schema(
        summary="Pay for an order",
        description="Record a payment for an order and mark it paid. "
                    "The amount must equal the order total plus tax.",
        request=ProcessPaymentSerializer,
        responses={
            201: PaymentConfirmationSerializer,
            400: OpenApiTypes.OBJECT,
            403: OpenApiTypes.OBJECT,
            404: OpenApiTypes.OBJECT
        },
        examples=[
            OpenApiExample(
                'Payment Request',
                summary='Payment request body',
                description='Pay 7.56 by card for an order totalling 7.00 before tax',
                value={'order_id': '3f1c...', 'amount_p': 756, 'method': 'card'},
                request_only=True
            ),
            OpenApiExample(
                'Payment Mismatch',
                summary='Wrong amount',
                description='Response when the amount does not match what is due',
                value={
                    'error': 'Payment of 7.00 does not match the amount due of 7.56',
                    'kind': 'validation'
                },
                response_only=True,
                status_codes=['400']
            )
        ]
    )
    def post(self, request):
        serializer = ProcessPaymentSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        result = PaymentService().process_payment(
            request.user,
            serializer.validated_data['order_id'],
            serializer.validated_data['amount_p'],
            serializer.validated_data['method']
        )
        return Response(PaymentConfirmationSerializer(result).data, status=status.HTTP_201_CREATED)
