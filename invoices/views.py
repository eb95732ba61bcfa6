from rest_framework.views import APIView
from rest_framework.response import Response
from rest_framework import status
from drf_spectacular.utils import extend_schema, OpenApiParameter, OpenApiExample
from drf_spectacular.types import OpenApiTypes

from coffeehouse.permissions import IsAuthenticatedActor, IsStaff
from .serializers import GenerateInvoiceSerializer, InvoiceSerializer
from .services import InvoiceService


class InvoiceListCreateView(APIView):
    permission_classes = [IsAuthenticatedActor]

    def get_permissions(self):
        if self.request.method == 'POST':
            return [IsStaff()]
        return super().get_permissions()

    @extend_schema(
        summary="List invoices",
        description="Staff see every invoice; customers see invoices for their own orders",
        responses={200: InvoiceSerializer(many=True)}
    )
    def get(self, request):
        invoices = InvoiceService().list_invoices(request.user)
        return Response(InvoiceSerializer(invoices, many=True).data)

    @extend_schema(
        summary="Generate invoice",
        description="Invoice an order with 8% tax (staff only). "
                    "Returns the existing invoice with 200 if the order was already invoiced.",
        request=GenerateInvoiceSerializer,
        responses={201: InvoiceSerializer, 200: InvoiceSerializer},
        examples=[
            OpenApiExample(
                'Invoice Response',
                summary='Invoice for a 7.00 order',
                response_only=True,
                value={
                    'invoice_number': 'INV-1700000000000',
                    'subtotal_p': 700,
                    'tax_p': 56,
                    'total_p': 756
                }
            )
        ]
    )
    def post(self, request):
        serializer = GenerateInvoiceSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        invoice, created = InvoiceService().issue(request.user, serializer.validated_data['order_id'])
        return Response(
            InvoiceSerializer(invoice).data,
            status=status.HTTP_201_CREATED if created else status.HTTP_200_OK
        )


class InvoiceDetailView(APIView):
    permission_classes = [IsAuthenticatedActor]

    @extend_schema(
        summary="Get invoice",
        description="Retrieve one invoice; customers may only read invoices for their own orders",
        parameters=[
            OpenApiParameter(
                name='invoice_id',
                type=OpenApiTypes.STR,
                location=OpenApiParameter.PATH,
                description='Invoice ID'
            )
        ],
        responses={200: InvoiceSerializer}
    )
    def get(self, request, invoice_id):
        invoice = InvoiceService().get_invoice(request.user, invoice_id)
        return Response(InvoiceSerializer(invoice).data)
