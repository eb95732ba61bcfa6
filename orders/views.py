from rest_framework.views import APIView
from rest_framework.response import Response
from rest_framework import status
from drf_spectacular.utils import extend_schema, OpenApiParameter, OpenApiExample
from drf_spectacular.types import OpenApiTypes

from coffeehouse.permissions import IsAuthenticatedActor, IsStaff
from .serializers import CreateOrderSerializer, OrderSerializer, OrderStatusSerializer
from .services import OrderService

ORDER_ID_PARAMETER = OpenApiParameter(
    name='order_id',
    type=OpenApiTypes.STR,
    location=OpenApiParameter.PATH,
    description='Order ID'
)


class OrderListCreateView(APIView):
    permission_classes = [IsAuthenticatedActor]

    @extend_schema(
        summary="List orders",
        description="Staff see every order; customers see only their own. Newest first.",
        responses={200: OrderSerializer(many=True)}
    )
    def get(self, request):
        orders = OrderService().list_orders(request.user)
        return Response(OrderSerializer(orders, many=True).data)

    @extend_schema(
        summary="Place an order",
        description="Create a pending order priced from the current catalog",
        request=CreateOrderSerializer,
        responses={201: OrderSerializer},
        examples=[
            OpenApiExample(
                'Create Order Example',
                summary='Two espressos',
                description='Order 2 units of catalog item 1',
                value={'items': [{'item_id': '1', 'quantity': 2}]}
            )
        ]
    )
    def post(self, request):
        serializer = CreateOrderSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        order = OrderService().create_order(
            request.user,
            serializer.validated_data['items'],
            customer_name=serializer.validated_data.get('customer_name')
        )
        return Response(OrderSerializer(order).data, status=status.HTTP_201_CREATED)


class OrderDetailView(APIView):
    permission_classes = [IsAuthenticatedActor]

    def get_permissions(self):
        if self.request.method == 'PUT':
            return [IsStaff()]
        return super().get_permissions()

    @extend_schema(
        summary="Get order",
        description="Retrieve one order; customers may only read their own",
        parameters=[ORDER_ID_PARAMETER],
        responses={200: OrderSerializer}
    )
    def get(self, request, order_id):
        order = OrderService().get_order(request.user, order_id)
        return Response(OrderSerializer(order).data)

    @extend_schema(
        summary="Update order status",
        description="Move an order to preparing or completed (staff only)",
        parameters=[ORDER_ID_PARAMETER],
        request=OrderStatusSerializer,
        responses={200: OrderSerializer},
        examples=[
            OpenApiExample(
                'Status Example',
                summary='Start preparing',
                value={'status': 'preparing'}
            )
        ]
    )
    def put(self, request, order_id):
        serializer = OrderStatusSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        order = OrderService().set_status(request.user, order_id, serializer.validated_data['status'])
        return Response(OrderSerializer(order).data)
