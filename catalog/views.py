from rest_framework.views import APIView
from rest_framework.response import Response
from drf_spectacular.utils import extend_schema, OpenApiParameter, OpenApiExample
from drf_spectacular.types import OpenApiTypes

from coffeehouse.permissions import IsStaff
from .serializers import AvailabilitySerializer, CatalogSerializer
from .services import CatalogService


class MenuView(APIView):
    @extend_schema(
        summary="Get menu",
        description="List every catalog item, grouped into coffee and snacks",
        responses={200: CatalogSerializer}
    )
    def get(self, request):
        catalog = CatalogService().list_items()
        return Response(CatalogSerializer(catalog).data)


class MenuItemAvailabilityView(APIView):
    permission_classes = [IsStaff]

    @extend_schema(
        summary="Set item availability",
        description="Mark a catalog item as available or sold out (staff only)",
        parameters=[
            OpenApiParameter(
                name='item_id',
                type=OpenApiTypes.STR,
                location=OpenApiParameter.PATH,
                description='Menu item ID'
            )
        ],
        request=AvailabilitySerializer,
        responses={200: CatalogSerializer},
        examples=[
            OpenApiExample(
                'Sold Out Example',
                summary='Mark an item sold out',
                value={'available': False}
            )
        ]
    )
    def put(self, request, item_id):
        serializer = AvailabilitySerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        catalog = CatalogService().set_availability(
            request.user, item_id, serializer.validated_data['available']
        )
        return Response(CatalogSerializer(catalog).data)
