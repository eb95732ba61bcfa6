from rest_framework.views import APIView
from rest_framework.response import Response
from rest_framework import status
from drf_spectacular.utils import extend_schema, OpenApiExample

from coffeehouse.permissions import IsCustomer
from .serializers import ReviewSerializer, SubmitReviewSerializer
from .services import ReviewService


class ReviewView(APIView):
    def get_permissions(self):
        if self.request.method == 'POST':
            return [IsCustomer()]
        return super().get_permissions()

    @extend_schema(
        summary="List reviews",
        description="Public list of customer reviews, newest first",
        responses={200: ReviewSerializer(many=True)}
    )
    def get(self, request):
        return Response(ReviewSerializer(ReviewService().list_reviews(), many=True).data)

    @extend_schema(
        summary="Submit review",
        description="Leave a rating and comment (customers only)",
        request=SubmitReviewSerializer,
        responses={201: ReviewSerializer},
        examples=[
            OpenApiExample(
                'Review Example',
                value={'rating': 5, 'comment': 'Best cappuccino in town'}
            )
        ]
    )
    def post(self, request):
        serializer = SubmitReviewSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        review = ReviewService().submit(
            request.user,
            serializer.validated_data['rating'],
            serializer.validated_data.get('comment', '')
        )
        return Response(ReviewSerializer(review).data, status=status.HTTP_201_CREATED)
