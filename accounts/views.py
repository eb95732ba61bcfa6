from rest_framework.views import APIView
from rest_framework.response import Response
from rest_framework import status
from drf_spectacular.utils import extend_schema, OpenApiExample

from coffeehouse.exceptions import NotFound
from coffeehouse.permissions import IsAuthenticatedActor
from .serializers import AuthResponseSerializer, LoginSerializer, SignupSerializer, UserSerializer
from .services import AuthService


class SignupView(APIView):
    @extend_schema(
        summary="Sign up",
        description="Create a customer account and return a bearer token",
        request=SignupSerializer,
        responses={201: AuthResponseSerializer},
        examples=[
            OpenApiExample(
                'Signup Example',
                value={'name': 'Ada', 'email': 'ada@example.com', 'password': 'correct-horse'}
            )
        ]
    )
    def post(self, request):
        serializer = SignupSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        result = AuthService().signup(**serializer.validated_data)
        return Response(AuthResponseSerializer(result).data, status=status.HTTP_201_CREATED)


class LoginView(APIView):
    @extend_schema(
        summary="Log in",
        description="Exchange email and password for a bearer token",
        request=LoginSerializer,
        responses={200: AuthResponseSerializer}
    )
    def post(self, request):
        serializer = LoginSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        result = AuthService().login(**serializer.validated_data)
        return Response(AuthResponseSerializer(result).data)


class MeView(APIView):
    permission_classes = [IsAuthenticatedActor]

    @extend_schema(
        summary="Current user",
        description="Return the account behind the bearer token",
        responses={200: UserSerializer}
    )
    def get(self, request):
        user = AuthService().get_user(request.user.id)
        if user is None:
            raise NotFound('User not found')
        return Response(UserSerializer(user).data)
