from rest_framework import serializers


class UserSerializer(serializers.Serializer):
    id = serializers.CharField(read_only=True)
    name = serializers.CharField(read_only=True)
    email = serializers.EmailField(read_only=True)
    role = serializers.CharField(read_only=True)
    created_at = serializers.DateTimeField(read_only=True)


class SignupSerializer(serializers.Serializer):
    name = serializers.CharField(max_length=100, help_text="Display name, used as the default order name")
    email = serializers.EmailField()
    password = serializers.CharField(write_only=True, min_length=8, help_text="At least 8 characters")


class LoginSerializer(serializers.Serializer):
    email = serializers.EmailField()
    password = serializers.CharField(write_only=True)


class AuthResponseSerializer(serializers.Serializer):
    token = serializers.CharField(help_text="Send as 'Authorization: Bearer <token>'")
    user = UserSerializer()
