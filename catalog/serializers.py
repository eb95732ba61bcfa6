from rest_framework import serializers


class MenuItemSerializer(serializers.Serializer):
    id = serializers.CharField(read_only=True)
    name = serializers.CharField(read_only=True)
    price_p = serializers.IntegerField(read_only=True, help_text='Price in pence (e.g., 350 = 3.50)')
    category = serializers.ChoiceField(choices=['coffee', 'snack'], read_only=True)
    available = serializers.BooleanField(read_only=True)


class CatalogSerializer(serializers.Serializer):
    coffee = MenuItemSerializer(many=True, read_only=True)
    snacks = MenuItemSerializer(many=True, read_only=True)


class AvailabilitySerializer(serializers.Serializer):
    available = serializers.BooleanField(help_text='Whether the item can be ordered')
