# apps/market/serializers.py
from rest_framework import serializers
from .models import Asset


class AssetSerializer(serializers.ModelSerializer):
    class Meta:
        model = Asset
        fields = [
            'id',
            'symbol',
            'name',
            'currency',
            'last_updated',
        ]
