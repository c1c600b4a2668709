# ===== apps/analytics/serializers.py =====
from rest_framework import serializers

from .models import DepotValuePoint


class DepotValuePointSerializer(serializers.ModelSerializer):
    total = serializers.DecimalField(max_digits=20, decimal_places=2, read_only=True)

    class Meta:
        model = DepotValuePoint
        fields = ['date', 'timestamp', 'cash', 'market_value', 'total']


class AggregateSerializer(serializers.Serializer):
    depot_id = serializers.IntegerField()
    total = serializers.DecimalField(max_digits=20, decimal_places=2)
    cash = serializers.DecimalField(max_digits=20, decimal_places=2)
    market_value = serializers.DecimalField(max_digits=20, decimal_places=2)
    diff_1d = serializers.DecimalField(max_digits=20, decimal_places=2, allow_null=True)
    diff_1m = serializers.DecimalField(max_digits=20, decimal_places=2, allow_null=True)
    diff_1y = serializers.DecimalField(max_digits=20, decimal_places=2, allow_null=True)
