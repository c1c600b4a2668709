# ===== apps/depots/serializers.py =====
from rest_framework import serializers

from .models import Depot, Transaction


# ============================================================
# 1. DEPOTS
# ============================================================

class DepotSerializer(serializers.ModelSerializer):
    member_ids = serializers.SerializerMethodField()

    class Meta:
        model = Depot
        fields = [
            "id",
            "name",
            "cash",
            "cash_start",
            "member_ids",
            "created_at",
        ]

    def get_member_ids(self, obj):
        return [str(pk) for pk in obj.members.values_list("pk", flat=True)]


class DepotCreateSerializer(serializers.Serializer):
    name = serializers.CharField(max_length=100, required=False, allow_blank=True)
    member_ids = serializers.ListField(child=serializers.UUIDField(), required=False)
    cash_start = serializers.DecimalField(max_digits=20, decimal_places=2, required=False)


# ============================================================
# 2. TRANSACTIONS
# ============================================================

class TransactionSerializer(serializers.ModelSerializer):
    symbol = serializers.SerializerMethodField()

    class Meta:
        model = Transaction
        fields = [
            "id",
            "depot",
            "asset",
            "symbol",
            "kind",
            "quantity",
            "unit_price",
            "cash_delta",
            "is_override",
            "savings_plan",
            "occurrence_key",
            "reverses",
            "timestamp",
        ]

    def get_symbol(self, obj):
        return obj.asset.symbol if obj.asset_id else None


class TradeSerializer(serializers.Serializer):
    asset_id = serializers.IntegerField()
    kind = serializers.ChoiceField(choices=[Transaction.BUY, Transaction.SELL])
    quantity = serializers.DecimalField(max_digits=24, decimal_places=8)


class CashAmountSerializer(serializers.Serializer):
    amount = serializers.DecimalField(max_digits=20, decimal_places=2)


class TimeRangeSerializer(serializers.Serializer):
    start = serializers.DateTimeField(required=False)
    end = serializers.DateTimeField(required=False)


# ============================================================
# 3. POSITIONS
# ============================================================

class PositionSerializer(serializers.Serializer):
    asset_id = serializers.IntegerField()
    symbol = serializers.CharField()
    name = serializers.CharField()
    quantity = serializers.DecimalField(max_digits=24, decimal_places=8)
    cost_basis = serializers.DecimalField(max_digits=20, decimal_places=2)
    average_price = serializers.DecimalField(max_digits=20, decimal_places=6)
    last_price = serializers.DecimalField(max_digits=20, decimal_places=6, allow_null=True)
    market_value = serializers.DecimalField(max_digits=20, decimal_places=2, allow_null=True)
    profit = serializers.DecimalField(max_digits=20, decimal_places=2, allow_null=True)
    profit_percent = serializers.DecimalField(max_digits=12, decimal_places=4, allow_null=True)
