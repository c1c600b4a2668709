# ===== apps/savings/serializers.py =====
from rest_framework import serializers

from .models import SavingsPlan, SavingsPlanExecution


# ============================================================
# 1. SAVINGS PLANS
# ============================================================

class SavingsPlanSerializer(serializers.ModelSerializer):
    symbol = serializers.CharField(source="asset.symbol", read_only=True)
    monthly_worth = serializers.SerializerMethodField()

    class Meta:
        model = SavingsPlan
        fields = [
            "id",
            "depot",
            "asset",
            "symbol",
            "worth",
            "frequency",
            "monthly_worth",
            "starts_at",
            "next_occurrence",
            "created_at",
            "updated_at",
        ]

    def get_monthly_worth(self, obj):
        return round(obj.monthly_worth, 2)


class SavingsPlanCreateSerializer(serializers.Serializer):
    asset_id = serializers.IntegerField()
    worth = serializers.DecimalField(max_digits=20, decimal_places=2)
    frequency = serializers.ChoiceField(choices=SavingsPlan.FREQUENCIES)
    starts_at = serializers.DateTimeField(required=False)


class SavingsPlanUpdateSerializer(serializers.Serializer):
    asset_id = serializers.IntegerField(required=False)
    worth = serializers.DecimalField(max_digits=20, decimal_places=2, required=False)
    frequency = serializers.ChoiceField(choices=SavingsPlan.FREQUENCIES, required=False)


class SavingsPlanDeleteSerializer(serializers.Serializer):
    ids = serializers.ListField(child=serializers.IntegerField(), allow_empty=False)


# ============================================================
# 2. EXECUTIONS
# ============================================================

class SavingsPlanExecutionSerializer(serializers.ModelSerializer):
    symbol = serializers.CharField(source="asset.symbol", read_only=True)

    class Meta:
        model = SavingsPlanExecution
        fields = [
            "id",
            "plan",
            "asset",
            "symbol",
            "scheduled_for",
            "status",
            "reason",
            "worth",
            "transaction",
            "created_at",
        ]


class ExecutionFilterSerializer(serializers.Serializer):
    status = serializers.ChoiceField(choices=SavingsPlanExecution.STATUSES, required=False)


# ============================================================
# 3. BUDGET
# ============================================================

class BudgetOverviewSerializer(serializers.Serializer):
    depot_id = serializers.IntegerField()
    monthly_budget = serializers.DecimalField(max_digits=20, decimal_places=2)
    last_changed = serializers.DateTimeField(allow_null=True)
    monthly_expenses = serializers.DecimalField(max_digits=20, decimal_places=2)
    remaining_budget = serializers.DecimalField(max_digits=20, decimal_places=2)


class BudgetChangeSerializer(serializers.Serializer):
    monthly_budget = serializers.DecimalField(max_digits=20, decimal_places=2, min_value=0)
