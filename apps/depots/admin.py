# ===== apps/depots/admin.py =====
from django.contrib import admin
from .models import Budget, Depot, Position, Transaction

@admin.register(Depot)
class DepotAdmin(admin.ModelAdmin):
    list_display = ['id', 'name', 'cash', 'cash_start', 'created_at']
    search_fields = ['name', 'members__username']
    filter_horizontal = ['members']
    readonly_fields = ['cash', 'created_at']

@admin.register(Budget)
class BudgetAdmin(admin.ModelAdmin):
    list_display = ['depot', 'monthly_budget', 'last_changed']
    raw_id_fields = ['depot']

@admin.register(Position)
class PositionAdmin(admin.ModelAdmin):
    list_display = ['depot', 'asset', 'quantity', 'cost_basis', 'updated_at']
    search_fields = ['asset__symbol']
    raw_id_fields = ['depot', 'asset']

    def has_add_permission(self, request):
        return False

    def has_change_permission(self, request, obj=None):
        return False

@admin.register(Transaction)
class TransactionAdmin(admin.ModelAdmin):
    list_display = ['id', 'depot', 'kind', 'asset', 'quantity', 'unit_price', 'cash_delta', 'timestamp']
    list_filter = ['kind', 'is_override', 'timestamp']
    search_fields = ['asset__symbol', 'occurrence_key']
    raw_id_fields = ['depot', 'asset', 'savings_plan', 'reverses', 'created_by']

    # Append-only ledger
    def has_add_permission(self, request):
        return False

    def has_change_permission(self, request, obj=None):
        return False

    def has_delete_permission(self, request, obj=None):
        return False
