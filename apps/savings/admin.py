from django.contrib import admin
from .models import SavingsPlan, SavingsPlanExecution


@admin.register(SavingsPlan)
class SavingsPlanAdmin(admin.ModelAdmin):
    list_display = ['id', 'depot', 'asset', 'worth', 'frequency', 'next_occurrence']
    list_filter = ['frequency']
    search_fields = ['asset__symbol']
    readonly_fields = ['occurrence_number', 'created_at', 'updated_at']


@admin.register(SavingsPlanExecution)
class SavingsPlanExecutionAdmin(admin.ModelAdmin):
    list_display = ['id', 'depot', 'plan', 'asset', 'scheduled_for', 'status', 'worth']
    list_filter = ['status']
    readonly_fields = ['depot', 'plan', 'asset', 'scheduled_for', 'status', 'reason', 'worth', 'transaction', 'created_at']

    def has_add_permission(self, request):
        return False
