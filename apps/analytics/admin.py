# ===== apps/analytics/admin.py =====
from django.contrib import admin
from .models import DepotValuePoint

@admin.register(DepotValuePoint)
class DepotValuePointAdmin(admin.ModelAdmin):
    list_display = ['depot', 'date', 'cash', 'market_value', 'timestamp']
    list_filter = ['date']
    raw_id_fields = ['depot']
