# ===== apps/market/admin.py =====
from django.contrib import admin
from .models import Asset, AssetPrice

@admin.register(Asset)
class AssetAdmin(admin.ModelAdmin):
    list_display = ['symbol', 'name', 'currency', 'last_updated']
    list_filter = ['currency']
    search_fields = ['symbol', 'name']

@admin.register(AssetPrice)
class AssetPriceAdmin(admin.ModelAdmin):
    list_display = ['asset', 'date', 'close']
    list_filter = ['date']
    search_fields = ['asset__symbol']
    raw_id_fields = ['asset']
