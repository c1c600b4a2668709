# apps/market/models.py
from django.db import models


class Asset(models.Model):
    """Tradable security. Metadata and prices are filled by the external price updater."""

    symbol = models.CharField(max_length=30, unique=True)
    name = models.CharField(max_length=200, blank=True)
    currency = models.CharField(max_length=10, default='EUR')
    last_updated = models.DateField(null=True, blank=True)

    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        db_table = 'assets'
        ordering = ['symbol']

    def __str__(self):
        return self.symbol


class AssetPrice(models.Model):
    """Daily close per asset."""

    asset = models.ForeignKey(
        Asset,
        on_delete=models.CASCADE,
        related_name='prices'
    )
    date = models.DateField()
    close = models.DecimalField(max_digits=20, decimal_places=6)

    class Meta:
        db_table = 'asset_prices'
        unique_together = ['asset', 'date']
        indexes = [
            models.Index(fields=['asset', 'date'], name='asset_prices_asset_date_idx'),
        ]
        ordering = ['asset', '-date']

    def __str__(self):
        return f"{self.asset.symbol} {self.date} {self.close}"
