# ===== apps/analytics/models.py =====
from django.db import models


class DepotValuePoint(models.Model):
    """Daily valuation snapshot of a depot, for charts and period deltas"""
    depot = models.ForeignKey('depots.Depot', on_delete=models.CASCADE, related_name='value_points')
    date = models.DateField()
    timestamp = models.DateTimeField()
    cash = models.DecimalField(max_digits=20, decimal_places=2)
    market_value = models.DecimalField(max_digits=20, decimal_places=2)
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        db_table = 'depot_values'
        unique_together = ('depot', 'date')
        indexes = [
            models.Index(fields=['depot', 'timestamp'], name='depot_values_depot_ts_idx'),
        ]
        ordering = ['timestamp']

    def __str__(self):
        return f"{self.depot} {self.date} {self.total}"

    @property
    def total(self):
        return self.cash + self.market_value
