# apps/depots/models.py
from decimal import Decimal

from django.conf import settings
from django.db import models


def default_cash_start():
    return settings.DEPOT_CASH_START


class Depot(models.Model):
    """Simulated brokerage account. Aggregation root for everything below."""

    members = models.ManyToManyField(
        settings.AUTH_USER_MODEL,
        related_name='depots'
    )
    name = models.CharField(max_length=100, blank=True)

    # Eagerly maintained projection: cash_start + sum(transactions.cash_delta)
    cash = models.DecimalField(max_digits=20, decimal_places=2)
    cash_start = models.DecimalField(max_digits=20, decimal_places=2, default=default_cash_start)

    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        db_table = 'depots'
        ordering = ['id']

    def __str__(self):
        return self.name or f"Depot {self.pk}"

    def save(self, *args, **kwargs):
        if self.cash is None:
            self.cash = self.cash_start
        super().save(*args, **kwargs)

    def has_member(self, user_id) -> bool:
        return self.members.filter(pk=user_id).exists()


class Budget(models.Model):
    """Monthly cap on savings plan consumption."""

    depot = models.OneToOneField(
        Depot,
        on_delete=models.CASCADE,
        primary_key=True,
        related_name='budget'
    )
    monthly_budget = models.DecimalField(max_digits=20, decimal_places=2, default=Decimal('0'))
    last_changed = models.DateTimeField(auto_now=True)

    class Meta:
        db_table = 'savings_plans_budget'

    def __str__(self):
        return f"{self.depot} budget {self.monthly_budget}"


class ImmutableTransactionError(Exception):
    pass


class Transaction(models.Model):
    """
    Append-only ledger entry. Never updated in place; corrections are
    explicit ``reversal`` entries.
    """

    BUY = 'buy'
    SELL = 'sell'
    REWARD = 'reward'
    CASH_ADJUSTMENT = 'cash_adjustment'
    REVERSAL = 'reversal'

    KINDS = [
        (BUY, 'Buy'),
        (SELL, 'Sell'),
        (REWARD, 'Reward'),
        (CASH_ADJUSTMENT, 'Cash Adjustment'),
        (REVERSAL, 'Reversal'),
    ]

    id = models.BigAutoField(primary_key=True)
    depot = models.ForeignKey(
        Depot,
        on_delete=models.CASCADE,
        related_name='transactions'
    )
    asset = models.ForeignKey(
        'market.Asset',
        on_delete=models.PROTECT,
        null=True,
        blank=True,
        related_name='transactions'
    )

    kind = models.CharField(max_length=20, choices=KINDS)

    # Signed: buys positive, sells negative, reversals carry the inverse.
    quantity = models.DecimalField(max_digits=24, decimal_places=8, default=Decimal('0'))
    unit_price = models.DecimalField(max_digits=20, decimal_places=6, default=Decimal('0'))
    cash_delta = models.DecimalField(max_digits=20, decimal_places=2)

    # Administrative override: allowed to push cash below zero.
    is_override = models.BooleanField(default=False)

    # Ledger rows outlive the plans and users they reference, so no
    # ON DELETE action may touch them.
    savings_plan = models.ForeignKey(
        'savings.SavingsPlan',
        on_delete=models.DO_NOTHING,
        db_constraint=False,
        null=True,
        blank=True,
        related_name='transactions'
    )
    # "<plan_id>:<scheduled_for>" for savings plan occurrences
    occurrence_key = models.CharField(max_length=100, unique=True, null=True, blank=True)

    reverses = models.OneToOneField(
        'self',
        on_delete=models.CASCADE,
        null=True,
        blank=True,
        related_name='reversed_by'
    )
    created_by = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.DO_NOTHING,
        db_constraint=False,
        null=True,
        blank=True,
        related_name='+'
    )

    timestamp = models.DateTimeField()

    class Meta:
        db_table = 'transactions'
        indexes = [
            models.Index(fields=['depot', 'timestamp', 'id'], name='transactions_depot_ts_idx'),
            models.Index(fields=['depot', 'asset'], name='transactions_depot_asset_idx'),
        ]
        ordering = ['timestamp', 'id']

    def __str__(self):
        return f"#{self.pk} {self.kind} depot={self.depot_id} cash={self.cash_delta}"

    def save(self, *args, **kwargs):
        if not self._state.adding:
            raise ImmutableTransactionError("Ledger transactions cannot be modified")
        super().save(*args, **kwargs)

    def delete(self, *args, **kwargs):
        raise ImmutableTransactionError("Ledger transactions cannot be deleted")


class Position(models.Model):
    """Eagerly maintained holding of one asset in one depot."""

    depot = models.ForeignKey(
        Depot,
        on_delete=models.CASCADE,
        related_name='positions'
    )
    asset = models.ForeignKey(
        'market.Asset',
        on_delete=models.PROTECT,
        related_name='positions'
    )
    quantity = models.DecimalField(max_digits=24, decimal_places=8, default=Decimal('0'))
    cost_basis = models.DecimalField(max_digits=20, decimal_places=2, default=Decimal('0'))

    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        db_table = 'positions'
        unique_together = ('depot', 'asset')
        indexes = [
            models.Index(fields=['depot', 'asset'], name='positions_depot_asset_idx'),
        ]
        ordering = ['depot', 'asset']

    def __str__(self):
        return f"{self.depot} {self.asset} x{self.quantity}"
