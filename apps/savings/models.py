# apps/savings/models.py
from decimal import Decimal

from django.db import models

from .schedule import occurrence_at


class SavingsPlan(models.Model):
    """Recurring buy of a fixed currency amount of one asset."""

    WEEKLY = 'weekly'
    BIWEEKLY = 'biweekly'
    MONTHLY = 'monthly'
    QUARTERLY = 'quarterly'
    YEARLY = 'yearly'

    FREQUENCIES = [
        (WEEKLY, 'Weekly'),
        (BIWEEKLY, 'Biweekly'),
        (MONTHLY, 'Monthly'),
        (QUARTERLY, 'Quarterly'),
        (YEARLY, 'Yearly'),
    ]

    # Per-month equivalents used for budget consumption
    PER_MONTH = {
        WEEKLY: Decimal('4.345'),
        BIWEEKLY: Decimal('2.17'),
        MONTHLY: Decimal('1'),
        QUARTERLY: Decimal('1') / Decimal('3'),
        YEARLY: Decimal('1') / Decimal('12'),
    }

    depot = models.ForeignKey(
        'depots.Depot',
        on_delete=models.CASCADE,
        related_name='savings_plans'
    )
    asset = models.ForeignKey(
        'market.Asset',
        on_delete=models.PROTECT,
        related_name='savings_plans'
    )

    worth = models.DecimalField(max_digits=20, decimal_places=2)
    frequency = models.CharField(max_length=20, choices=FREQUENCIES)

    # Occurrence n happens at occurrence_at(starts_at, frequency, n)
    starts_at = models.DateTimeField()
    occurrence_number = models.PositiveIntegerField(default=0)
    next_occurrence = models.DateTimeField(db_index=True)

    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        db_table = 'savings_plans'
        indexes = [
            models.Index(fields=['depot', 'next_occurrence'], name='savings_plans_due_idx'),
        ]
        ordering = ['id']

    def __str__(self):
        return f"{self.depot} {self.asset} {self.worth} {self.frequency}"

    @property
    def monthly_worth(self):
        return self.worth * self.PER_MONTH[self.frequency]

    def advance(self):
        """Move to the following occurrence. Caller saves."""
        self.occurrence_number += 1
        self.next_occurrence = occurrence_at(self.starts_at, self.frequency, self.occurrence_number)

    def reanchor(self, frequency):
        """Switch frequency, keeping the pending occurrence as the new anchor."""
        self.frequency = frequency
        self.starts_at = self.next_occurrence
        self.occurrence_number = 0


class SavingsPlanExecution(models.Model):
    """Durable record of one processed occurrence, including skips."""

    EXECUTED = 'executed'
    SKIPPED = 'skipped'
    FAILED = 'failed'

    STATUSES = [
        (EXECUTED, 'Executed'),
        (SKIPPED, 'Skipped'),
        (FAILED, 'Failed'),
    ]

    depot = models.ForeignKey(
        'depots.Depot',
        on_delete=models.CASCADE,
        related_name='savings_plan_executions'
    )
    plan = models.ForeignKey(
        SavingsPlan,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name='executions'
    )
    asset = models.ForeignKey(
        'market.Asset',
        on_delete=models.PROTECT,
        related_name='+'
    )
    scheduled_for = models.DateTimeField()
    status = models.CharField(max_length=20, choices=STATUSES)
    reason = models.TextField(blank=True)
    worth = models.DecimalField(max_digits=20, decimal_places=2)
    transaction = models.OneToOneField(
        'depots.Transaction',
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name='savings_plan_execution'
    )

    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        db_table = 'savings_plan_executions'
        constraints = [
            models.UniqueConstraint(
                fields=['plan', 'scheduled_for'],
                name='uniq_savings_plan_occurrence',
            )
        ]
        indexes = [
            models.Index(fields=['depot', 'status'], name='savings_exec_status_idx'),
        ]
        ordering = ['-scheduled_for', '-id']

    def __str__(self):
        return f"plan={self.plan_id} {self.scheduled_for} {self.status}"
