# ===== apps/savings/services.py =====
"""
Savings plans and the monthly budget they consume.

Budget consumption of a plan is its worth normalized to one month
(``SavingsPlan.PER_MONTH``). Plans may be created beyond the budget; the
scheduler skips executions while the depot's remaining budget is negative.
"""
from decimal import Decimal
import logging

from django.db import transaction
from django.utils import timezone

from apps.depots.exceptions import InvalidInput, NotFound
from apps.depots.ledger import locked_depot
from apps.depots.models import Budget
from apps.depots.projector import ZERO, to_cents
from apps.depots.services import (
    authorize_depot_member, get_depot, parse_amount, scoped_depots, visible_depots,
)
from apps.market.models import Asset
from apps.users.roles import ADMIN, TEACHER, authorize
from .models import SavingsPlan, SavingsPlanExecution

logger = logging.getLogger(__name__)

FREQUENCIES = [value for value, _ in SavingsPlan.FREQUENCIES]


# ============================================================
# BUDGET
# ============================================================

def monthly_expenses(depot) -> Decimal:
    """Sum of all plans of the depot, normalized to one month."""
    total = ZERO
    for plan in depot.savings_plans.all():
        total += plan.monthly_worth
    return total


def monthly_budget(depot) -> Decimal:
    budget = Budget.objects.filter(depot=depot).values_list('monthly_budget', flat=True).first()
    return budget if budget is not None else ZERO


def remaining_budget(depot) -> Decimal:
    return monthly_budget(depot) - monthly_expenses(depot)


def budget_overview(caller, depot_id):
    depot = get_depot(caller, depot_id)
    row = Budget.objects.filter(depot=depot).first()
    budget = row.monthly_budget if row is not None else ZERO
    expenses = monthly_expenses(depot)
    return {
        "depot_id": depot.pk,
        "monthly_budget": budget,
        "last_changed": row.last_changed if row is not None else None,
        "monthly_expenses": to_cents(expenses),
        "remaining_budget": to_cents(budget - expenses),
    }


def change_budget(caller, depot_id, amount):
    """Set the monthly budget of a depot. Teachers and admins only."""
    authorize(caller, [TEACHER, ADMIN])

    amount = to_cents(parse_amount(amount))
    if amount < 0:
        raise InvalidInput("Budget cannot be negative")

    with locked_depot(depot_id) as depot:
        budget, _ = Budget.objects.update_or_create(
            depot=depot,
            defaults={"monthly_budget": amount},
        )

    logger.info(f"Budget of depot {depot_id} set to {amount} by {caller.user_id}")
    return budget


# ============================================================
# PLANS
# ============================================================

def _validate_worth(worth):
    worth = to_cents(parse_amount(worth, 'worth'))
    if worth <= 0:
        raise InvalidInput("Worth must be positive")
    return worth


def _validate_frequency(frequency):
    if frequency not in FREQUENCIES:
        raise InvalidInput(f"Unknown frequency: {frequency!r}")
    return frequency


def _get_asset(asset_id):
    asset = Asset.objects.filter(pk=asset_id).first()
    if asset is None:
        raise NotFound("Asset not found")
    return asset


def visible_plans(caller):
    return SavingsPlan.objects.filter(depot__in=visible_depots(caller))


def list_savings_plans(caller, depot_id):
    return (
        SavingsPlan.objects
        .filter(depot__in=scoped_depots(caller, depot_id))
        .select_related('asset')
        .order_by('id')
    )


def create_savings_plan(caller, depot_id, asset_id, worth, frequency, starts_at=None, now=None):
    """
    Create a plan whose first occurrence is ``starts_at`` (default: now).
    A start in the past is rejected. Going over the monthly budget is
    allowed here.
    """
    worth = _validate_worth(worth)
    frequency = _validate_frequency(frequency)

    depot = get_depot(caller, depot_id)
    authorize_depot_member(caller, depot)
    asset = _get_asset(asset_id)

    now = now or timezone.now()
    starts_at = starts_at or now
    if starts_at < now:
        raise InvalidInput(f"starts_at {starts_at.isoformat()} is in the past")

    with locked_depot(depot.pk) as locked:
        plan = SavingsPlan.objects.create(
            depot=locked,
            asset=asset,
            worth=worth,
            frequency=frequency,
            starts_at=starts_at,
            next_occurrence=starts_at,
        )
        remaining = remaining_budget(locked)

    if remaining < 0:
        logger.warning(f"Depot {depot.pk} is over budget by {-remaining} after plan {plan.pk}")
    logger.info(f"Savings plan {plan.pk} created: depot={depot.pk} {asset.symbol} {worth} {frequency}")
    return plan


def update_savings_plan(caller, plan_id, asset_id=None, worth=None, frequency=None):
    """
    Change asset, worth or frequency of a plan. A new frequency keeps the
    pending occurrence and continues the new rhythm from there.
    """
    plan = visible_plans(caller).filter(pk=plan_id).first()
    if plan is None:
        raise NotFound("Savings plan not found")
    authorize_depot_member(caller, plan.depot)

    asset = _get_asset(asset_id) if asset_id is not None else None
    worth = _validate_worth(worth) if worth is not None else None
    frequency = _validate_frequency(frequency) if frequency is not None else None

    with locked_depot(plan.depot_id):
        plan = SavingsPlan.objects.select_for_update().get(pk=plan.pk)
        if asset is not None:
            plan.asset = asset
        if worth is not None:
            plan.worth = worth
        if frequency is not None and frequency != plan.frequency:
            plan.reanchor(frequency)
        plan.save()

    logger.info(f"Savings plan {plan.pk} updated by {caller.user_id}")
    return plan


def delete_savings_plans(caller, plan_ids):
    """
    Delete several plans at once, all or nothing. Execution history survives
    with its plan reference cleared.
    """
    plan_ids = list(dict.fromkeys(plan_ids))
    if not plan_ids:
        raise InvalidInput("No savings plans given")

    plans = list(visible_plans(caller).filter(pk__in=plan_ids).select_related('depot'))
    if len(plans) != len(plan_ids):
        raise NotFound("Savings plan not found")
    for plan in plans:
        authorize_depot_member(caller, plan.depot)

    with transaction.atomic():
        deleted, _ = SavingsPlan.objects.filter(pk__in=plan_ids).delete()

    logger.info(f"Savings plans {plan_ids} deleted by {caller.user_id}")
    return deleted


def list_executions(caller, depot_id, status=None):
    """Execution report of a depot, newest first."""
    executions = (
        SavingsPlanExecution.objects
        .filter(depot__in=scoped_depots(caller, depot_id))
        .select_related('asset')
    )
    if status is not None:
        executions = executions.filter(status=status)
    return executions.order_by('-scheduled_for', '-id')
