# ===== apps/depots/services.py =====
"""
Depot mutation and query operations. Every function takes the explicit
``Caller`` and passes the authorization gate before touching the ledger.
"""
from decimal import Decimal, InvalidOperation
import logging

from django.contrib.auth import get_user_model
from django.db import transaction

from apps.market.models import Asset
from apps.market.prices import price_source
from apps.users.roles import ADMIN, TEACHER, PRIVILEGED_ROLES, authorize, is_privileged
from . import ledger
from .exceptions import InvalidInput, NotFound
from .models import Depot, Position, Transaction
from .projector import ZERO, to_cents

logger = logging.getLogger(__name__)
User = get_user_model()


def parse_amount(value, field='amount'):
    try:
        amount = Decimal(str(value))
    except (InvalidOperation, TypeError, ValueError):
        raise InvalidInput(f"Invalid {field}: {value!r}") from None
    if not amount.is_finite():
        raise InvalidInput(f"Invalid {field}: {value!r}")
    return amount


# ============================================================
# VISIBILITY
# ============================================================

def visible_depots(caller):
    """All depots for admins/teachers/system, otherwise the caller's own."""
    if is_privileged(caller):
        return Depot.objects.all()
    if caller.user_id is None:
        return Depot.objects.none()
    return Depot.objects.filter(members__id=caller.user_id)


def scoped_depots(caller, depot_id):
    """
    The depot as a one-row queryset for read queries; empty when it is absent
    or not visible to the caller, so reads of either return no rows.
    """
    return visible_depots(caller).filter(pk=depot_id)


def get_depot(caller, depot_id):
    """Depot lookup where not-owned is indistinguishable from absent."""
    depot = visible_depots(caller).filter(pk=depot_id).first()
    if depot is None:
        raise NotFound("Depot not found")
    return depot


def authorize_depot_member(caller, depot):
    authorize(caller, PRIVILEGED_ROLES, owner_check=lambda: depot.has_member(caller.user_id))


# ============================================================
# DEPOT LIFECYCLE
# ============================================================

def create_depot(caller, name='', member_ids=None, cash_start=None):
    """
    Students open a depot for themselves with the configured starting cash.
    Teachers and admins may pick the members and the starting cash.
    """
    member_ids = [str(m) for m in (member_ids or [])]
    custom = bool(cash_start is not None or [m for m in member_ids if m != str(caller.user_id)])
    if custom:
        authorize(caller, PRIVILEGED_ROLES)

    if not member_ids:
        if caller.user_id is None:
            raise InvalidInput("A depot needs at least one member")
        member_ids = [str(caller.user_id)]

    members = list(User.objects.filter(pk__in=member_ids))
    if len(members) != len(set(member_ids)):
        raise NotFound("User not found")

    fields = {"name": name or ''}
    if cash_start is not None:
        cash_start = to_cents(parse_amount(cash_start, 'cash_start'))
        if cash_start < 0:
            raise InvalidInput("Starting cash cannot be negative")
        fields["cash_start"] = cash_start

    with transaction.atomic():
        depot = Depot.objects.create(**fields)
        depot.members.set(members)

    logger.info(f"Depot {depot.pk} created by {caller.user_id} for {[str(m.pk) for m in members]}")
    return depot


def delete_depot(caller, depot_id):
    depot = get_depot(caller, depot_id)
    authorize_depot_member(caller, depot)

    with ledger.locked_depot(depot.pk) as locked:
        locked.delete()

    logger.info(f"Depot {depot_id} deleted by {caller.user_id}")


# ============================================================
# TRANSACTIONS
# ============================================================

def create_transaction(caller, depot_id, asset_id, kind, quantity, prices=price_source):
    """Buy or sell at the last known price of the asset."""
    if kind not in ledger.TRADE_KINDS:
        raise InvalidInput(f"Unsupported transaction kind: {kind}")

    quantity = parse_amount(quantity, 'quantity')
    if quantity <= 0:
        raise InvalidInput("Quantity must be positive")

    depot = get_depot(caller, depot_id)
    authorize_depot_member(caller, depot)

    asset = Asset.objects.filter(pk=asset_id).first()
    if asset is None:
        raise NotFound("Asset not found")

    unit_price = prices.latest_price(asset.pk)
    if unit_price is None:
        raise InvalidInput(f"No price available for {asset.symbol}")

    with ledger.locked_depot(depot.pk) as locked:
        return ledger.append(
            locked,
            kind,
            asset=asset,
            quantity=quantity,
            unit_price=unit_price,
            created_by=caller.user_id,
        )


def list_transactions(caller, depot_id, start=None, end=None):
    return ledger.list_by_depot(scoped_depots(caller, depot_id), start, end)


def grant_reward(caller, depot_id, amount):
    """Teacher reward. Administrative override: may push cash arbitrarily."""
    authorize(caller, [TEACHER, ADMIN])

    amount = parse_amount(amount)
    if amount == 0:
        raise InvalidInput("Reward amount must not be zero")

    with ledger.locked_depot(depot_id) as depot:
        entry = ledger.append(
            depot,
            Transaction.REWARD,
            cash_delta=amount,
            override=True,
            created_by=caller.user_id,
        )

    logger.info(f"Reward {amount} granted to depot {depot_id} by {caller.user_id}")
    return entry


def adjust_cash(caller, depot_id, amount):
    authorize(caller, [TEACHER, ADMIN])

    amount = parse_amount(amount)
    if amount == 0:
        raise InvalidInput("Adjustment amount must not be zero")

    with ledger.locked_depot(depot_id) as depot:
        return ledger.append(
            depot,
            Transaction.CASH_ADJUSTMENT,
            cash_delta=amount,
            override=True,
            created_by=caller.user_id,
        )


def reverse_transaction(caller, transaction_id):
    """Book the inverse of an earlier entry. Each entry can be reversed once."""
    authorize(caller, [TEACHER, ADMIN])

    original = Transaction.objects.filter(pk=transaction_id).first()
    if original is None:
        raise NotFound("Transaction not found")

    with ledger.locked_depot(original.depot_id) as depot:
        entry = ledger.append(
            depot,
            Transaction.REVERSAL,
            reverses=original,
            override=True,
            created_by=caller.user_id,
        )

    logger.info(f"Transaction {transaction_id} reversed by #{entry.pk}")
    return entry


# ============================================================
# POSITIONS
# ============================================================

def get_positions(caller, depot_id, prices=price_source):
    """Current holdings with last price, market value and profit."""
    positions = list(
        Position.objects
        .filter(depot__in=scoped_depots(caller, depot_id))
        .select_related('asset')
        .order_by('asset__symbol')
    )
    last_prices = prices.latest_prices([p.asset_id for p in positions])

    rows = []
    for p in positions:
        last_price = last_prices.get(p.asset_id)
        market_value = to_cents(p.quantity * last_price) if last_price is not None else None
        profit = market_value - p.cost_basis if market_value is not None else None
        rows.append({
            "asset_id": p.asset_id,
            "symbol": p.asset.symbol,
            "name": p.asset.name,
            "quantity": p.quantity,
            "cost_basis": p.cost_basis,
            "average_price": (p.cost_basis / p.quantity) if p.quantity else ZERO,
            "last_price": last_price,
            "market_value": market_value,
            "profit": profit,
            "profit_percent": (profit / p.cost_basis * 100) if profit is not None and p.cost_basis else None,
        })
    return rows
