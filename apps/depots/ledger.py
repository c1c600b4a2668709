# ===== apps/depots/ledger.py =====
"""
Transaction ledger.

``append`` is the only write path for cash and positions. It must run inside
``locked_depot`` so that the check (cash / holdings) and the act (insert +
projection update) happen under the depot's row lock in one database
transaction.
"""
from contextlib import contextmanager
from decimal import Decimal
import logging

from django.db import IntegrityError, OperationalError, transaction
from django.db.models import Max
from django.utils import timezone

from .exceptions import Conflict, InsufficientCash, InvalidInput, NotFound
from .models import Depot, Position, Transaction
from .notify import push_depot_update
from .projector import Holding, Projection, ZERO, apply, to_cents, trade_value

logger = logging.getLogger(__name__)

TRADE_KINDS = (Transaction.BUY, Transaction.SELL)
CASH_KINDS = (Transaction.REWARD, Transaction.CASH_ADJUSTMENT)


@contextmanager
def locked_depot(depot_id):
    """
    Open a database transaction holding an exclusive lock on one depot row.
    Lock failures (timeouts, serialization errors) surface as ``Conflict``.
    """
    try:
        with transaction.atomic():
            depot = Depot.objects.select_for_update().filter(pk=depot_id).first()
            if depot is None:
                raise NotFound("Depot not found")
            yield depot
    except OperationalError as e:
        logger.warning(f"Depot {depot_id} lock failed: {e}")
        raise Conflict() from e


def _next_timestamp(depot):
    # Keeps replay order (timestamp, id) equal to append order.
    now = timezone.now()
    last = depot.transactions.aggregate(last=Max('timestamp'))['last']
    if last and last > now:
        return last
    return now


def _current_projection(depot, asset_id):
    positions = {}
    if asset_id is not None:
        row = Position.objects.filter(depot=depot, asset_id=asset_id).first()
        if row is not None:
            positions[asset_id] = Holding(quantity=row.quantity, cost_basis=row.cost_basis)
    return Projection(cash=depot.cash, positions=positions)


def _persist(depot, asset_id, projection):
    depot.cash = projection.cash
    depot.save(update_fields=['cash'])

    if asset_id is None:
        return

    holding = projection.positions.get(asset_id)
    if holding is None:
        Position.objects.filter(depot=depot, asset_id=asset_id).delete()
    else:
        Position.objects.update_or_create(
            depot=depot,
            asset_id=asset_id,
            defaults={
                "quantity": holding.quantity,
                "cost_basis": holding.cost_basis,
            },
        )


def _build_entry(depot, kind, asset, quantity, unit_price, cash_delta, reverses):
    if kind in TRADE_KINDS:
        if asset is None:
            raise InvalidInput("Trades need an asset")
        quantity = Decimal(quantity)
        unit_price = Decimal(unit_price)
        if quantity <= 0:
            raise InvalidInput("Quantity must be positive")
        if unit_price <= 0:
            raise InvalidInput("Unit price must be positive")

        value = trade_value(quantity, unit_price)
        if kind == Transaction.BUY:
            return Transaction(depot=depot, kind=kind, asset=asset, quantity=quantity,
                               unit_price=unit_price, cash_delta=-value)
        return Transaction(depot=depot, kind=kind, asset=asset, quantity=-quantity,
                           unit_price=unit_price, cash_delta=value)

    if kind in CASH_KINDS:
        if asset is not None:
            raise InvalidInput("Cash events do not reference an asset")
        if cash_delta is None or Decimal(cash_delta) == 0:
            raise InvalidInput("Cash events need a non-zero amount")
        return Transaction(depot=depot, kind=kind, cash_delta=to_cents(cash_delta))

    if kind == Transaction.REVERSAL:
        if reverses is None:
            raise InvalidInput("Reversal needs the transaction it reverses")
        if reverses.kind == Transaction.REVERSAL:
            raise InvalidInput("A reversal cannot be reversed")
        if reverses.depot_id != depot.pk:
            raise InvalidInput("Reversed transaction belongs to another depot")
        if Transaction.objects.filter(reverses=reverses).exists():
            raise Conflict(f"Transaction {reverses.pk} is already reversed")
        return Transaction(depot=depot, kind=kind, asset_id=reverses.asset_id,
                           quantity=-reverses.quantity, unit_price=reverses.unit_price,
                           cash_delta=-reverses.cash_delta, reverses=reverses)

    raise InvalidInput(f"Unknown transaction kind: {kind}")


def append(depot, kind, *, asset=None, quantity=ZERO, unit_price=ZERO, cash_delta=None,
           override=False, savings_plan=None, occurrence_key=None, reverses=None,
           created_by=None) -> Transaction:
    """
    Append one entry to ``depot``'s ledger and apply it to the stored
    projection. ``depot`` must come from ``locked_depot``.

    Raises ``InvalidInput``, ``InsufficientPosition`` (sell beyond holdings),
    ``InsufficientCash`` (non-override entry leaving cash negative) or
    ``Conflict`` (unique occurrence / reversal already recorded).
    """
    if not transaction.get_connection().in_atomic_block:
        raise RuntimeError("ledger.append must run inside locked_depot()")

    entry = _build_entry(depot, kind, asset, quantity, unit_price, cash_delta, reverses)
    entry.is_override = override
    entry.savings_plan = savings_plan
    entry.occurrence_key = occurrence_key
    entry.created_by_id = created_by

    projected = apply(_current_projection(depot, entry.asset_id), entry)

    if not override and entry.cash_delta < 0 and projected.cash < 0:
        raise InsufficientCash(
            f"Depot {depot.pk} has {depot.cash} cash, {abs(entry.cash_delta)} required"
        )

    entry.timestamp = _next_timestamp(depot)
    try:
        with transaction.atomic():
            entry.save()
    except IntegrityError as e:
        logger.info(f"Duplicate ledger entry for depot {depot.pk}: {e}")
        raise Conflict("Ledger entry already recorded") from e

    _persist(depot, entry.asset_id, projected)
    push_depot_update(depot.pk, "transaction", {
        "id": entry.pk,
        "kind": entry.kind,
        "asset_id": entry.asset_id,
        "quantity": entry.quantity,
        "cash_delta": entry.cash_delta,
        "cash": projected.cash,
    })

    logger.info(
        f"Appended #{entry.pk} {entry.kind} depot={depot.pk} "
        f"asset={entry.asset_id} qty={entry.quantity} cash_delta={entry.cash_delta}"
    )
    return entry


def list_by_depot(depots, start=None, end=None):
    entries = Transaction.objects.filter(depot__in=depots).select_related('asset')
    if start is not None:
        entries = entries.filter(timestamp__gte=start)
    if end is not None:
        entries = entries.filter(timestamp__lte=end)
    return entries.order_by('timestamp', 'id')
