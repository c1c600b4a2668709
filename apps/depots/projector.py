# ===== apps/depots/projector.py =====
"""
Position & cash projector.

``apply`` is the single fold rule of the ledger. The ledger runs it eagerly on
every append (persisting ``Depot.cash`` and ``Position`` rows); ``project``
runs it lazily over the full history. Both must give the same result.
"""
from dataclasses import dataclass, field
from decimal import Decimal, ROUND_HALF_UP
from typing import Dict, Iterable

from .exceptions import InsufficientPosition

ZERO = Decimal('0')
CENT = Decimal('0.01')
QUANTUM = Decimal('0.00000001')


def to_cents(value) -> Decimal:
    return Decimal(value).quantize(CENT, rounding=ROUND_HALF_UP)


def trade_value(quantity, unit_price) -> Decimal:
    """Cash value of a trade, always positive, rounded half-up to cents."""
    return to_cents(abs(Decimal(quantity)) * Decimal(unit_price))


@dataclass(frozen=True)
class Holding:
    quantity: Decimal
    cost_basis: Decimal

    @property
    def average_price(self):
        if not self.quantity:
            return ZERO
        return self.cost_basis / self.quantity


@dataclass(frozen=True)
class Projection:
    cash: Decimal
    positions: Dict[object, Holding] = field(default_factory=dict)

    def holding(self, asset_id) -> Holding:
        return self.positions.get(asset_id, Holding(ZERO, ZERO))

    def as_dict(self):
        return {
            "cash": self.cash,
            "positions": {
                asset_id: {"quantity": h.quantity, "cost_basis": h.cost_basis}
                for asset_id, h in sorted(self.positions.items(), key=lambda item: str(item[0]))
            },
        }


def apply(projection: Projection, entry) -> Projection:
    """
    Fold one ledger entry into a projection and return the new projection.

    ``entry`` needs ``asset_id``, signed ``quantity``, ``unit_price`` and
    ``cash_delta``. A positive quantity adds units at ``unit_price``; a
    negative one removes units and reduces the cost basis pro rata.
    """
    cash = projection.cash + Decimal(entry.cash_delta)
    quantity = Decimal(entry.quantity or 0)

    if entry.asset_id is None or not quantity:
        return Projection(cash=cash, positions=projection.positions)

    held = projection.holding(entry.asset_id)
    remaining = held.quantity + quantity

    if quantity > 0:
        cost_basis = held.cost_basis + trade_value(quantity, entry.unit_price)
    else:
        if remaining < 0:
            raise InsufficientPosition(
                f"Cannot remove {abs(quantity)} units of asset {entry.asset_id}: only {held.quantity} held"
            )
        cost_basis = ZERO if remaining == 0 else to_cents(held.cost_basis * remaining / held.quantity)

    positions = dict(projection.positions)
    if remaining == 0:
        positions.pop(entry.asset_id, None)
    else:
        positions[entry.asset_id] = Holding(quantity=remaining, cost_basis=cost_basis)

    return Projection(cash=cash, positions=positions)


def replay_order(entry):
    # Identical timestamps fall back to the ledger-assigned insertion id.
    return (entry.timestamp, entry.id)


def project(cash_start, entries: Iterable) -> Projection:
    projection = Projection(cash=Decimal(cash_start))
    for entry in sorted(entries, key=replay_order):
        projection = apply(projection, entry)
    return projection


def project_depot(depot) -> Projection:
    """Lazy projection: replay the depot's whole ledger."""
    return project(depot.cash_start, depot.transactions.order_by('timestamp', 'id'))


def stored_projection(depot) -> Projection:
    """Eager projection as persisted by the ledger."""
    positions = {
        p.asset_id: Holding(quantity=p.quantity, cost_basis=p.cost_basis)
        for p in depot.positions.all()
    }
    return Projection(cash=depot.cash, positions=positions)
