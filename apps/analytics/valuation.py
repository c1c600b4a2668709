# ===== apps/analytics/valuation.py =====
"""
Depot valuation over time.

Snapshots are taken once per day per depot by the scheduler; the current value
is always computed live from the stored projection and the latest prices.
"""
import datetime
import logging

from django.utils import timezone

from apps.depots.models import Depot
from apps.depots.projector import ZERO, to_cents
from apps.depots.services import get_depot, scoped_depots
from apps.market.prices import price_source
from .models import DepotValuePoint

logger = logging.getLogger(__name__)

HORIZONS = {
    "diff_1d": datetime.timedelta(days=1),
    "diff_1m": datetime.timedelta(days=30),
    "diff_1y": datetime.timedelta(days=365),
}


def current_value(depot, prices=price_source, on=None):
    """(cash, market value) of the depot. Unpriced assets count at cost basis."""
    positions = list(depot.positions.all())
    last_prices = prices.latest_prices([p.asset_id for p in positions], on=on)

    market_value = ZERO
    for p in positions:
        price = last_prices.get(p.asset_id)
        market_value += to_cents(p.quantity * price) if price is not None else p.cost_basis
    return depot.cash, market_value


def take_snapshot(depot, prices=price_source, now=None):
    now = now or timezone.now()
    cash, market_value = current_value(depot, prices, on=now)
    point, _ = DepotValuePoint.objects.update_or_create(
        depot=depot,
        date=timezone.localdate(now),
        defaults={
            "timestamp": now,
            "cash": cash,
            "market_value": market_value,
        },
    )
    return point


def take_all_snapshots(prices=price_source, now=None):
    now = now or timezone.now()
    count = 0
    for depot in Depot.objects.all().iterator():
        take_snapshot(depot, prices, now)
        count += 1
    logger.info(f"Snapshots taken for {count} depots")
    return count


def take_missing_snapshots(prices=price_source, now=None):
    """Snapshot only the depots that have no point for today yet."""
    now = now or timezone.now()
    depots = Depot.objects.exclude(value_points__date=timezone.localdate(now))
    count = 0
    for depot in depots.iterator():
        take_snapshot(depot, prices, now)
        count += 1
    if count:
        logger.info(f"Daily snapshots taken for {count} depots")
    return count


def value_series(caller, depot_id, start=None, end=None):
    points = DepotValuePoint.objects.filter(depot__in=scoped_depots(caller, depot_id))
    if start is not None:
        points = points.filter(timestamp__gte=start)
    if end is not None:
        points = points.filter(timestamp__lte=end)
    return points.order_by('timestamp')


def aggregate_deltas(caller, depot_id, prices=price_source, now=None):
    """
    Current total and its change against the snapshots one day, one month and
    one year back. A change is None when no snapshot that old exists.
    """
    now = now or timezone.now()
    depot = get_depot(caller, depot_id)
    cash, market_value = current_value(depot, prices, on=now)
    total = cash + market_value

    result = {
        "depot_id": depot.pk,
        "total": total,
        "cash": cash,
        "market_value": market_value,
    }
    for name, horizon in HORIZONS.items():
        point = (
            depot.value_points
            .filter(timestamp__lte=now - horizon)
            .order_by('-timestamp')
            .first()
        )
        result[name] = total - point.total if point is not None else None
    return result
