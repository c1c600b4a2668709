import datetime
import logging
from decimal import Decimal
from typing import Dict, Iterable, Optional, Protocol

from django.db.models import OuterRef, Subquery
from django.utils import timezone

from .models import Asset, AssetPrice

logger = logging.getLogger(__name__)


class PriceSource(Protocol):
    """Price lookup collaborator: last known close at or before a date."""

    def latest_price(self, asset_id, on: Optional[datetime.date] = None) -> Optional[Decimal]:
        ...

    def latest_prices(self, asset_ids: Iterable, on: Optional[datetime.date] = None) -> Dict[object, Decimal]:
        ...


class StoredPriceSource:
    """
    Reads the ``asset_prices`` table written by the external price updater.
    Assets without any price at or before ``on`` are left out of the result.
    """

    def _day(self, on):
        if on is None:
            return timezone.localdate()
        if isinstance(on, datetime.datetime):
            return timezone.localtime(on).date() if timezone.is_aware(on) else on.date()
        return on

    def latest_price(self, asset_id, on=None):
        row = (
            AssetPrice.objects
            .filter(asset_id=asset_id, date__lte=self._day(on))
            .order_by('-date')
            .values_list('close', flat=True)
            .first()
        )
        return row

    def latest_prices(self, asset_ids, on=None):
        asset_ids = list(asset_ids)
        if not asset_ids:
            return {}

        latest = (
            AssetPrice.objects
            .filter(asset=OuterRef('pk'), date__lte=self._day(on))
            .order_by('-date')
            .values('close')[:1]
        )
        rows = (
            Asset.objects
            .filter(pk__in=asset_ids)
            .annotate(last_close=Subquery(latest))
            .values_list('pk', 'last_close')
        )
        prices = {pk: close for pk, close in rows if close is not None}

        missing = set(asset_ids) - set(prices)
        if missing:
            logger.debug(f"No stored price for assets {sorted(missing)}")
        return prices


# Singleton
price_source = StoredPriceSource()
