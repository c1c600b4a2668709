# ===== apps/analytics/overview.py =====
import logging

from django.db.models import Count, F

from apps.depots.services import visible_depots

logger = logging.getLogger(__name__)


def depot_overview(caller):
    """
    One row per visible depot with counts and budget. Students only see
    depots they are a member of.
    """
    depots = (
        visible_depots(caller)
        .annotate(
            transaction_count=Count('transactions', distinct=True),
            position_count=Count('positions', distinct=True),
            monthly_budget=F('budget__monthly_budget'),
        )
        .prefetch_related('members')
        .order_by('id')
    )

    rows = []
    for depot in depots:
        members = list(depot.members.all())
        rows.append({
            "id": depot.pk,
            "name": depot.name,
            "cash": depot.cash,
            "cash_start": depot.cash_start,
            "transaction_count": depot.transaction_count,
            "position_count": depot.position_count,
            "member_ids": [str(m.pk) for m in members],
            "member_names": [m.name for m in members],
            "monthly_budget": depot.monthly_budget,
        })
    return rows
