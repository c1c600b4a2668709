# ===== apps/savings/scheduler.py =====
"""
Savings plan scheduler.

``tick`` processes every due occurrence of every plan. Only the most recent
one of a plan buys; occurrences already superseded by a later due one are
recorded as skipped. Each occurrence runs in
its own locked depot transaction that writes the execution record, the ledger
entry (if any) and the plan's next occurrence together, so a crash can never
leave an occurrence half-processed and a repeated tick never buys twice.
"""
import asyncio
import datetime
import logging
import threading
from dataclasses import dataclass, field
from decimal import ROUND_DOWN
from typing import List, Optional

from channels.db import database_sync_to_async
from django.conf import settings
from django.db import transaction
from django.utils import timezone

from apps.analytics.valuation import take_missing_snapshots
from apps.depots import ledger
from apps.depots.exceptions import BudgetExceeded, Conflict, InsufficientCash, NotFound
from apps.depots.models import Transaction
from apps.depots.notify import push_depot_update
from apps.depots.projector import QUANTUM
from apps.market.prices import price_source
from .models import SavingsPlan, SavingsPlanExecution
from .schedule import occurrence_at
from .services import remaining_budget

logger = logging.getLogger(__name__)

# Occurrences handled per plan and tick; the rest waits for the next tick.
MAX_CATCH_UP = 120


def occurrence_key(plan_id, scheduled_for) -> str:
    return f"{plan_id}:{scheduled_for.isoformat()}"


@dataclass
class Outcome:
    plan_id: int
    depot_id: int
    scheduled_for: datetime.datetime
    status: str
    reason: str = ''
    transaction_id: Optional[int] = None


@dataclass
class TickReport:
    started_at: datetime.datetime
    outcomes: List[Outcome] = field(default_factory=list)
    errors: int = 0
    snapshots: int = 0

    def count(self, status):
        return sum(1 for o in self.outcomes if o.status == status)

    @property
    def executed(self):
        return self.count(SavingsPlanExecution.EXECUTED)

    @property
    def skipped(self):
        return self.count(SavingsPlanExecution.SKIPPED)

    @property
    def failed(self):
        return self.count(SavingsPlanExecution.FAILED)

    def summary(self):
        return (
            f"executed={self.executed} skipped={self.skipped} failed={self.failed} "
            f"errors={self.errors} snapshots={self.snapshots}"
        )


class SavingsPlanScheduler:
    """
    Runs ``tick`` on a fixed interval on a dedicated background asyncio loop,
    or once on demand (management command, tests).
    """

    def __init__(self, prices=price_source, interval=None):
        self.prices = prices
        self.interval = interval or settings.SAVINGS_PLAN_TICK_SECONDS
        self.running = False
        self.loop = None
        self.loop_thread = None
        self.future = None

    # ------------------------------------------------------
    # One tick
    # ------------------------------------------------------
    def tick(self, now=None) -> TickReport:
        now = now or timezone.now()
        report = TickReport(started_at=now)

        due = list(
            SavingsPlan.objects
            .filter(next_occurrence__lte=now)
            .order_by('next_occurrence', 'id')
            .values_list('id', flat=True)
        )
        if due:
            logger.info(f"Tick {now.isoformat()}: {len(due)} plans due")

        for plan_id in due:
            try:
                self.run_plan(plan_id, now, report)
            except Exception:
                # One broken plan must not stop the others
                report.errors += 1
                logger.exception(f"Savings plan {plan_id} failed during tick")

        try:
            report.snapshots = take_missing_snapshots(self.prices, now)
        except Exception:
            report.errors += 1
            logger.exception("Depot value snapshots failed during tick")

        logger.info(f"Tick done: {report.summary()}")
        return report

    def run_plan(self, plan_id, now, report):
        for _ in range(MAX_CATCH_UP):
            outcome = self.run_occurrence(plan_id, now)
            if outcome is None:
                return
            report.outcomes.append(outcome)
        logger.warning(f"Savings plan {plan_id} still behind after {MAX_CATCH_UP} occurrences")

    def run_occurrence(self, plan_id, now) -> Optional[Outcome]:
        """Process the pending occurrence of one plan if it is due."""
        depot_id = SavingsPlan.objects.filter(pk=plan_id).values_list('depot_id', flat=True).first()
        if depot_id is None:
            return None

        try:
            with ledger.locked_depot(depot_id) as depot:
                plan = SavingsPlan.objects.select_for_update().filter(pk=plan_id).first()
                if plan is None:
                    return None

                # Skip past occurrences recorded by an earlier run that did not advance the plan
                while plan.next_occurrence <= now and SavingsPlanExecution.objects.filter(
                        plan=plan, scheduled_for=plan.next_occurrence).exists():
                    plan.advance()
                    plan.save(update_fields=['occurrence_number', 'next_occurrence', 'updated_at'])

                if plan.next_occurrence > now:
                    return None

                scheduled_for = plan.next_occurrence
                status, reason, entry = self._attempt(depot, plan, scheduled_for, now)
                execution = SavingsPlanExecution.objects.create(
                    depot=depot,
                    plan=plan,
                    asset_id=plan.asset_id,
                    scheduled_for=scheduled_for,
                    status=status,
                    reason=reason,
                    worth=plan.worth,
                    transaction=entry,
                )
                plan.advance()
                plan.save(update_fields=['occurrence_number', 'next_occurrence', 'updated_at'])

                if status != SavingsPlanExecution.EXECUTED:
                    push_depot_update(depot.pk, f"savings_plan.{status}", {
                        "plan_id": plan.pk,
                        "execution_id": execution.pk,
                        "scheduled_for": scheduled_for,
                        "reason": reason,
                    })
        except NotFound:
            # Depot deleted between listing and locking
            return None

        log = logger.info if status == SavingsPlanExecution.EXECUTED else logger.warning
        log(f"Savings plan {plan_id} @ {scheduled_for.isoformat()}: {status} {reason}".rstrip())

        return Outcome(
            plan_id=plan_id,
            depot_id=depot_id,
            scheduled_for=scheduled_for,
            status=status,
            reason=reason,
            transaction_id=entry.pk if entry is not None else None,
        )

    def _attempt(self, depot, plan, scheduled_for, now):
        """
        Returns (status, reason, ledger entry or None). Only the latest due
        occurrence buys, at the price of ``now``; older ones are skipped.
        """
        following = occurrence_at(plan.starts_at, plan.frequency, plan.occurrence_number + 1)
        if following <= now:
            return (
                SavingsPlanExecution.SKIPPED,
                f"Missed occurrence, superseded by {following.isoformat()}",
                None,
            )

        remaining = remaining_budget(depot)
        if remaining < 0:
            return (
                SavingsPlanExecution.SKIPPED,
                f"{BudgetExceeded.default_detail} Over by {-remaining:.2f}",
                None,
            )

        price = self.prices.latest_price(plan.asset_id, on=now)
        if price is None:
            return SavingsPlanExecution.FAILED, "No price available", None

        quantity = (plan.worth / price).quantize(QUANTUM, rounding=ROUND_DOWN)
        if quantity <= 0:
            return SavingsPlanExecution.FAILED, f"Worth {plan.worth} buys no units at {price}", None

        key = occurrence_key(plan.pk, scheduled_for)
        try:
            with transaction.atomic():
                entry = ledger.append(
                    depot,
                    Transaction.BUY,
                    asset=plan.asset,
                    quantity=quantity,
                    unit_price=price,
                    savings_plan=plan,
                    occurrence_key=key,
                )
        except InsufficientCash as e:
            return SavingsPlanExecution.FAILED, str(e.detail), None
        except Conflict:
            entry = Transaction.objects.filter(occurrence_key=key).first()
            if entry is None:
                raise
            logger.info(f"Occurrence {key} was already booked as #{entry.pk}")

        return SavingsPlanExecution.EXECUTED, '', entry

    def tick_safely(self):
        try:
            return self.tick()
        except Exception:
            logger.exception("Savings plan tick failed, retrying next interval")
            return None

    # ------------------------------------------------------
    # Background loop
    # ------------------------------------------------------
    async def main_loop(self):
        self.running = True
        logger.info(f"Savings plan scheduler started, interval={self.interval}s")
        while self.running:
            await database_sync_to_async(self.tick_safely)()
            await asyncio.sleep(self.interval)
        logger.info("Savings plan scheduler stopped")

    def start(self):
        if self.running:
            return
        self.loop = asyncio.new_event_loop()

        def _run_loop(loop):
            asyncio.set_event_loop(loop)
            loop.run_forever()

        self.loop_thread = threading.Thread(
            target=_run_loop,
            args=(self.loop,),
            daemon=True,
        )
        self.loop_thread.start()
        self.future = asyncio.run_coroutine_threadsafe(self.main_loop(), self.loop)

    def stop(self, timeout=10):
        self.running = False
        if self.future is not None:
            self.future.cancel()
        if self.loop is not None:
            self.loop.call_soon_threadsafe(self.loop.stop)
        if self.loop_thread is not None:
            self.loop_thread.join(timeout)
            if self.loop_thread.is_alive():
                # Still inside a tick; the daemon thread ends with the process
                logger.warning(f"Savings plan scheduler did not stop within {timeout}s")
                return
        if self.loop is not None:
            self.loop.close()
        self.loop = None
        self.loop_thread = None
        self.future = None


# Singleton
savings_scheduler = SavingsPlanScheduler()
