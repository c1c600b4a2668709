import datetime
from decimal import Decimal

import pytest
from django.utils import timezone

from apps.depots import services as depot_services
from apps.depots.exceptions import InvalidInput, NotFound, Unauthorized
from apps.depots.models import Budget, Transaction
from apps.market.models import AssetPrice
from apps.savings import services
from apps.savings.models import SavingsPlan, SavingsPlanExecution
from apps.savings.schedule import occurrence_at, shift_months
from apps.savings.scheduler import SavingsPlanScheduler, occurrence_key

T0 = datetime.datetime(2024, 1, 31, 9, 0, tzinfo=datetime.timezone.utc)


@pytest.fixture
def scheduler():
    return SavingsPlanScheduler(interval=1)


@pytest.fixture
def budget_250(teacher_caller, depot):
    services.change_budget(teacher_caller, depot.pk, "250")
    return depot


def test_shift_months_clamps_to_month_end():
    assert shift_months(T0, 1) == datetime.datetime(2024, 2, 29, 9, 0, tzinfo=datetime.timezone.utc)
    assert shift_months(T0, 13) == datetime.datetime(2025, 2, 28, 9, 0, tzinfo=datetime.timezone.utc)
    assert shift_months(T0, -2).month == 11


def test_occurrences_stay_anchored_to_start():
    # Jan 31 -> Feb 29 -> Mar 31, not Mar 29
    assert occurrence_at(T0, SavingsPlan.MONTHLY, 2).day == 31
    assert occurrence_at(T0, SavingsPlan.WEEKLY, 2) == T0 + datetime.timedelta(days=14)
    assert occurrence_at(T0, SavingsPlan.BIWEEKLY, 1) == T0 + datetime.timedelta(days=14)
    assert occurrence_at(T0, SavingsPlan.QUARTERLY, 1).month == 4
    assert occurrence_at(T0, SavingsPlan.YEARLY, 1).year == 2025


def test_monthly_normalization():
    plan = SavingsPlan(worth=Decimal("100"), frequency=SavingsPlan.WEEKLY)
    assert plan.monthly_worth == Decimal("434.500")
    plan.frequency = SavingsPlan.YEARLY
    assert plan.monthly_worth.quantize(Decimal("0.01")) == Decimal("8.33")


def test_remaining_budget(student_caller, budget_250, asset):
    services.create_savings_plan(student_caller, budget_250.pk, asset.pk, "100", SavingsPlan.MONTHLY, starts_at=T0, now=T0)

    overview = services.budget_overview(student_caller, budget_250.pk)
    assert overview["monthly_budget"] == Decimal("250.00")
    assert overview["monthly_expenses"] == Decimal("100.00")
    assert overview["remaining_budget"] == Decimal("150.00")
    assert overview["last_changed"] is not None


def test_over_budget_plans_are_skipped_and_reported(student_caller, budget_250, asset, cheap_asset, scheduler):
    first = services.create_savings_plan(
        student_caller, budget_250.pk, asset.pk, "100", SavingsPlan.MONTHLY, starts_at=T0, now=T0)
    second = services.create_savings_plan(
        student_caller, budget_250.pk, cheap_asset.pk, "200", SavingsPlan.MONTHLY, starts_at=T0, now=T0)
    assert services.remaining_budget(budget_250) == Decimal("-50")

    report = scheduler.tick(now=T0)

    assert report.skipped == 2
    assert report.executed == 0
    assert not budget_250.transactions.exists()

    skipped = services.list_executions(student_caller, budget_250.pk, status=SavingsPlanExecution.SKIPPED)
    assert {e.plan_id for e in skipped} == {first.pk, second.pk}
    assert all("budget" in e.reason.lower() for e in skipped)

    # Skipped occurrences still advance
    first.refresh_from_db()
    assert first.next_occurrence == shift_months(T0, 1)


def test_tick_is_idempotent(student_caller, budget_250, asset, scheduler):
    plan = services.create_savings_plan(
        student_caller, budget_250.pk, asset.pk, "100", SavingsPlan.MONTHLY, starts_at=T0, now=T0)

    scheduler.tick(now=T0)
    scheduler.tick(now=T0)

    entries = Transaction.objects.filter(savings_plan=plan)
    assert entries.count() == 1
    entry = entries.get()
    assert entry.kind == Transaction.BUY
    assert entry.quantity == Decimal("1")
    assert entry.occurrence_key == occurrence_key(plan.pk, T0)
    assert plan.executions.get().transaction_id == entry.pk


def test_recorded_occurrence_only_advances(student_caller, budget_250, asset, scheduler):
    plan = services.create_savings_plan(
        student_caller, budget_250.pk, asset.pk, "100", SavingsPlan.MONTHLY, starts_at=T0, now=T0)
    scheduler.tick(now=T0)

    # Simulate a crash that lost the advance of next_occurrence
    SavingsPlan.objects.filter(pk=plan.pk).update(occurrence_number=0, next_occurrence=T0)
    report = scheduler.tick(now=T0)

    assert report.outcomes == []
    assert Transaction.objects.filter(savings_plan=plan).count() == 1
    plan.refresh_from_db()
    assert plan.next_occurrence == shift_months(T0, 1)


def test_missed_occurrences_buy_once_at_current_price(student_caller, budget_250, asset, scheduler):
    plan = services.create_savings_plan(
        student_caller, budget_250.pk, asset.pk, "50", SavingsPlan.WEEKLY, starts_at=T0, now=T0)
    Budget.objects.filter(depot=budget_250).update(monthly_budget=Decimal("500"))
    AssetPrice.objects.create(asset=asset, date=datetime.date(2024, 2, 10), close=Decimal("125"))

    report = scheduler.tick(now=T0 + datetime.timedelta(days=15))

    assert report.executed == 1
    assert report.skipped == 2
    assert [o.scheduled_for for o in report.outcomes] == [
        T0, T0 + datetime.timedelta(days=7), T0 + datetime.timedelta(days=14)
    ]
    assert all("superseded" in o.reason for o in report.outcomes[:2])

    entry = Transaction.objects.get(savings_plan=plan)
    assert entry.unit_price == Decimal("125")
    assert entry.quantity == Decimal("0.4")
    plan.refresh_from_db()
    assert plan.next_occurrence == T0 + datetime.timedelta(days=21)


def test_long_stale_plan_buys_at_most_once(student_caller, budget_250, asset, scheduler):
    plan = services.create_savings_plan(
        student_caller, budget_250.pk, asset.pk, "10", SavingsPlan.WEEKLY, starts_at=T0, now=T0)
    Budget.objects.filter(depot=budget_250).update(monthly_budget=Decimal("500"))
    now = T0 + datetime.timedelta(days=365)

    report = scheduler.tick(now=now)
    scheduler.tick(now=now)

    assert report.executed == 1
    assert Transaction.objects.filter(savings_plan=plan).count() == 1
    plan.refresh_from_db()
    assert plan.next_occurrence > now


def test_price_on_tick_date_is_used(student_caller, budget_250, asset, scheduler):
    AssetPrice.objects.create(asset=asset, date=datetime.date(2024, 3, 1), close=Decimal("200"))
    plan = services.create_savings_plan(
        student_caller, budget_250.pk, asset.pk, "100", SavingsPlan.MONTHLY, starts_at=T0, now=T0)

    scheduler.tick(now=T0)

    assert Transaction.objects.get(savings_plan=plan).unit_price == Decimal("100")


def test_start_in_the_past_is_rejected(student_caller, depot, asset):
    with pytest.raises(InvalidInput):
        services.create_savings_plan(
            student_caller, depot.pk, asset.pk, "10", SavingsPlan.MONTHLY,
            starts_at=T0 - datetime.timedelta(seconds=1), now=T0)
    assert not SavingsPlan.objects.filter(depot=depot).exists()


def test_deleted_plan_keeps_its_ledger_reference(student_caller, budget_250, asset, scheduler):
    plan = services.create_savings_plan(
        student_caller, budget_250.pk, asset.pk, "100", SavingsPlan.MONTHLY, starts_at=T0, now=T0)
    scheduler.tick(now=T0)
    entry = Transaction.objects.get(savings_plan=plan)
    plan_id = plan.pk

    services.delete_savings_plans(student_caller, [plan_id])

    assert not SavingsPlan.objects.filter(pk=plan_id).exists()
    stored = Transaction.objects.filter(pk=entry.pk).values_list('savings_plan_id', flat=True).get()
    assert stored == plan_id


def test_quantity_rounds_down(student_caller, budget_250, make_asset, scheduler):
    odd = make_asset("ODD", "3")
    services.create_savings_plan(student_caller, budget_250.pk, odd.pk, "100", SavingsPlan.MONTHLY, starts_at=T0, now=T0)

    scheduler.tick(now=T0)

    entry = budget_250.transactions.get()
    assert entry.quantity == Decimal("33.33333333")
    assert entry.cash_delta == Decimal("-100.00")


def test_failures_are_isolated_per_plan(student_caller, budget_250, asset, make_asset, scheduler):
    unpriced = make_asset("NOPR", None)
    broken = services.create_savings_plan(
        student_caller, budget_250.pk, unpriced.pk, "10", SavingsPlan.MONTHLY, starts_at=T0, now=T0)
    healthy = services.create_savings_plan(
        student_caller, budget_250.pk, asset.pk, "100", SavingsPlan.MONTHLY, starts_at=T0, now=T0)

    report = scheduler.tick(now=T0)

    assert report.failed == 1
    assert report.executed == 1
    assert broken.executions.get().status == SavingsPlanExecution.FAILED
    assert healthy.executions.get().status == SavingsPlanExecution.EXECUTED


def test_insufficient_cash_fails_occurrence(teacher_caller, student_caller, budget_250, asset, scheduler):
    depot_services.grant_reward(teacher_caller, budget_250.pk, "-49950")
    plan = services.create_savings_plan(
        student_caller, budget_250.pk, asset.pk, "100", SavingsPlan.MONTHLY, starts_at=T0, now=T0)

    scheduler.tick(now=T0)

    execution = plan.executions.get()
    assert execution.status == SavingsPlanExecution.FAILED
    assert not Transaction.objects.filter(savings_plan=plan).exists()


def test_change_budget_requires_teacher(student_caller, depot):
    with pytest.raises(Unauthorized):
        services.change_budget(student_caller, depot.pk, "1000")
    with pytest.raises(Unauthorized):
        services.change_budget(student_caller, 999999, "1000")


def test_change_budget_rejects_negative(teacher_caller, depot):
    with pytest.raises(InvalidInput):
        services.change_budget(teacher_caller, depot.pk, "-1")


def test_plan_validation(student_caller, depot, asset):
    with pytest.raises(InvalidInput):
        services.create_savings_plan(student_caller, depot.pk, asset.pk, "0", SavingsPlan.MONTHLY)
    with pytest.raises(InvalidInput):
        services.create_savings_plan(student_caller, depot.pk, asset.pk, "10", "daily")
    with pytest.raises(NotFound):
        services.create_savings_plan(student_caller, depot.pk, 999999, "10", SavingsPlan.MONTHLY)


def test_update_reanchors_on_frequency_change(student_caller, depot, asset, scheduler):
    Budget.objects.filter(depot=depot).update(monthly_budget=Decimal("1000"))
    plan = services.create_savings_plan(student_caller, depot.pk, asset.pk, "100", SavingsPlan.MONTHLY, starts_at=T0, now=T0)
    scheduler.tick(now=T0)

    plan = services.update_savings_plan(student_caller, plan.pk, frequency=SavingsPlan.WEEKLY, worth="25")

    assert plan.worth == Decimal("25.00")
    assert plan.starts_at == shift_months(T0, 1)
    assert plan.next_occurrence == shift_months(T0, 1)
    plan.advance()
    assert plan.next_occurrence == shift_months(T0, 1) + datetime.timedelta(days=7)


def test_other_students_cannot_touch_plans(student_caller, other_student, depot, asset):
    from apps.users.roles import resolve_caller

    plan = services.create_savings_plan(student_caller, depot.pk, asset.pk, "10", SavingsPlan.MONTHLY)
    intruder = resolve_caller(other_student)

    with pytest.raises(NotFound):
        services.update_savings_plan(intruder, plan.pk, worth="20")
    with pytest.raises(NotFound):
        services.delete_savings_plans(intruder, [plan.pk])


def test_delete_is_all_or_nothing(student_caller, depot, asset, scheduler):
    Budget.objects.filter(depot=depot).update(monthly_budget=Decimal("1000"))
    keep = services.create_savings_plan(student_caller, depot.pk, asset.pk, "10", SavingsPlan.MONTHLY, starts_at=T0, now=T0)
    other = services.create_savings_plan(student_caller, depot.pk, asset.pk, "20", SavingsPlan.MONTHLY, starts_at=T0, now=T0)

    with pytest.raises(NotFound):
        services.delete_savings_plans(student_caller, [keep.pk, 999999])
    assert SavingsPlan.objects.filter(pk__in=[keep.pk, other.pk]).count() == 2

    scheduler.tick(now=T0)
    services.delete_savings_plans(student_caller, [keep.pk, other.pk])

    assert not SavingsPlan.objects.filter(depot=depot).exists()
    # History survives the plans
    assert SavingsPlanExecution.objects.filter(depot=depot).count() == 2
    assert depot.transactions.count() == 2


def test_plans_not_yet_due_are_left_alone(student_caller, depot, asset, scheduler):
    future = timezone.now() + datetime.timedelta(days=3)
    services.create_savings_plan(student_caller, depot.pk, asset.pk, "10", SavingsPlan.MONTHLY, starts_at=future)

    report = scheduler.tick()

    assert report.outcomes == []


def test_stop_joins_the_loop_thread(monkeypatch):
    scheduler = SavingsPlanScheduler(interval=60)
    monkeypatch.setattr(scheduler, "tick_safely", lambda: None)
    scheduler.start()
    thread, loop = scheduler.loop_thread, scheduler.loop

    scheduler.stop()

    assert not thread.is_alive()
    assert loop.is_closed()
    assert scheduler.loop is None and scheduler.future is None
