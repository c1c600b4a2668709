from decimal import Decimal
import threading

import pytest
from django.db import OperationalError, connection

from apps.depots import ledger, services
from apps.depots.exceptions import (
    Conflict, InsufficientCash, InsufficientPosition, InvalidInput, NotFound, Unauthorized
)
from apps.depots.models import Depot, ImmutableTransactionError, Position, Transaction
from apps.depots.projector import project_depot, stored_projection
from apps.savings import services as savings_services
from apps.savings.models import SavingsPlan


def test_new_depot_starts_with_configured_cash(depot, settings):
    assert depot.cash == settings.DEPOT_CASH_START
    assert depot.cash_start == settings.DEPOT_CASH_START
    assert depot.budget.monthly_budget == settings.DEPOT_MONTHLY_BUDGET_START


def test_buy_and_sell_move_cash_and_position(student_caller, depot, asset):
    services.create_transaction(student_caller, depot.pk, asset.pk, Transaction.BUY, "10")
    depot.refresh_from_db()
    assert depot.cash == Decimal("49000.00")

    position = Position.objects.get(depot=depot, asset=asset)
    assert position.quantity == Decimal("10")
    assert position.cost_basis == Decimal("1000.00")

    services.create_transaction(student_caller, depot.pk, asset.pk, Transaction.SELL, "4")
    depot.refresh_from_db()
    position.refresh_from_db()
    assert depot.cash == Decimal("49400.00")
    assert position.quantity == Decimal("6")
    assert position.cost_basis == Decimal("600.00")


def test_sell_more_than_held_leaves_no_entry(student_caller, depot, asset):
    services.create_transaction(student_caller, depot.pk, asset.pk, Transaction.BUY, "1")
    count = depot.transactions.count()

    with pytest.raises(InsufficientPosition):
        services.create_transaction(student_caller, depot.pk, asset.pk, Transaction.SELL, "2")

    assert depot.transactions.count() == count
    assert Position.objects.get(depot=depot, asset=asset).quantity == Decimal("1")


def test_sell_without_position(student_caller, depot, asset):
    with pytest.raises(InsufficientPosition):
        services.create_transaction(student_caller, depot.pk, asset.pk, Transaction.SELL, "1")
    assert not depot.transactions.exists()


def test_buy_beyond_cash_is_rejected(student_caller, depot, asset):
    with pytest.raises(InsufficientCash):
        services.create_transaction(student_caller, depot.pk, asset.pk, Transaction.BUY, "501")
    depot.refresh_from_db()
    assert depot.cash == Decimal("50000.00")
    assert not depot.transactions.exists()


def test_invalid_quantity(student_caller, depot, asset):
    with pytest.raises(InvalidInput):
        services.create_transaction(student_caller, depot.pk, asset.pk, Transaction.BUY, "-1")
    with pytest.raises(InvalidInput):
        services.create_transaction(student_caller, depot.pk, asset.pk, Transaction.BUY, "abc")


def test_asset_without_price(student_caller, depot, make_asset):
    unpriced = make_asset("NOPR", None)
    with pytest.raises(InvalidInput):
        services.create_transaction(student_caller, depot.pk, unpriced.pk, Transaction.BUY, "1")


def test_foreign_depot_looks_absent(other_student, depot, asset):
    from apps.users.roles import resolve_caller

    with pytest.raises(NotFound):
        services.create_transaction(resolve_caller(other_student), depot.pk, asset.pk, Transaction.BUY, "1")


def test_reward_may_push_cash_negative(teacher_caller, depot):
    services.grant_reward(teacher_caller, depot.pk, "-60000")
    depot.refresh_from_db()
    assert depot.cash == Decimal("-10000.00")
    assert depot.transactions.get().is_override


def test_reward_requires_teacher_even_for_missing_depot(student_caller, depot):
    with pytest.raises(Unauthorized):
        services.grant_reward(student_caller, depot.pk, "100")
    with pytest.raises(Unauthorized):
        services.grant_reward(student_caller, 999999, "100")


def test_reward_for_missing_depot_is_not_found(teacher_caller, db):
    with pytest.raises(NotFound):
        services.grant_reward(teacher_caller, 999999, "100")


def test_eager_projection_matches_replay(student_caller, teacher_caller, depot, asset, cheap_asset):
    services.create_transaction(student_caller, depot.pk, asset.pk, Transaction.BUY, "3")
    services.create_transaction(student_caller, depot.pk, cheap_asset.pk, Transaction.BUY, "7.5")
    services.create_transaction(student_caller, depot.pk, asset.pk, Transaction.SELL, "1")
    services.grant_reward(teacher_caller, depot.pk, "250")
    services.create_transaction(student_caller, depot.pk, cheap_asset.pk, Transaction.SELL, "7.5")

    depot.refresh_from_db()
    assert stored_projection(depot) == project_depot(depot)


def test_reversal_restores_state(student_caller, teacher_caller, depot, asset):
    buy = services.create_transaction(student_caller, depot.pk, asset.pk, Transaction.BUY, "5")
    reversal = services.reverse_transaction(teacher_caller, buy.pk)

    depot.refresh_from_db()
    assert reversal.reverses_id == buy.pk
    assert reversal.quantity == Decimal("-5")
    assert depot.cash == Decimal("50000.00")
    assert not Position.objects.filter(depot=depot).exists()
    assert stored_projection(depot) == project_depot(depot)

    with pytest.raises(Conflict):
        services.reverse_transaction(teacher_caller, buy.pk)
    with pytest.raises(InvalidInput):
        services.reverse_transaction(teacher_caller, reversal.pk)


def test_reversing_a_buy_after_selling_fails(student_caller, teacher_caller, depot, asset):
    buy = services.create_transaction(student_caller, depot.pk, asset.pk, Transaction.BUY, "5")
    services.create_transaction(student_caller, depot.pk, asset.pk, Transaction.SELL, "5")

    with pytest.raises(InsufficientPosition):
        services.reverse_transaction(teacher_caller, buy.pk)


def test_transactions_are_immutable(student_caller, depot, asset):
    entry = services.create_transaction(student_caller, depot.pk, asset.pk, Transaction.BUY, "1")
    entry.quantity = Decimal("2")
    with pytest.raises(ImmutableTransactionError):
        entry.save()
    with pytest.raises(ImmutableTransactionError):
        entry.delete()


def test_timestamps_never_go_backwards(student_caller, depot, asset):
    for _ in range(3):
        services.create_transaction(student_caller, depot.pk, asset.pk, Transaction.BUY, "1")
    stamps = list(depot.transactions.values_list("timestamp", flat=True))
    assert stamps == sorted(stamps)


def test_append_through_locked_depot(depot):
    with ledger.locked_depot(depot.pk) as locked:
        entry = ledger.append(locked, Transaction.REWARD, cash_delta="5", override=True)
    assert entry.cash_delta == Decimal("5.00")


def test_list_transactions_time_range(student_caller, depot, asset):
    first = services.create_transaction(student_caller, depot.pk, asset.pk, Transaction.BUY, "1")
    second = services.create_transaction(student_caller, depot.pk, asset.pk, Transaction.BUY, "1")

    entries = list(services.list_transactions(student_caller, depot.pk, start=second.timestamp))
    assert second in entries
    if first.timestamp < second.timestamp:
        assert first not in entries


def test_delete_depot_cascades(student_caller, depot, asset):
    services.create_transaction(student_caller, depot.pk, asset.pk, Transaction.BUY, "1")
    savings_services.create_savings_plan(student_caller, depot.pk, asset.pk, "50", SavingsPlan.MONTHLY)
    depot_id = depot.pk

    services.delete_depot(student_caller, depot_id)

    assert not Depot.objects.filter(pk=depot_id).exists()
    assert not Transaction.objects.filter(depot_id=depot_id).exists()
    assert not Position.objects.filter(depot_id=depot_id).exists()
    assert not SavingsPlan.objects.filter(depot_id=depot_id).exists()

    # Reads of a deleted depot come back empty
    assert list(services.list_transactions(student_caller, depot_id)) == []
    assert services.get_positions(student_caller, depot_id) == []
    assert list(savings_services.list_savings_plans(student_caller, depot_id)) == []
    assert list(savings_services.list_executions(student_caller, depot_id)) == []


def test_only_privileged_callers_choose_members(student_caller, other_student, teacher_caller, student):
    with pytest.raises(Unauthorized):
        services.create_depot(student_caller, member_ids=[other_student.pk])

    shared = services.create_depot(
        teacher_caller, name="Class", member_ids=[student.pk, other_student.pk], cash_start="1000"
    )
    assert shared.cash == Decimal("1000.00")
    assert set(shared.members.all()) == {student, other_student}


def test_positions_report(student_caller, depot, asset):
    services.create_transaction(student_caller, depot.pk, asset.pk, Transaction.BUY, "2")
    [row] = services.get_positions(student_caller, depot.pk)

    assert row["symbol"] == "ACME"
    assert row["market_value"] == Decimal("200.00")
    assert row["profit"] == Decimal("0.00")


@pytest.mark.django_db(transaction=True)
def test_concurrent_buys_cannot_overdraw(student_caller, depot, asset):
    # Each buy costs 30000 of the 50000 starting cash
    start = threading.Barrier(2)
    booked, refused = [], []

    def buy():
        try:
            start.wait()
            booked.append(services.create_transaction(student_caller, depot.pk, asset.pk, Transaction.BUY, "300"))
        except (InsufficientCash, Conflict, OperationalError) as e:
            refused.append(e)
        finally:
            connection.close()

    threads = [threading.Thread(target=buy) for _ in range(2)]
    for t in threads:
        t.start()
    for t in threads:
        t.join()

    assert len(booked) <= 1
    assert len(booked) + len(refused) == 2
    depot.refresh_from_db()
    assert depot.cash >= 0
    assert depot.transactions.filter(kind=Transaction.BUY).count() == len(booked)
    assert stored_projection(depot) == project_depot(depot)
