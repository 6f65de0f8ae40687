"""Unit tests for balance aggregation"""

import pytest
from dataclasses import replace
from datetime import date, datetime
from splitledger.domain.balances import (
    calculate_all_balances,
    calculate_balance,
    calculate_group_balance,
    get_expenses_by_group,
    get_unread_reminders,
    get_user_debts,
)
from splitledger.domain.exceptions import NotFoundError
from splitledger.domain.models import DebtSummary, Group, Reminder
from splitledger.domain.reducer import apply
from splitledger.domain.commands import SettleExpense


@pytest.fixture
def ledger(snapshot, make_expense):
    """Alice paid dinner for three, Bob paid a taxi for himself and Dave"""
    dinner = make_expense("dinner", 90.0, ["alice", "bob", "carol"], paid_by=["alice"], expense_date=date(2026, 9, 1))
    taxi = make_expense("taxi", 40.0, ["bob", "dave"], paid_by=["bob"], expense_date=date(2026, 9, 20))
    return replace(snapshot, expenses=(dinner, taxi))


def test_calculate_balance_creditor(ledger):
    """Test payer is owed what the others owe"""
    summary = calculate_balance(ledger, "alice")

    assert summary.total_owed == pytest.approx(60.0)
    assert summary.total_owing == 0.0
    assert summary.net_amount == pytest.approx(60.0)
    assert summary.expense_count == 1


def test_calculate_balance_mixed(ledger):
    """Test owed and owing are accumulated per expense"""
    summary = calculate_balance(ledger, "bob")

    assert summary.total_owed == pytest.approx(20.0)  # taxi: paid 40, owes 20
    assert summary.total_owing == pytest.approx(30.0)  # dinner share
    assert summary.net_amount == pytest.approx(-10.0)
    assert summary.expense_count == 2


def test_calculate_balance_ignores_settled_records(ledger):
    settled = apply(ledger, SettleExpense("dinner"))
    summary = calculate_balance(settled, "carol")

    assert summary.total_owing == 0.0
    assert summary.net_amount == 0.0
    assert summary.expense_count == 1


def test_calculate_balance_unknown_user(ledger):
    """Test unknown user gets an all-zero summary instead of an error"""
    assert calculate_balance(ledger, "ghost") == DebtSummary(user_id="ghost")


def test_calculate_balance_participant_without_user_record(ledger, make_expense):
    """Test ids that only appear on expenses still get a real summary"""
    lunch = make_expense("lunch", 30.0, ["erin"], paid_by=["alice"], expense_date=date(2026, 9, 5))
    summary = calculate_balance(replace(ledger, expenses=ledger.expenses + (lunch,)), "erin")

    assert summary.total_owing == pytest.approx(30.0)
    assert summary.expense_count == 1
    assert summary.last_activity == date(2026, 9, 20)


def test_last_activity_spans_all_expenses(ledger):
    """Test last activity is the newest expense in the ledger, even one the user is not in"""
    assert calculate_balance(ledger, "carol").last_activity == date(2026, 9, 20)


def test_calculate_balance_is_idempotent(ledger):
    assert calculate_balance(ledger, "bob") == calculate_balance(ledger, "bob")


def test_batch_balances_match_individual(ledger):
    """Test one-pass aggregation agrees with per-user calls"""
    batch = calculate_all_balances(ledger)

    assert list(batch) == ["alice", "bob", "carol", "dave"]
    for user_id, summary in batch.items():
        assert summary == calculate_balance(ledger, user_id)


def test_batch_balances_include_unlisted_participants(ledger, make_expense):
    stray = make_expense("stray", 10.0, ["erin"], paid_by=["alice"])
    batch = calculate_all_balances(replace(ledger, expenses=ledger.expenses + (stray,)))

    assert batch["erin"].net_amount == pytest.approx(-10.0)
    assert batch["erin"] == calculate_balance(replace(ledger, expenses=ledger.expenses + (stray,)), "erin")


def test_money_is_conserved(ledger, make_expense):
    """Test net amounts across a fully settled ledger sum to zero"""
    extra = make_expense("hotel", 333.33, {"alice": 1, "carol": 2, "dave": 4}, paid_by=["carol", "dave"], split_type="shares")
    closed = replace(ledger, expenses=ledger.expenses + (extra,))
    for expense in closed.expenses:
        closed = apply(closed, SettleExpense(expense.id))

    assert all(p.settled for e in closed.expenses for p in e.participants)
    total = sum(p.net_amount for e in closed.expenses for p in e.participants)
    assert total == pytest.approx(0.0, abs=1e-9)


def test_group_balance(ledger, make_expense):
    group = Group(id="trip", name="Trip", member_ids=("alice", "bob", "carol"))
    boat = make_expense("boat", 60.0, ["alice", "bob", "carol"], paid_by=["carol"], group_id="trip")
    snapshot = replace(ledger, groups=(group,), expenses=ledger.expenses + (boat,))

    balances = calculate_group_balance(snapshot, "trip")

    assert balances["carol"] == pytest.approx(40.0)
    assert balances["alice"] == pytest.approx(-20.0)
    assert balances["bob"] == pytest.approx(-20.0)
    assert [e.id for e in get_expenses_by_group(snapshot, "trip")] == ["boat"]


def test_group_balance_unknown_group(ledger):
    with pytest.raises(NotFoundError):
        calculate_group_balance(ledger, "nope")


def test_user_debts_by_counterparty(ledger):
    """Test debts are broken down per counterparty"""
    bob = get_user_debts(ledger, "bob")
    assert [(d.user_id, d.amount) for d in bob.owes] == [("alice", pytest.approx(30.0))]
    assert [(d.user_id, d.amount) for d in bob.owed] == [("dave", pytest.approx(20.0))]
    assert bob.owes[0].expense_ids == ("dinner",)

    alice = get_user_debts(ledger, "alice")
    assert {d.user_id: d.amount for d in alice.owed} == {"bob": pytest.approx(30.0), "carol": pytest.approx(30.0)}
    assert alice.owes == ()


def test_unread_reminders(ledger):
    reminders = (
        Reminder(id="r1", from_user_id="alice", to_user_id="bob", amount=30.0, created_at=datetime(2026, 9, 2)),
        Reminder(id="r2", from_user_id="alice", to_user_id="bob", amount=30.0, status="dismissed"),
        Reminder(id="r3", from_user_id="dave", to_user_id="bob", amount=5.0, created_at=datetime(2026, 9, 5)),
        Reminder(id="r4", from_user_id="bob", to_user_id="carol", amount=5.0),
    )
    unread = get_unread_reminders(replace(ledger, reminders=reminders), "bob")

    assert [r.id for r in unread] == ["r3", "r1"]
