"""Unit tests for the split calculator"""

import pytest
from dataclasses import replace
from splitledger.domain.exceptions import ValidationError
from splitledger.domain.models import SplitDeclaration, SplitType
from splitledger.domain.splits import compute_splits, normalize_expense, reconcile_payers


def declare(*user_ids, values=None):
    values = values or [None] * len(user_ids)
    return [SplitDeclaration(user_id=uid, split_value=v) for uid, v in zip(user_ids, values)]


def test_equal_split_three_ways():
    """Test 300 split equally over three participants"""
    participants = compute_splits(300.0, declare("a", "b", "c"), "equal")

    assert [p.owed_amount for p in participants] == [100.0, 100.0, 100.0]
    assert [p.net_amount for p in participants] == [-100.0, -100.0, -100.0]
    assert all(p.split_type == SplitType.EQUAL for p in participants)


@pytest.mark.parametrize("amount,count", [(100.0, 3), (0.01, 7), (1234.56, 11), (59.99, 2)])
def test_equal_split_sums_to_total(amount, count):
    """Test every equal share is A/N and shares add back up to A"""
    user_ids = [f"u{i}" for i in range(count)]
    participants = compute_splits(amount, declare(*user_ids), SplitType.EQUAL)

    assert all(p.owed_amount == amount / count for p in participants)
    assert sum(p.owed_amount for p in participants) == pytest.approx(amount)


def test_equal_split_requires_participants():
    with pytest.raises(ValidationError):
        compute_splits(100.0, [], "equal")


def test_non_positive_total_rejected():
    with pytest.raises(ValidationError):
        compute_splits(0.0, declare("a"), "equal")


def test_percentage_split():
    """Test 60/40 percentage split of 100"""
    participants = compute_splits(100.0, declare("a", "b", values=[60, 40]), "percentage")

    assert participants[0].owed_amount == pytest.approx(60.0)
    assert participants[1].owed_amount == pytest.approx(40.0)
    assert participants[0].split_value == 60


@pytest.mark.parametrize("values", [[60, 39], [60, 41]])
def test_percentage_split_must_sum_to_100(values):
    """Test 99% and 101% are rejected"""
    with pytest.raises(ValidationError, match="percentages must sum to 100"):
        compute_splits(100.0, declare("a", "b", values=values), "percentage")


def test_percentage_split_float_noise_accepted():
    """Test thirds expressed with two decimals still count as 100%"""
    participants = compute_splits(90.0, declare("a", "b", "c", values=[33.33, 33.33, 33.34]), "percentage")
    assert sum(p.owed_amount for p in participants) == pytest.approx(90.0)


def test_exact_split_keeps_values():
    """Test exact amounts within the 0.01 tolerance are kept as given"""
    participants = compute_splits(100.0, declare("a", "b", values=[50.0, 49.995]), "exact")

    assert participants[0].owed_amount == 50.0
    assert participants[1].owed_amount == 49.995


def test_exact_split_outside_tolerance():
    with pytest.raises(ValidationError, match="exact amounts must equal total"):
        compute_splits(100.0, declare("a", "b", values=[50.0, 49.98]), "exact")


def test_exact_split_requires_values():
    with pytest.raises(ValidationError):
        compute_splits(100.0, declare("a", "b", values=[100.0, None]), "exact")


def test_shares_split_defaults_to_one_share():
    """Test shares are proportional and a missing value means one share"""
    participants = compute_splits(100.0, declare("a", "b", "c", values=[2, None, 1]), "shares")

    assert [p.owed_amount for p in participants] == pytest.approx([50.0, 25.0, 25.0])


def test_itemized_split_requires_owed_amounts():
    with pytest.raises(ValidationError, match="itemized"):
        compute_splits(30.0, declare("a", "b"), "itemized")


def test_itemized_split_passes_amounts_through():
    declarations = [
        SplitDeclaration(user_id="a", owed_amount=12.5),
        SplitDeclaration(user_id="b", owed_amount=17.5),
    ]
    participants = compute_splits(30.0, declarations, "itemized")

    assert [p.owed_amount for p in participants] == [12.5, 17.5]
    assert [p.net_amount for p in participants] == [-12.5, -17.5]


def test_compute_splits_is_idempotent():
    declarations = declare("a", "b", "c", values=[1, 2, 3])
    assert compute_splits(60.0, declarations, "shares") == compute_splits(60.0, declarations, "shares")


def test_reconcile_payers_credits_payer():
    """Test payer is credited the total, so nets sum to zero"""
    split = compute_splits(90.0, declare("a", "b", "c"), "equal")
    participants = reconcile_payers(split, ["a"], 90.0)

    by_user = {p.user_id: p for p in participants}
    assert by_user["a"].paid_amount == 90.0
    assert by_user["a"].net_amount == pytest.approx(60.0)
    assert by_user["b"].net_amount == pytest.approx(-30.0)
    assert sum(p.net_amount for p in participants) == pytest.approx(0.0)


def test_reconcile_payers_adds_non_participating_payer():
    """Test a payer outside the split gets an entry that owes nothing"""
    split = compute_splits(40.0, declare("b", "c"), "equal")
    participants = reconcile_payers(split, ["a"], 40.0)

    payer = participants[-1]
    assert payer.user_id == "a"
    assert payer.in_split is False
    assert payer.owed_amount == 0.0
    assert payer.net_amount == 40.0


def test_reconcile_payers_splits_payment_between_payers():
    split = compute_splits(100.0, declare("a", "b"), "equal")
    participants = reconcile_payers(split, ["a", "b"], 100.0)

    assert all(p.net_amount == 0.0 for p in participants)


def test_normalize_expense_recomputes_total(make_expense):
    """Test changing the tip recomputes the total and every share"""
    expense = make_expense("e1", 90.0, ["alice", "bob", "carol"], paid_by=["alice"])
    updated = normalize_expense(replace(expense, tip=30.0))

    assert updated.total_amount == 120.0
    assert all(p.owed_amount == pytest.approx(40.0) for p in updated.participants)
    assert updated.participant("alice").net_amount == pytest.approx(80.0)


def test_normalize_expense_is_idempotent(make_expense):
    expense = make_expense("e1", 100.0, {"alice": 70, "bob": 30}, paid_by=["carol"], split_type="percentage")
    assert normalize_expense(expense) == expense


def test_normalize_expense_keeps_payer_out_of_split(make_expense):
    """Test a payer-only entry does not take a share when the split is recomputed"""
    expense = make_expense("e1", 40.0, ["bob", "carol"], paid_by=["alice"])
    updated = normalize_expense(replace(expense, base_amount=60.0))

    assert updated.participant("bob").owed_amount == pytest.approx(30.0)
    assert updated.participant("alice").owed_amount == 0.0
    assert updated.participant("alice").net_amount == pytest.approx(60.0)


def test_normalize_expense_requires_payer(make_expense):
    expense = make_expense("e1", 40.0, ["bob", "carol"], paid_by=["bob"])
    with pytest.raises(ValidationError):
        normalize_expense(replace(expense, paid_by=()))
