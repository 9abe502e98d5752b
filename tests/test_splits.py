"""Tests for the split calculator: exact totals, rounding residuals and validation."""

from __future__ import annotations

import random
from decimal import Decimal

import pytest

from errors import (
    InvalidAmount,
    InvalidParticipants,
    PercentageMismatch,
    SplitAmountMismatch,
    SplitLedgerError,
)
from models import CustomSplit, EqualSplit, PercentageSplit, SplitType
from splits import compute_split


def _amounts(splits):
    return [s.amount for s in splits]


def test_equal_split_even_total() -> None:
    splits = compute_split(Decimal("300"), EqualSplit(("A", "B", "C")))

    assert [s.member_id for s in splits] == ["A", "B", "C"]
    assert _amounts(splits) == [Decimal("100"), Decimal("100"), Decimal("100")]


def test_equal_split_residual_goes_to_last_participant() -> None:
    splits = compute_split("100.01", EqualSplit(("A", "B", "C")))

    assert _amounts(splits) == [Decimal("33.34"), Decimal("33.34"), Decimal("33.33")]
    assert sum(_amounts(splits)) == Decimal("100.01")


def test_equal_split_larger_residual_spreads_over_tail() -> None:
    splits = compute_split("1.00", EqualSplit(tuple("ABCDEFG")))

    assert _amounts(splits) == [Decimal("0.14")] * 5 + [Decimal("0.15")] * 2
    assert sum(_amounts(splits)) == Decimal("1.00")


def test_equal_split_order_is_significant_and_stable() -> None:
    first = compute_split("10.00", EqualSplit(("A", "B", "C")))
    again = compute_split("10.00", EqualSplit(("A", "B", "C")))
    reordered = compute_split("10.00", EqualSplit(("C", "B", "A")))

    assert first == again
    assert first[-1].member_id == "C" and first[-1].amount == Decimal("3.34")
    assert reordered[-1].member_id == "A" and reordered[-1].amount == Decimal("3.34")


@pytest.mark.parametrize("seed", range(8))
def test_equal_split_properties(seed: int) -> None:
    rng = random.Random(seed)
    for _ in range(50):
        total = Decimal(rng.randint(1, 500_000)) / 100
        people = tuple(f"m{i}" for i in range(rng.randint(1, 12)))
        amounts = _amounts(compute_split(total, EqualSplit(people)))

        assert sum(amounts) == total
        assert max(amounts) - min(amounts) <= Decimal("0.01")


def test_split_by_type_name_and_participant_list() -> None:
    splits = compute_split(90, "equal", ["A", "B", "C"])

    assert _amounts(splits) == [Decimal("30")] * 3


def test_percentage_split_carries_percentages() -> None:
    splits = compute_split(
        "200", PercentageSplit({"A": 50, "B": "30", "C": Decimal("20")})
    )

    assert _amounts(splits) == [Decimal("100"), Decimal("60"), Decimal("40")]
    assert [s.percentage for s in splits] == [Decimal("50"), Decimal("30"), Decimal("20")]


def test_percentage_split_residual_corrected_on_last() -> None:
    splits = compute_split(
        "0.10", PercentageSplit([("A", "33.33"), ("B", "33.33"), ("C", "33.34")])
    )

    assert _amounts(splits) == [Decimal("0.03"), Decimal("0.03"), Decimal("0.04")]


def test_percentage_split_skips_zero_share_for_residual() -> None:
    splits = compute_split(
        "0.10",
        PercentageSplit([("A", "33.33"), ("B", "33.33"), ("C", "33.34"), ("D", "0")]),
    )

    assert _amounts(splits) == [Decimal("0.03"), Decimal("0.03"), Decimal("0.04"), Decimal("0")]


@pytest.mark.parametrize("seed", range(8))
def test_percentage_split_sums_exactly(seed: int) -> None:
    rng = random.Random(seed)
    for _ in range(50):
        n = rng.randint(1, 8)
        cuts = sorted(rng.randint(0, 10_000) for _ in range(n - 1))
        parts = [b - a for a, b in zip([0] + cuts, cuts + [10_000])]
        pct = [(f"m{i}", Decimal(p) / 100) for i, p in enumerate(parts)]
        total = Decimal(rng.randint(1, 1_000_000)) / 100

        assert sum(_amounts(compute_split(total, PercentageSplit(pct)))) == total


def test_percentages_must_total_one_hundred() -> None:
    with pytest.raises(PercentageMismatch):
        PercentageSplit({"A": 50, "B": 40})
    with pytest.raises(PercentageMismatch):
        compute_split(100, SplitType.PERCENTAGE, [("A", 60), ("B", 60)])


def test_percentages_within_tolerance_are_accepted() -> None:
    splits = compute_split(100, PercentageSplit({"A": "33.33", "B": "33.33", "C": "33.33"}))

    assert sum(_amounts(splits)) == Decimal("100")


def test_custom_split_accepted_unchanged() -> None:
    splits = compute_split("75.50", CustomSplit({"A": "50.00", "B": "25.50"}))

    assert _amounts(splits) == [Decimal("50.00"), Decimal("25.50")]


def test_custom_split_mismatch_rejected() -> None:
    with pytest.raises(SplitAmountMismatch):
        compute_split("100", CustomSplit({"A": "50.00", "B": "49.99"}))


@pytest.mark.parametrize("amount", [0, -5, "0.001", "abc", None])
def test_invalid_total_rejected(amount) -> None:
    with pytest.raises(InvalidAmount):
        compute_split(amount, EqualSplit(("A", "B")))


def test_participants_validated() -> None:
    with pytest.raises(InvalidParticipants):
        EqualSplit(())
    with pytest.raises(InvalidParticipants):
        EqualSplit(("A", "B", "A"))
    with pytest.raises(InvalidParticipants):
        compute_split(10, "equal", [])
    with pytest.raises(InvalidParticipants):
        compute_split(10, EqualSplit(("A", "B")), ["A", "C"])


def test_custom_split_rejects_negative_amount() -> None:
    with pytest.raises(InvalidAmount):
        CustomSplit({"A": "-1", "B": "11"})


@pytest.mark.parametrize("split_type", ["percentage", "custom"])
def test_bare_member_list_rejected_for_weighted_splits(split_type) -> None:
    with pytest.raises(InvalidParticipants):
        compute_split(100, split_type, ["A", "B"])
    with pytest.raises(InvalidParticipants):
        compute_split(100, split_type, [("A", 50, "extra"), ("B", 50)])


def test_non_numeric_percentage_rejected() -> None:
    with pytest.raises(PercentageMismatch):
        PercentageSplit({"A": "x", "B": "50"})
    with pytest.raises(PercentageMismatch):
        compute_split(100, "percentage", [("A", None), ("B", 100)])


def test_non_numeric_custom_amount_rejected() -> None:
    with pytest.raises(InvalidAmount):
        compute_split(100, CustomSplit({"A": "abc", "B": "50"}))
    with pytest.raises(InvalidAmount):
        CustomSplit({"A": float("nan"), "B": "50"})


def test_malformed_split_input_is_a_ledger_error() -> None:
    """Callers can catch one exception type for every bad split input"""
    bad_inputs = [
        lambda: compute_split(100, "percentage", ["A", "B"]),
        lambda: compute_split(100, "custom", ["A", "B"]),
        lambda: compute_split(100, CustomSplit({"A": "abc", "B": "50"})),
        lambda: PercentageSplit({"A": "x", "B": "50"}),
        lambda: CustomSplit(42),
    ]
    for make in bad_inputs:
        with pytest.raises(SplitLedgerError):
            make()
