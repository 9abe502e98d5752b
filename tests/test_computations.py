"""Tests for balance aggregation, debt simplification and the derived summaries."""

from __future__ import annotations

import random
from datetime import date
from decimal import Decimal

import pytest

from computations import (
    apply_transactions,
    compute_balances,
    compute_budget_status,
    compute_settlement_summary,
    filter_expenses,
    is_fully_settled,
    member_balance,
    simplify_debts,
)
from errors import InvalidParticipants, SplitAmountMismatch
from models import Budget, EqualSplit, Expense, Group, Settlement, SimplifiedTransaction, Split
from splits import compute_split


def _expense(eid, payer, amount, members, category="Other", day="2024-05-01"):
    return Expense(
        id=eid,
        group_id="g1",
        amount=Decimal(str(amount)),
        payer=payer,
        split_type="equal",
        splits=compute_split(amount, EqualSplit(tuple(members))),
        description=f"expense {eid}",
        category=category,
        date=day,
    )


def _settlement(sid, src, dst, amount):
    return Settlement(sid, "g1", src, dst, Decimal(str(amount)), date="2024-05-02")


def test_scenario_three_way_split_balances_and_plan() -> None:
    balances = compute_balances([_expense("e1", "A", 300, "ABC")], [], ["A", "B", "C"])

    assert balances == {"A": Decimal("200"), "B": Decimal("-100"), "C": Decimal("-100")}
    assert simplify_debts(balances) == [
        SimplifiedTransaction("B", "A", Decimal("100")),
        SimplifiedTransaction("C", "A", Decimal("100")),
    ]


def test_scenario_settlement_reduces_debt() -> None:
    balances = compute_balances(
        [_expense("e1", "A", 300, "ABC")],
        [_settlement("s1", "B", "A", 100)],
        ["A", "B", "C"],
    )

    assert balances == {"A": Decimal("100"), "B": Decimal("0"), "C": Decimal("-100")}
    assert simplify_debts(balances) == [SimplifiedTransaction("C", "A", Decimal("100"))]


def test_payer_outside_split_is_credited_full_amount() -> None:
    balances = compute_balances([_expense("e1", "A", 50, "BC")], [], ["A", "B", "C"])

    assert balances == {"A": Decimal("50"), "B": Decimal("-25"), "C": Decimal("-25")}


def test_balances_are_idempotent() -> None:
    expenses = [_expense("e1", "A", "100.01", "ABC"), _expense("e2", "B", 42, "BC")]
    settlements = [_settlement("s1", "C", "A", 10)]

    first = compute_balances(expenses, settlements, ["A", "B", "C"])
    second = compute_balances(expenses, settlements, ["A", "B", "C"])

    assert first == second
    assert sum(first.values()) == 0


def test_members_missing_from_roster_still_counted() -> None:
    balances = compute_balances([_expense("e1", "A", 30, "AZ")], [], ["A"])

    assert balances == {"A": Decimal("15"), "Z": Decimal("-15")}


def test_inconsistent_expense_rejected() -> None:
    bad = Expense(
        "e1", "g1", Decimal("10"), "A", "custom",
        [Split("A", Decimal("5")), Split("B", Decimal("4"))],
    )
    with pytest.raises(SplitAmountMismatch):
        compute_balances([bad], [], ["A", "B"])

    dup = Expense(
        "e2", "g1", Decimal("10"), "A", "custom",
        [Split("B", Decimal("5")), Split("B", Decimal("5"))],
    )
    with pytest.raises(InvalidParticipants):
        compute_balances([dup], [], ["A", "B"])


def test_ties_broken_by_member_id() -> None:
    balances = {"D": Decimal("-50"), "B": Decimal("50"), "C": Decimal("-50"), "A": Decimal("50")}

    assert simplify_debts(balances) == [
        SimplifiedTransaction("C", "A", Decimal("50")),
        SimplifiedTransaction("D", "B", Decimal("50")),
    ]


def test_largest_amounts_matched_first() -> None:
    balances = {"A": Decimal("70"), "B": Decimal("30"), "C": Decimal("-60"), "D": Decimal("-40")}

    assert simplify_debts(balances) == [
        SimplifiedTransaction("C", "A", Decimal("60")),
        SimplifiedTransaction("D", "B", Decimal("30")),
        SimplifiedTransaction("D", "A", Decimal("10")),
    ]


def test_sub_minor_noise_is_ignored() -> None:
    assert simplify_debts({"A": Decimal("0.004"), "B": Decimal("-0.004")}) == []
    assert simplify_debts({"A": 0.1 + 0.2 - 0.3, "B": 0}) == []


@pytest.mark.parametrize("seed", range(10))
def test_random_ledgers_keep_invariants(seed: int) -> None:
    rng = random.Random(seed)
    members = [f"m{i:02d}" for i in range(rng.randint(2, 9))]
    expenses = []
    for i in range(rng.randint(1, 25)):
        participants = rng.sample(members, rng.randint(1, len(members)))
        amount = Decimal(rng.randint(1, 100_000)) / 100
        expenses.append(_expense(f"e{i}", rng.choice(members), amount, participants))
    settlements = []
    for i in range(rng.randint(0, 6)):
        src, dst = rng.sample(members, 2)
        settlements.append(_settlement(f"s{i}", src, dst, Decimal(rng.randint(1, 5_000)) / 100))

    balances = compute_balances(expenses, settlements, members)
    assert sum(balances.values()) == 0

    plan = simplify_debts(balances)
    nonzero = sum(1 for v in balances.values() if v != 0)
    assert len(plan) <= max(nonzero - 1, 0)
    assert all(t.amount > 0 and t.from_member != t.to_member for t in plan)
    assert is_fully_settled(apply_transactions(balances, plan))
    assert simplify_debts(balances) == plan


def test_member_balance_defaults_to_zero() -> None:
    balances = {"A": Decimal("5")}

    assert member_balance(balances, "A") == Decimal("5")
    assert member_balance(balances, "Q") == Decimal("0")


def test_filter_expenses() -> None:
    expenses = [
        _expense("e1", "A", 30, "AB", category="Rent", day="2024-05-01"),
        _expense("e2", "B", 20, "BC", category="Water", day="2024-05-10"),
        _expense("e3", "C", 10, "C", category="Rent", day="2024-06-01"),
    ]

    assert [e.id for e in filter_expenses(expenses, category="Rent")] == ["e1", "e3"]
    assert [e.id for e in filter_expenses(expenses, member_id="B")] == ["e1", "e2"]
    assert [e.id for e in filter_expenses(expenses, start=date(2024, 5, 10))] == ["e2", "e3"]
    assert [e.id for e in filter_expenses(expenses, end=date(2024, 5, 10))] == ["e1", "e2"]


def test_settlement_summary() -> None:
    summary = compute_settlement_summary(
        [_expense("e1", "A", 300, "ABC")],
        [_settlement("s1", "B", "A", 100)],
        ["A", "B", "C"],
    )

    assert summary["total_expenses"] == Decimal("300")
    assert summary["total_settled"] == Decimal("100")
    assert summary["total_owed"] == Decimal("100")
    assert summary["pending"] == [SimplifiedTransaction("C", "A", Decimal("100"))]
    assert summary["settlement_count"] == 1
    assert summary["member_count"] == 3
    assert summary["settled_members"] == 1
    assert summary["unsettled_members"] == 2
    assert summary["is_fully_settled"] is False
    assert summary["per_person_average"] == Decimal("100")


def test_budget_status_warnings() -> None:
    group = Group(
        id="g1",
        name="Goa trip",
        kind="trip",
        budget=Budget(total=Decimal("1000"), categories={"Transport": Decimal("200"), "Tips": Decimal("100")}),
    )
    expenses = [
        _expense("e1", "A", 250, "AB", category="Transport"),
        _expense("e2", "A", 600, "AB", category="Accommodation"),
        _expense("e3", "B", 85, "AB", category="Tips"),
    ]

    status = compute_budget_status(group, expenses)

    assert status["spent"] == Decimal("935")
    assert status["remaining"] == Decimal("65")
    assert status["progress"] == Decimal("93.50")
    assert status["spent_by_category"]["Accommodation"] == Decimal("600")
    kinds = [(w["type"], w.get("category")) for w in status["warnings"]]
    assert kinds == [("warning", None), ("category_overspend", "Transport"), ("category_warning", "Tips")]
    assert status["warnings"][1]["amount"] == Decimal("50")


def test_budget_overspend_and_no_budget() -> None:
    expenses = [_expense("e1", "A", 120, "AB")]
    over = Group(id="g1", name="Flat", budget=Budget(total=Decimal("100")))

    status = compute_budget_status(over, expenses)
    assert status["warnings"][0]["type"] == "overspend"
    assert status["warnings"][0]["amount"] == Decimal("20")

    none = compute_budget_status(Group(id="g2", name="Flat"), expenses)
    assert none["progress"] == Decimal("0")
    assert none["warnings"] == []


def test_single_minor_unit_balance_is_still_settled() -> None:
    balances = {"A": Decimal("0.01"), "B": Decimal("-0.01"), "C": Decimal("0.004")}

    transfers = simplify_debts(balances)

    assert transfers == [SimplifiedTransaction("B", "A", Decimal("0.01"))]
    assert is_fully_settled(apply_transactions(balances, transfers))
