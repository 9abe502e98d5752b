"""
Business logic and computations for SplitLedger

Everything here is a pure function over a snapshot supplied by the caller.
Balances are recomputed from the full expense and settlement lists on every
call; nothing is cached between calls.
"""
from __future__ import annotations
import heapq
from datetime import date
from decimal import Decimal
from typing import Dict, Iterable, List, Optional, Union

from errors import InvalidParticipants, SplitAmountMismatch
from models import Budget, Expense, Group, Member, Settlement, SimplifiedTransaction
from money import MINOR_UNIT_DIGITS, Number, from_minor, round_half_up, to_minor
from utils import parse_date

DEFAULT_WARNING_THRESHOLD = 80


def _roster_ids(members: Iterable[Union[Member, str]]) -> List[str]:
    return [m.id if isinstance(m, Member) else m for m in members]


def _balance_units(
    expenses: Iterable[Expense],
    settlements: Iterable[Settlement],
    members: Iterable[Union[Member, str]],
    digits: int,
) -> Dict[str, int]:
    """Net position per member in minor units. positive -> is owed; negative -> owes"""
    bal: Dict[str, int] = {m: 0 for m in _roster_ids(members)}

    for e in expenses:
        amount = to_minor(e.amount, digits)
        shares: Dict[str, int] = {}
        for s in e.splits:
            if s.member_id in shares:
                raise InvalidParticipants(
                    f"Expense {e.id} lists member {s.member_id} more than once."
                )
            shares[s.member_id] = to_minor(s.amount, digits)
        if sum(shares.values()) != amount:
            raise SplitAmountMismatch(f"Splits of expense {e.id} do not add up to its amount.")

        # payer only nets the part paid on behalf of others
        bal[e.payer] = bal.get(e.payer, 0) + amount - shares.get(e.payer, 0)
        for member_id, share in shares.items():
            if member_id != e.payer:
                bal[member_id] = bal.get(member_id, 0) - share

    for s in settlements:
        amount = to_minor(s.amount, digits)
        bal[s.from_member] = bal.get(s.from_member, 0) + amount
        bal[s.to_member] = bal.get(s.to_member, 0) - amount

    return bal


def compute_balances(
    expenses: Iterable[Expense],
    settlements: Iterable[Settlement],
    members: Iterable[Union[Member, str]],
    digits: int = MINOR_UNIT_DIGITS,
) -> Dict[str, Decimal]:
    """
    Fold all expenses and settlements into one signed balance per member.
    Roster members come first (starting at zero); members that only appear
    in records are appended so the balances still sum to zero.
    """
    units = _balance_units(expenses, settlements, members, digits)
    return {m: from_minor(u, digits) for m, u in units.items()}


def simplify_debts(
    balances: Dict[str, Number],
    digits: int = MINOR_UNIT_DIGITS,
) -> List[SimplifiedTransaction]:
    """
    Turn a balance map into a short list of payments.
    Greedy: the largest debtor pays the largest creditor min(both) until one
    side runs out. Equal amounts are taken in member id order so the result
    is stable. Balances that round to zero units are skipped; one unit still
    produces a payment.
    """
    creditors = []
    debtors = []
    for member_id, value in balances.items():
        units = to_minor(value, digits)
        if units > 0:
            creditors.append((-units, member_id))
        elif units < 0:
            debtors.append((units, member_id))
    heapq.heapify(creditors)
    heapq.heapify(debtors)

    transfers: List[SimplifiedTransaction] = []
    while creditors and debtors:
        c_neg, cname = heapq.heappop(creditors)
        d_neg, dname = heapq.heappop(debtors)
        camt, damt = -c_neg, -d_neg
        x = min(camt, damt)
        transfers.append(SimplifiedTransaction(dname, cname, from_minor(x, digits)))
        if camt - x > 0:
            heapq.heappush(creditors, (-(camt - x), cname))
        if damt - x > 0:
            heapq.heappush(debtors, (-(damt - x), dname))

    return transfers


def apply_transactions(
    balances: Dict[str, Number],
    transactions: Iterable[SimplifiedTransaction],
    digits: int = MINOR_UNIT_DIGITS,
) -> Dict[str, Decimal]:
    """Balances after every transaction has been paid"""
    units = {m: to_minor(v, digits) for m, v in balances.items()}
    for t in transactions:
        amount = to_minor(t.amount, digits)
        units[t.from_member] = units.get(t.from_member, 0) + amount
        units[t.to_member] = units.get(t.to_member, 0) - amount
    return {m: from_minor(u, digits) for m, u in units.items()}


def member_balance(balances: Dict[str, Decimal], member_id: str) -> Decimal:
    return balances.get(member_id, Decimal("0"))


def is_fully_settled(balances: Dict[str, Number], digits: int = MINOR_UNIT_DIGITS) -> bool:
    """True when nobody owes or is owed at least one minor unit"""
    return all(to_minor(v, digits) == 0 for v in balances.values())


def filter_expenses(
    expenses: Iterable[Expense],
    category: Optional[str] = None,
    member_id: Optional[str] = None,
    start: Optional[date] = None,
    end: Optional[date] = None,
) -> List[Expense]:
    """Filter expenses by category, involved member and inclusive date range"""
    out = []
    for e in expenses:
        if category and e.category != category:
            continue
        if member_id and e.payer != member_id and all(s.member_id != member_id for s in e.splits):
            continue
        if start or end:
            ed = parse_date(e.date)
            if start and ed < start:
                continue
            if end and ed > end:
                continue
        out.append(e)
    return out


def compute_settlement_summary(
    expenses: List[Expense],
    settlements: List[Settlement],
    members: List[Union[Member, str]],
    digits: int = MINOR_UNIT_DIGITS,
) -> dict:
    """
    Settle-up overview for a group.
    Returns dict with total_expenses, total_settled, total_owed, pending,
    settlement_count, member_count, settled_members, unsettled_members,
    is_fully_settled, per_person_average.
    """
    units = _balance_units(expenses, settlements, members, digits)
    balances = {m: from_minor(u, digits) for m, u in units.items()}
    total_expenses = sum(to_minor(e.amount, digits) for e in expenses)
    total_settled = sum(to_minor(s.amount, digits) for s in settlements)
    total_owed = sum(-u for u in units.values() if u < 0)
    member_count = len(_roster_ids(members))
    settled = sum(1 for u in units.values() if u == 0)

    return {
        "total_expenses": from_minor(total_expenses, digits),
        "total_settled": from_minor(total_settled, digits),
        "total_owed": from_minor(total_owed, digits),
        "pending": simplify_debts(balances, digits),
        "settlement_count": len(settlements),
        "member_count": member_count,
        "settled_members": settled,
        "unsettled_members": len(units) - settled,
        "is_fully_settled": total_owed == 0,
        "per_person_average": (
            from_minor(round_half_up(total_expenses, member_count), digits)
            if member_count else Decimal("0")
        ),
    }


def _progress(spent: int, limit: int) -> Decimal:
    """Percent of limit used, two decimals"""
    if limit <= 0:
        return Decimal("0.00")
    return (Decimal(spent) * 100 / Decimal(limit)).quantize(Decimal("0.01"))


def compute_budget_status(
    group: Group,
    expenses: Iterable[Expense],
    warning_threshold: Number = DEFAULT_WARNING_THRESHOLD,
    digits: int = MINOR_UNIT_DIGITS,
) -> dict:
    """
    Spending against the group budget.
    Warnings: overspend (>= 100%), warning (>= threshold) and the same pair
    per category budget.
    """
    budget = group.budget or Budget()
    threshold = Decimal(str(warning_threshold))
    limit = to_minor(budget.total, digits)

    spent = 0
    by_category: Dict[str, int] = {}
    for e in expenses:
        amount = to_minor(e.amount, digits)
        spent += amount
        by_category[e.category] = by_category.get(e.category, 0) + amount

    progress = _progress(spent, limit)
    remaining = limit - spent
    warnings = []
    if limit > 0:
        if progress >= 100:
            over = from_minor(-remaining, digits)
            warnings.append({
                "type": "overspend",
                "message": f"Budget exceeded by {over}",
                "amount": over,
            })
        elif progress >= threshold:
            warnings.append({
                "type": "warning",
                "message": f"{progress:.0f}% of budget used",
                "amount": from_minor(remaining, digits),
            })

    for category, cat_budget in budget.categories.items():
        cat_limit = to_minor(cat_budget, digits)
        cat_spent = by_category.get(category, 0)
        cat_progress = _progress(cat_spent, cat_limit)
        if cat_limit <= 0:
            continue
        if cat_progress >= 100:
            warnings.append({
                "type": "category_overspend",
                "category": category,
                "message": f"{category} budget exceeded",
                "amount": from_minor(cat_spent - cat_limit, digits),
            })
        elif cat_progress >= threshold:
            warnings.append({
                "type": "category_warning",
                "category": category,
                "message": f"{category}: {cat_progress:.0f}% used",
                "amount": from_minor(cat_limit - cat_spent, digits),
            })

    return {
        "budget": from_minor(limit, digits),
        "spent": from_minor(spent, digits),
        "remaining": from_minor(remaining, digits),
        "progress": progress,
        "spent_by_category": {k: from_minor(v, digits) for k, v in by_category.items()},
        "category_budgets": dict(budget.categories),
        "warnings": warnings,
    }
