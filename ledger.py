"""
Settlement ledger for SplitLedger

Write operations on one group's book. Every call receives the GroupBook it
works on; there is no notion of a current group. Each operation validates
completely before touching the book, so a failed call leaves it unchanged.

Group lifecycle: active -> archived, never back. Archived groups refuse new
expenses and members but still accept settlements, and balances can be
computed in either state.
"""
from __future__ import annotations
from datetime import date
from decimal import Decimal
from typing import Dict, List, Optional, Sequence, Union

from computations import (
    DEFAULT_WARNING_THRESHOLD,
    compute_balances,
    compute_budget_status,
    compute_settlement_summary,
    member_balance,
    simplify_debts,
)
from config import LedgerSettings
from errors import (
    GroupArchived,
    InvalidAmount,
    InvalidParticipants,
    InvalidRecord,
    LastAdmin,
    OutstandingBalance,
    RecordNotFound,
    SameMemberSettlement,
    SplitAmountMismatch,
)
from logging_utils import get_logger
from models import (
    Budget,
    Expense,
    Group,
    GroupBook,
    GroupKind,
    GroupStatus,
    Member,
    Settlement,
    SettlementMethod,
    SimplifiedTransaction,
    SplitStrategy,
    SplitType,
)
from money import MINOR_UNIT_DIGITS, Number, from_minor, quantize, to_minor
from splits import compute_split
from utils import date_str, new_id

logger = get_logger(__name__)


def _digits(digits: Optional[int], settings: Optional[LedgerSettings]) -> int:
    """Explicit digits win, then settings, then the module default"""
    if digits is not None:
        return digits
    if settings is not None:
        return settings.minor_unit_digits
    return MINOR_UNIT_DIGITS


def _positive_amount(amount: Number, digits: int) -> Decimal:
    try:
        units = to_minor(amount, digits)
    except (TypeError, ValueError) as error:
        raise InvalidAmount(f"Invalid amount: {amount!r}") from error
    if units <= 0:
        raise InvalidAmount("Amount must be greater than zero.")
    return from_minor(units, digits)


def _require_member(book: GroupBook, member_id: str, role: str) -> None:
    if not member_id:
        raise InvalidRecord(f"{role} is required.")
    if member_id not in book.member_ids():
        raise InvalidRecord(f"{role} {member_id} is not a member of group {book.group.id}.")


def _date(value: Optional[Union[str, date]]) -> str:
    try:
        return date_str(value)
    except (TypeError, ValueError) as error:
        raise InvalidRecord(f"Invalid date {value!r}; expected YYYY-MM-DD.") from error


# ---------------------------------------------------------------------------
# group lifecycle and roster
# ---------------------------------------------------------------------------

def create_group(
    name: str,
    creator_name: str,
    kind: Union[GroupKind, str] = GroupKind.FLAT,
    categories: Optional[List[str]] = None,
    budget: Optional[Budget] = None,
    creator_email: Optional[str] = None,
    group_id: Optional[str] = None,
    settings: Optional[LedgerSettings] = None,
) -> GroupBook:
    """New active group with its creator as the first admin"""
    if not name or not name.strip():
        raise InvalidRecord("Group name is required.")
    if not creator_name or not creator_name.strip():
        raise InvalidRecord("Creator name is required.")
    kind = GroupKind(kind)
    if not categories and settings is not None:
        categories = settings.trip_categories if kind is GroupKind.TRIP else settings.flat_categories
    gid = group_id or new_id()
    group = Group(
        id=gid,
        name=name.strip(),
        kind=kind,
        categories=list(categories or []),
        budget=budget,
    )
    creator = Member(
        id=f"{gid}_{new_id()}",
        name=creator_name.strip(),
        group_id=gid,
        email=creator_email,
        is_admin=True,
    )
    logger.info("Created %s group %s", group.kind.value, gid)
    return GroupBook(group=group, members=[creator])


def archive_group(book: GroupBook) -> Group:
    """Move the group to archived; archiving twice is a no-op"""
    if not book.group.is_archived:
        book.group.status = GroupStatus.ARCHIVED
        logger.info("Archived group %s", book.group.id)
    return book.group


def add_member(
    book: GroupBook,
    name: str,
    email: Optional[str] = None,
    phone: Optional[str] = None,
    is_admin: bool = False,
    member_id: Optional[str] = None,
) -> Member:
    if book.group.is_archived:
        raise GroupArchived("Cannot add members to archived groups.")
    if not name or not name.strip():
        raise InvalidRecord("Member name is required.")
    mid = member_id or f"{book.group.id}_{new_id()}"
    if mid in book.member_ids():
        raise InvalidRecord(f"Member {mid} already exists.")
    member = Member(
        id=mid,
        name=name.strip(),
        group_id=book.group.id,
        email=email,
        phone=phone,
        is_admin=is_admin,
    )
    book.members.append(member)
    logger.info("Added member %s to group %s", mid, book.group.id)
    return member


def remove_member(
    book: GroupBook,
    member_id: str,
    digits: Optional[int] = None,
    settings: Optional[LedgerSettings] = None,
) -> Member:
    """Remove a member whose balance is settled; the last admin cannot leave"""
    member = next((m for m in book.members if m.id == member_id), None)
    if member is None:
        raise RecordNotFound(f"Member {member_id} not found.")
    digits = _digits(digits, settings)

    owed = member_balance(balances(book, digits), member_id)
    if to_minor(owed, digits) != 0:
        raise OutstandingBalance(f"Member {member_id} must settle balance ({owed}) before leaving.")
    if member.is_admin and sum(1 for m in book.members if m.is_admin) == 1:
        raise LastAdmin("Cannot remove the only admin.")

    book.members.remove(member)
    logger.info("Removed member %s from group %s", member_id, book.group.id)
    return member


def set_budget(
    book: GroupBook,
    total: Number,
    categories: Optional[Dict[str, Number]] = None,
    digits: Optional[int] = None,
    settings: Optional[LedgerSettings] = None,
) -> Budget:
    """Replace the group budget; a total of zero means no overall limit"""
    digits = _digits(digits, settings)
    try:
        budget = Budget(
            total=quantize(total, digits),
            categories={k: quantize(v, digits) for k, v in (categories or {}).items()},
        )
    except (TypeError, ValueError) as error:
        raise InvalidAmount(f"Invalid budget: {error}") from error
    if budget.total < 0 or any(v < 0 for v in budget.categories.values()):
        raise InvalidAmount("Budget amounts cannot be negative.")
    book.group.budget = budget
    return budget


# ---------------------------------------------------------------------------
# expenses
# ---------------------------------------------------------------------------

def ensure_can_add_expense(group: Group) -> None:
    """Raise GroupArchived once the group stops accruing costs"""
    if group.is_archived:
        raise GroupArchived("Cannot add expenses to archived groups.")


def add_expense(
    book: GroupBook,
    payer: str,
    amount: Number,
    strategy: Union[SplitStrategy, SplitType, str],
    participants: Optional[Sequence] = None,
    description: str = "",
    category: str = "Other",
    date: Optional[Union[str, date]] = None,
    notes: str = "",
    expense_id: Optional[str] = None,
    digits: Optional[int] = None,
    settings: Optional[LedgerSettings] = None,
) -> Expense:
    """Split amount with the strategy and append the resulting expense"""
    ensure_can_add_expense(book.group)
    digits = _digits(digits, settings)
    if not description or not description.strip():
        raise InvalidRecord("Description is required.")
    _require_member(book, payer, "Payer")
    category = _category(book.group, category)
    when = _date(date)

    splits = compute_split(amount, strategy, participants, digits)
    for s in splits:
        _require_member(book, s.member_id, "Participant")

    expense = Expense(
        id=expense_id or new_id(),
        group_id=book.group.id,
        amount=_positive_amount(amount, digits),
        payer=payer,
        split_type=_split_type(strategy),
        splits=splits,
        description=description.strip(),
        category=category,
        date=when,
        notes=notes.strip(),
    )
    book.expenses.append(expense)
    logger.info(
        "Added %s expense %s (%s) to group %s",
        expense.split_type.value, expense.id, expense.amount, book.group.id,
    )
    return expense


def _category(group: Group, category: Optional[str]) -> str:
    category = (category or "Other").strip()
    if group.categories and category not in group.categories:
        raise InvalidRecord(
            f"Unknown category {category!r}; choose one of: {', '.join(group.categories)}."
        )
    return category


def _split_type(strategy) -> SplitType:
    if isinstance(strategy, (SplitType, str)):
        return SplitType(strategy)
    return strategy.split_type


def add_expense_record(
    book: GroupBook,
    expense: Expense,
    digits: Optional[int] = None,
    settings: Optional[LedgerSettings] = None,
) -> Expense:
    """Validate and append an expense whose splits were computed elsewhere"""
    ensure_can_add_expense(book.group)
    digits = _digits(digits, settings)
    if expense.group_id and expense.group_id != book.group.id:
        raise InvalidRecord(f"Expense {expense.id} belongs to group {expense.group_id}.")
    if any(e.id == expense.id for e in book.expenses):
        raise InvalidRecord(f"Expense {expense.id} already exists.")
    total = to_minor(_positive_amount(expense.amount, digits), digits)
    if not expense.splits:
        raise InvalidParticipants("At least one split participant is required.")
    _require_member(book, expense.payer, "Payer")

    seen = set()
    for s in expense.splits:
        if s.member_id in seen:
            raise InvalidParticipants(f"Member {s.member_id} appears more than once in splits.")
        seen.add(s.member_id)
        _require_member(book, s.member_id, "Participant")
        if to_minor(s.amount, digits) < 0:
            raise InvalidAmount(f"Split amount for {s.member_id} cannot be negative.")
    if sum(to_minor(s.amount, digits) for s in expense.splits) != total:
        raise SplitAmountMismatch("Split amounts must equal total expense.")

    expense.group_id = book.group.id
    expense.date = _date(expense.date)
    book.expenses.append(expense)
    logger.info("Added expense record %s to group %s", expense.id, book.group.id)
    return expense


def delete_expense(book: GroupBook, expense_id: str) -> Expense:
    for i, e in enumerate(book.expenses):
        if e.id == expense_id:
            logger.info("Deleted expense %s from group %s", expense_id, book.group.id)
            return book.expenses.pop(i)
    raise RecordNotFound(f"Expense {expense_id} not found.")


# ---------------------------------------------------------------------------
# settlements
# ---------------------------------------------------------------------------

def record_settlement(
    book: GroupBook,
    from_member: str,
    to_member: str,
    amount: Number,
    date: Optional[Union[str, date]] = None,
    notes: str = "",
    method: Union[SettlementMethod, str] = SettlementMethod.CASH,
    reference: Optional[str] = None,
    settlement_id: Optional[str] = None,
    digits: Optional[int] = None,
    settings: Optional[LedgerSettings] = None,
) -> Settlement:
    """
    Append a payment from from_member to to_member.
    Allowed in archived groups so debts can still be squared up.
    """
    if from_member and from_member == to_member:
        raise SameMemberSettlement("Payer and receiver cannot be the same.")
    value = _positive_amount(amount, _digits(digits, settings))
    _require_member(book, from_member, "Payer")
    _require_member(book, to_member, "Receiver")
    try:
        how = SettlementMethod(method or SettlementMethod.CASH)
    except ValueError as error:
        raise InvalidRecord(f"Unsupported settlement method: {method}") from error

    settlement = Settlement(
        id=settlement_id or new_id(),
        group_id=book.group.id,
        from_member=from_member,
        to_member=to_member,
        amount=value,
        date=_date(date),
        notes=(notes or "").strip(),
        method=how,
        reference=reference or None,
    )
    book.settlements.append(settlement)
    logger.info(
        "Recorded settlement %s: %s -> %s %s in group %s",
        settlement.id, from_member, to_member, value, book.group.id,
    )
    return settlement


def delete_settlement(book: GroupBook, settlement_id: str) -> Settlement:
    for i, s in enumerate(book.settlements):
        if s.id == settlement_id:
            logger.info("Deleted settlement %s from group %s", settlement_id, book.group.id)
            return book.settlements.pop(i)
    raise RecordNotFound(f"Settlement {settlement_id} not found.")


# ---------------------------------------------------------------------------
# read-through views, recomputed on every call
# ---------------------------------------------------------------------------

def balances(
    book: GroupBook,
    digits: Optional[int] = None,
    settings: Optional[LedgerSettings] = None,
) -> Dict[str, Decimal]:
    digits = _digits(digits, settings)
    return compute_balances(book.expenses, book.settlements, book.members, digits)


def settle_up_plan(
    book: GroupBook,
    digits: Optional[int] = None,
    settings: Optional[LedgerSettings] = None,
) -> List[SimplifiedTransaction]:
    digits = _digits(digits, settings)
    return simplify_debts(balances(book, digits), digits)


def summary(
    book: GroupBook,
    digits: Optional[int] = None,
    settings: Optional[LedgerSettings] = None,
) -> dict:
    digits = _digits(digits, settings)
    return compute_settlement_summary(book.expenses, book.settlements, book.members, digits)


def budget_status(
    book: GroupBook,
    warning_threshold: Optional[Number] = None,
    digits: Optional[int] = None,
    settings: Optional[LedgerSettings] = None,
) -> dict:
    """Budget usage and warnings; the threshold defaults to the settings value"""
    if warning_threshold is None:
        warning_threshold = (
            settings.budget_warning_threshold if settings is not None else DEFAULT_WARNING_THRESHOLD
        )
    digits = _digits(digits, settings)
    return compute_budget_status(book.group, book.expenses, warning_threshold, digits)
