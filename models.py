"""
Data models for SplitLedger application
"""
from __future__ import annotations
from dataclasses import dataclass, field
from decimal import Decimal
from enum import Enum
from typing import Dict, List, Optional, Sequence, Tuple, Union

from errors import InvalidAmount, InvalidParticipants, PercentageMismatch
from money import Number, to_decimal

DEFAULT_FLAT_CATEGORIES = [
    "Rent", "Electricity", "Water", "Internet", "Gas",
    "Groceries", "Cleaning", "Maintenance", "Other",
]
DEFAULT_TRIP_CATEGORIES = [
    "Accommodation", "Transport", "Food & Dining", "Activities",
    "Shopping", "Tips", "Other",
]

PERCENT_TOLERANCE = Decimal("0.01")


class GroupStatus(str, Enum):
    """Group lifecycle; ACTIVE -> ARCHIVED is one-way"""
    ACTIVE = "active"
    ARCHIVED = "archived"


class GroupKind(str, Enum):
    """Flat (roommates) or trip (ad-hoc) group"""
    FLAT = "flat"
    TRIP = "trip"


class SplitType(str, Enum):
    EQUAL = "equal"
    PERCENTAGE = "percentage"
    CUSTOM = "custom"


class SettlementMethod(str, Enum):
    CASH = "cash"
    UPI = "upi"
    BANK_TRANSFER = "bank_transfer"
    OTHER = "other"


@dataclass
class Member:
    """Group member; id is the identity, names may repeat"""
    id: str
    name: str
    group_id: str = ""
    email: Optional[str] = None
    phone: Optional[str] = None
    is_admin: bool = False


@dataclass
class Budget:
    """Group budget: overall total plus optional per-category limits"""
    total: Decimal = Decimal("0")
    categories: Dict[str, Decimal] = field(default_factory=dict)


@dataclass
class Group:
    id: str
    name: str
    kind: GroupKind = GroupKind.FLAT
    status: GroupStatus = GroupStatus.ACTIVE
    categories: List[str] = field(default_factory=list)
    budget: Optional[Budget] = None

    def __post_init__(self):
        self.kind = GroupKind(self.kind)
        self.status = GroupStatus(self.status)
        if not self.categories:
            defaults = DEFAULT_TRIP_CATEGORIES if self.kind is GroupKind.TRIP else DEFAULT_FLAT_CATEGORIES
            self.categories = list(defaults)

    @property
    def is_archived(self) -> bool:
        return self.status is GroupStatus.ARCHIVED


def _unique_ids(member_ids: Sequence[str]) -> Tuple[str, ...]:
    """Validate a non-empty, duplicate-free participant list"""
    ids = tuple(member_ids)
    if not ids:
        raise InvalidParticipants("At least one split participant is required.")
    if any(not m for m in ids):
        raise InvalidParticipants("Participant ids must not be empty.")
    seen = set()
    dupes = set()
    for m in ids:
        if m in seen:
            dupes.add(m)
        seen.add(m)
    if dupes:
        raise InvalidParticipants(f"Duplicate participants: {', '.join(sorted(dupes))}")
    return ids


@dataclass(frozen=True)
class EqualSplit:
    """Share the total equally between participants (order matters for rounding)"""
    participants: Tuple[str, ...]

    def __post_init__(self):
        object.__setattr__(self, "participants", _unique_ids(self.participants))

    @property
    def split_type(self) -> SplitType:
        return SplitType.EQUAL

    @property
    def member_ids(self) -> Tuple[str, ...]:
        return self.participants


@dataclass(frozen=True)
class PercentageSplit:
    """Each participant pays a percentage; percentages must add up to 100"""
    percentages: Tuple[Tuple[str, Decimal], ...]

    def __post_init__(self):
        pairs = tuple(
            (m, _number(p, PercentageMismatch, f"Percentage for {m}"))
            for m, p in _pairs(self.percentages)
        )
        _unique_ids([m for m, _ in pairs])
        for m, p in pairs:
            if p < 0:
                raise PercentageMismatch(f"Percentage for {m} cannot be negative.")
        total = sum((p for _, p in pairs), Decimal("0"))
        if abs(total - 100) > PERCENT_TOLERANCE:
            raise PercentageMismatch(f"Percentages must add up to 100 (got {total}).")
        object.__setattr__(self, "percentages", pairs)

    @property
    def split_type(self) -> SplitType:
        return SplitType.PERCENTAGE

    @property
    def member_ids(self) -> Tuple[str, ...]:
        return tuple(m for m, _ in self.percentages)


@dataclass(frozen=True)
class CustomSplit:
    """Caller-supplied exact amount per participant"""
    amounts: Tuple[Tuple[str, Decimal], ...]

    def __post_init__(self):
        pairs = tuple(
            (m, _number(a, InvalidAmount, f"Amount for {m}"))
            for m, a in _pairs(self.amounts)
        )
        _unique_ids([m for m, _ in pairs])
        for m, a in pairs:
            if a < 0:
                raise InvalidAmount(f"Amount for {m} cannot be negative.")
        object.__setattr__(self, "amounts", pairs)

    @property
    def split_type(self) -> SplitType:
        return SplitType.CUSTOM

    @property
    def member_ids(self) -> Tuple[str, ...]:
        return tuple(m for m, _ in self.amounts)


SplitStrategy = Union[EqualSplit, PercentageSplit, CustomSplit]


def _pairs(value) -> List[Tuple[str, Number]]:
    """Accept either a mapping or a sequence of (member, value) pairs"""
    if isinstance(value, dict):
        return list(value.items())
    try:
        items = list(value)
    except TypeError as exc:
        raise InvalidParticipants(f"Expected (member, value) pairs, got {value!r}.") from exc
    pairs = []
    for item in items:
        if isinstance(item, str) or not isinstance(item, (tuple, list)) or len(item) != 2:
            raise InvalidParticipants(
                f"Expected (member, value) pairs, got {item!r}."
            )
        pairs.append((item[0], item[1]))
    return pairs


def _number(value, error: type, label: str) -> Decimal:
    """Parse a per-member number, reporting failures as a ledger error"""
    try:
        return to_decimal(value)
    except (TypeError, ValueError) as exc:
        raise error(f"{label} is not a number: {value!r}") from exc


@dataclass
class Split:
    """One participant's owed share of an expense"""
    member_id: str
    amount: Decimal
    percentage: Optional[Decimal] = None


@dataclass
class Expense:
    """Single shared expense with its per-member splits"""
    id: str
    group_id: str
    amount: Decimal
    payer: str
    split_type: SplitType
    splits: List[Split]
    description: str = ""
    category: str = "Other"
    date: str = ""  # YYYY-MM-DD
    notes: str = ""

    def __post_init__(self):
        self.split_type = SplitType(self.split_type)

    def share_of(self, member_id: str) -> Decimal:
        """Amount this member owes for the expense (0 if not a participant)"""
        for s in self.splits:
            if s.member_id == member_id:
                return s.amount
        return Decimal("0")


@dataclass
class Settlement:
    """Recorded payment from one member to another"""
    id: str
    group_id: str
    from_member: str
    to_member: str
    amount: Decimal
    date: str = ""  # YYYY-MM-DD
    notes: str = ""
    method: SettlementMethod = SettlementMethod.CASH
    reference: Optional[str] = None

    def __post_init__(self):
        self.method = SettlementMethod(self.method)


@dataclass(frozen=True)
class SimplifiedTransaction:
    """Suggested payment: from_member pays to_member"""
    from_member: str
    to_member: str
    amount: Decimal


@dataclass
class GroupBook:
    """Complete snapshot of one group: roster, expenses and settlements"""
    group: Group
    members: List[Member] = field(default_factory=list)
    expenses: List[Expense] = field(default_factory=list)
    settlements: List[Settlement] = field(default_factory=list)
    version: int = 1

    def member_ids(self) -> List[str]:
        return [m.id for m in self.members]

    def member_names(self) -> Dict[str, str]:
        return {m.id: m.name for m in self.members}
