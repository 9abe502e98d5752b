"""
Configuration and data loading/saving for SplitLedger
"""
from __future__ import annotations
import json
import os
from dataclasses import dataclass, field
from decimal import Decimal
from typing import List, Optional

from logging_utils import get_logger
from models import (
    DEFAULT_FLAT_CATEGORIES,
    DEFAULT_TRIP_CATEGORIES,
    Budget,
    Expense,
    Group,
    GroupBook,
    Member,
    Settlement,
    Split,
)
from money import MINOR_UNIT_DIGITS
from utils import app_dir

logger = get_logger(__name__)

BOOK_VERSION = 1


@dataclass
class LedgerSettings:
    """User-level settings read from settings.json"""
    minor_unit_digits: int = MINOR_UNIT_DIGITS
    budget_warning_threshold: int = 80
    flat_categories: List[str] = field(default_factory=lambda: list(DEFAULT_FLAT_CATEGORIES))
    trip_categories: List[str] = field(default_factory=lambda: list(DEFAULT_TRIP_CATEGORIES))


def load_settings(path: Optional[str] = None) -> LedgerSettings:
    """Load settings from JSON file, falling back to defaults"""
    path = path or os.path.join(app_dir(), "settings.json")
    try:
        with open(path, "r", encoding="utf-8") as f:
            data = json.load(f)
    except FileNotFoundError:
        logger.debug("No settings file at %s, using defaults", path)
        return LedgerSettings()

    defaults = LedgerSettings()
    settings = LedgerSettings(
        minor_unit_digits=int(data.get("minor_unit_digits", defaults.minor_unit_digits)),
        budget_warning_threshold=int(
            data.get("budget_warning_threshold", defaults.budget_warning_threshold)
        ),
        flat_categories=list(data.get("flat_categories") or defaults.flat_categories),
        trip_categories=list(data.get("trip_categories") or defaults.trip_categories),
    )
    if settings.minor_unit_digits < 0:
        raise ValueError("minor_unit_digits cannot be negative")
    logger.debug("Loaded settings from %s", path)
    return settings


def book_path(group_id: str) -> str:
    """Default JSON location for a group's book"""
    return os.path.join(app_dir(), f"group_{group_id}.json")


def _money(value) -> str:
    return str(value)


def book_to_dict(book: GroupBook) -> dict:
    """Convert GroupBook to dictionary for JSON serialization (amounts as strings)"""
    g = book.group
    return {
        "version": book.version,
        "group": {
            "id": g.id,
            "name": g.name,
            "kind": g.kind.value,
            "status": g.status.value,
            "categories": list(g.categories),
            "budget": None if g.budget is None else {
                "total": _money(g.budget.total),
                "categories": {k: _money(v) for k, v in g.budget.categories.items()},
            },
        },
        "members": [
            {
                "id": m.id,
                "name": m.name,
                "group_id": m.group_id,
                "email": m.email,
                "phone": m.phone,
                "is_admin": m.is_admin,
            } for m in book.members
        ],
        "expenses": [
            {
                "id": e.id,
                "group_id": e.group_id,
                "amount": _money(e.amount),
                "payer": e.payer,
                "split_type": e.split_type.value,
                "splits": [
                    {
                        "member_id": s.member_id,
                        "amount": _money(s.amount),
                        "percentage": None if s.percentage is None else _money(s.percentage),
                    } for s in e.splits
                ],
                "description": e.description,
                "category": e.category,
                "date": e.date,
                "notes": e.notes,
            } for e in book.expenses
        ],
        "settlements": [
            {
                "id": s.id,
                "group_id": s.group_id,
                "from_member": s.from_member,
                "to_member": s.to_member,
                "amount": _money(s.amount),
                "date": s.date,
                "notes": s.notes,
                "method": s.method.value,
                "reference": s.reference,
            } for s in book.settlements
        ],
    }


def dict_to_book(d: dict) -> GroupBook:
    """Convert dictionary from JSON to GroupBook object"""
    g = d["group"]
    budget = None
    if g.get("budget"):
        budget = Budget(
            total=Decimal(g["budget"].get("total", "0")),
            categories={k: Decimal(v) for k, v in g["budget"].get("categories", {}).items()},
        )
    group = Group(
        id=g["id"],
        name=g.get("name", ""),
        kind=g.get("kind", "flat"),
        status=g.get("status", "active"),
        categories=list(g.get("categories", [])),
        budget=budget,
    )
    members = [Member(**m) for m in d.get("members", [])]
    expenses = [
        Expense(
            id=e["id"],
            group_id=e.get("group_id", group.id),
            amount=Decimal(e["amount"]),
            payer=e["payer"],
            split_type=e.get("split_type", "equal"),
            splits=[
                Split(
                    member_id=s["member_id"],
                    amount=Decimal(s["amount"]),
                    percentage=None if s.get("percentage") is None else Decimal(s["percentage"]),
                ) for s in e.get("splits", [])
            ],
            description=e.get("description", ""),
            category=e.get("category", "Other"),
            date=e.get("date", ""),
            notes=e.get("notes", ""),
        ) for e in d.get("expenses", [])
    ]
    settlements = [
        Settlement(
            id=s["id"],
            group_id=s.get("group_id", group.id),
            from_member=s["from_member"],
            to_member=s["to_member"],
            amount=Decimal(s["amount"]),
            date=s.get("date", ""),
            notes=s.get("notes", ""),
            method=s.get("method", "cash"),
            reference=s.get("reference"),
        ) for s in d.get("settlements", [])
    ]
    return GroupBook(
        group=group,
        members=members,
        expenses=expenses,
        settlements=settlements,
        version=d.get("version", BOOK_VERSION),
    )


def save_book(book: GroupBook, path: Optional[str] = None) -> str:
    """Write the book as JSON; returns the path written"""
    path = path or book_path(book.group.id)
    with open(path, "w", encoding="utf-8") as f:
        json.dump(book_to_dict(book), f, ensure_ascii=False, indent=2)
    logger.info(
        "Saved group %s (%d expenses, %d settlements) to %s",
        book.group.id, len(book.expenses), len(book.settlements), path,
    )
    return path


def load_book(path: str) -> GroupBook:
    """Read a book written by save_book"""
    with open(path, "r", encoding="utf-8") as f:
        book = dict_to_book(json.load(f))
    logger.info("Loaded group %s from %s", book.group.id, path)
    return book
