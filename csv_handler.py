"""
CSV export and import functionality for SplitLedger
"""
from __future__ import annotations
import csv
from decimal import Decimal, InvalidOperation
from typing import List

from errors import InvalidRecord
from logging_utils import get_logger
from models import Expense, Settlement, Split

logger = get_logger(__name__)

EXPENSE_COLUMNS = [
    'id', 'group_id', 'date', 'payer', 'amount', 'split_type',
    'splits', 'description', 'category', 'notes',
]
SETTLEMENT_COLUMNS = [
    'id', 'group_id', 'date', 'from_member', 'to_member', 'amount',
    'method', 'reference', 'notes',
]


def _splits_to_str(splits: List[Split]) -> str:
    """member:amount[:pct] pairs joined by ';'"""
    parts = []
    for s in splits:
        if s.percentage is None:
            parts.append(f"{s.member_id}:{s.amount}")
        else:
            parts.append(f"{s.member_id}:{s.amount}:{s.percentage}")
    return ';'.join(parts)


def _str_to_splits(value: str) -> List[Split]:
    splits = []
    for chunk in (value or '').split(';'):
        if not chunk.strip():
            continue
        fields = [f.strip() for f in chunk.split(':')]
        if len(fields) not in (2, 3):
            raise InvalidRecord(f"Malformed split entry: {chunk!r}")
        pct = Decimal(fields[2]) if len(fields) == 3 else None
        splits.append(Split(member_id=fields[0], amount=Decimal(fields[1]), percentage=pct))
    return splits


def export_expenses_to_csv(expenses: List[Expense], filepath: str) -> None:
    """
    Export expenses list to CSV file
    CSV columns: id, group_id, date, payer, amount, split_type, splits, description, category, notes
    """
    with open(filepath, 'w', newline='', encoding='utf-8') as f:
        writer = csv.writer(f)
        writer.writerow(EXPENSE_COLUMNS)
        for e in expenses:
            writer.writerow([
                e.id,
                e.group_id,
                e.date,
                e.payer,
                e.amount,
                e.split_type.value,
                _splits_to_str(e.splits),
                e.description,
                e.category,
                e.notes,
            ])
    logger.info("Exported %d expenses to %s", len(expenses), filepath)


def import_expenses_from_csv(filepath: str) -> List[Expense]:
    """
    Import expenses list from CSV file
    Returns list of Expense objects; run them through ledger.add_expense_record to validate
    """
    expenses = []
    with open(filepath, 'r', encoding='utf-8') as f:
        reader = csv.DictReader(f)
        for line, row in enumerate(reader, start=2):
            try:
                expense = Expense(
                    id=row['id'],
                    group_id=row.get('group_id', ''),
                    date=row['date'],
                    payer=row['payer'],
                    amount=Decimal(row['amount']),
                    split_type=row.get('split_type') or 'custom',
                    splits=_str_to_splits(row['splits']),
                    description=row.get('description', ''),
                    category=row.get('category') or 'Other',
                    notes=row.get('notes', ''),
                )
            except (KeyError, ValueError, InvalidOperation) as error:
                raise InvalidRecord(f"{filepath}:{line}: cannot read expense ({error})") from error
            expenses.append(expense)
    logger.info("Imported %d expenses from %s", len(expenses), filepath)
    return expenses


def export_settlements_to_csv(settlements: List[Settlement], filepath: str) -> None:
    """
    Export settlements list to CSV file
    CSV columns: id, group_id, date, from_member, to_member, amount, method, reference, notes
    """
    with open(filepath, 'w', newline='', encoding='utf-8') as f:
        writer = csv.writer(f)
        writer.writerow(SETTLEMENT_COLUMNS)
        for s in settlements:
            writer.writerow([
                s.id,
                s.group_id,
                s.date,
                s.from_member,
                s.to_member,
                s.amount,
                s.method.value,
                s.reference or '',
                s.notes,
            ])
    logger.info("Exported %d settlements to %s", len(settlements), filepath)


def import_settlements_from_csv(filepath: str) -> List[Settlement]:
    """Import settlements list from CSV file"""
    settlements = []
    with open(filepath, 'r', encoding='utf-8') as f:
        reader = csv.DictReader(f)
        for line, row in enumerate(reader, start=2):
            try:
                settlement = Settlement(
                    id=row['id'],
                    group_id=row.get('group_id', ''),
                    date=row['date'],
                    from_member=row['from_member'],
                    to_member=row['to_member'],
                    amount=Decimal(row['amount']),
                    method=row.get('method') or 'cash',
                    reference=row.get('reference') or None,
                    notes=row.get('notes', ''),
                )
            except (KeyError, ValueError, InvalidOperation) as error:
                raise InvalidRecord(f"{filepath}:{line}: cannot read settlement ({error})") from error
            settlements.append(settlement)
    logger.info("Imported %d settlements from %s", len(settlements), filepath)
    return settlements
