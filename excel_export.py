"""
Excel export functionality for SplitLedger
"""
from __future__ import annotations
import re
from datetime import date, datetime
from decimal import Decimal
from typing import Dict, List, Optional

from openpyxl import Workbook
from openpyxl.styles import Font, Alignment, PatternFill, Border, Side
from openpyxl.utils import get_column_letter

from computations import compute_balances, filter_expenses, simplify_debts
from logging_utils import get_logger
from models import GroupBook, Settlement
from money import MINOR_UNIT_DIGITS
from utils import parse_date

logger = get_logger(__name__)

MONEY_FORMAT = "0.00"
_SHEET_BAD_CHARS = re.compile(r"[\[\]:*?/\\]")


def _style_header(ws, row=1):
    """Apply header styling to worksheet row"""
    header_font = Font(bold=True, color="FFFFFF")
    fill = PatternFill("solid", fgColor="4F81BD")
    align = Alignment(horizontal="center", vertical="center")
    thin = Side(style="thin", color="A0A0A0")
    border = Border(left=thin, right=thin, top=thin, bottom=thin)
    for cell in ws[row]:
        cell.font = header_font
        cell.fill = fill
        cell.alignment = align
        cell.border = border


def _autosize_columns(ws, min_width=10, max_width=45):
    """Auto-size columns based on content"""
    for col in range(1, ws.max_column + 1):
        letter = get_column_letter(col)
        max_len = 0
        for cell in ws[letter]:
            v = cell.value
            if v is None:
                continue
            max_len = max(max_len, len(str(v)))
        ws.column_dimensions[letter].width = max(min_width, min(max_width, max_len + 2))


def _sheet_title(name: str, used: set) -> str:
    """Excel-safe, unique sheet title (max 31 chars)"""
    base = _SHEET_BAD_CHARS.sub("_", name)[:26] or "member"
    title = f"{base}_paid"
    n = 2
    while title in used:
        title = f"{base}_paid{n}"
        n += 1
    used.add(title)
    return title


def _filter_settlements(
    settlements: List[Settlement], start: Optional[date], end: Optional[date]
) -> List[Settlement]:
    out = []
    for s in settlements:
        sd = parse_date(s.date)
        if start and sd < start:
            continue
        if end and sd > end:
            continue
        out.append(s)
    return out


def export_excel(
    book: GroupBook,
    filepath: str,
    start: Optional[date] = None,
    end: Optional[date] = None,
    digits: int = MINOR_UNIT_DIGITS,
) -> None:
    """
    Export a group to Excel file with multiple sheets:
    - One sheet per payer, expenses grouped by date with each member's share
    - Expenses sheet listing every expense with per-member shares
    - Balances sheet
    - Settle Up sheet (simplified payments)
    """
    wb = Workbook()
    # remove default sheet
    wb.remove(wb.active)

    names = book.member_names()
    member_ids = book.member_ids()
    exps = filter_expenses(book.expenses, start=start, end=end)
    setts = _filter_settlements(book.settlements, start, end) if (start or end) else list(book.settlements)

    used_titles: set = set()
    payers = [m for m in member_ids if any(e.payer == m for e in exps)]
    for payer in payers:
        ws = wb.create_sheet(_sheet_title(names.get(payer, payer), used_titles))
        headers = ["item", "category", "price"] + [f"{names.get(m, m)} share" for m in member_ids]
        ws.append(headers)
        _style_header(ws, 1)
        ws.freeze_panes = "A2"

        payer_exps = sorted(
            (e for e in exps if e.payer == payer),
            key=lambda e: (e.date, e.category, e.description),
        )
        by_date: Dict[str, list] = {}
        for e in payer_exps:
            by_date.setdefault(e.date, []).append(e)

        # title row per day like "03.14"
        for d, items in by_date.items():
            try:
                mmdd = datetime.strptime(d, "%Y-%m-%d").strftime("%m.%d")
            except ValueError:
                mmdd = d
            ws.append([mmdd] + [""] * (len(headers) - 1))
            title_row = ws.max_row
            ws.cell(title_row, 1).font = Font(bold=True)
            ws.cell(title_row, 1).fill = PatternFill("solid", fgColor="D9E1F2")

            for e in items:
                row = [e.description, e.category, e.amount]
                row += [e.share_of(m) for m in member_ids]
                ws.append(row)

            ws.append([""] * len(headers))

        # Footer totals as formulas
        ws.append(["TOTALS"] + [""] * (len(headers) - 1))
        trow = ws.max_row
        ws.cell(trow, 1).font = Font(bold=True)
        last_data_row = trow - 2
        if last_data_row >= 2:
            for col in range(3, len(headers) + 1):
                letter = get_column_letter(col)
                ws.cell(trow, col).value = f"=SUM({letter}2:{letter}{last_data_row})"

        for r in range(2, ws.max_row + 1):
            for c in range(3, len(headers) + 1):
                ws.cell(r, c).number_format = MONEY_FORMAT
        _autosize_columns(ws)

    # Expenses sheet: every expense in date order
    ws = wb.create_sheet("Expenses")
    headers = ["date", "payer", "description", "category", "amount", "split type"]
    headers += [f"{names.get(m, m)} share" for m in member_ids]
    ws.append(headers)
    _style_header(ws, 1)
    ws.freeze_panes = "A2"
    for e in sorted(exps, key=lambda e: (e.date, e.payer, e.description)):
        row = [e.date, names.get(e.payer, e.payer), e.description, e.category, e.amount, e.split_type.value]
        row += [e.share_of(m) for m in member_ids]
        ws.append(row)
    for r in range(2, ws.max_row + 1):
        ws.cell(r, 5).number_format = MONEY_FORMAT
        for c in range(7, len(headers) + 1):
            ws.cell(r, c).number_format = MONEY_FORMAT
    _autosize_columns(ws)

    # Balances sheet
    balances = compute_balances(exps, setts, book.members, digits)
    ws = wb.create_sheet("Balances")
    ws.append(["Member", "Paid", "Share", "Settled (sent)", "Settled (received)", "Balance"])
    _style_header(ws, 1)
    ws.freeze_panes = "A2"
    for m, bal in balances.items():
        paid = sum((e.amount for e in exps if e.payer == m), Decimal("0"))
        share = sum((e.share_of(m) for e in exps), Decimal("0"))
        sent = sum((s.amount for s in setts if s.from_member == m), Decimal("0"))
        received = sum((s.amount for s in setts if s.to_member == m), Decimal("0"))
        ws.append([names.get(m, m), paid, share, sent, received, bal])
    for r in range(2, ws.max_row + 1):
        for c in range(2, 7):
            ws.cell(r, c).number_format = MONEY_FORMAT
    _autosize_columns(ws)

    # Settle Up sheet
    ws = wb.create_sheet("Settle Up")
    ws.append(["From (Debtor)", "To (Creditor)", "Amount"])
    _style_header(ws, 1)
    ws.freeze_panes = "A2"
    transfers = simplify_debts(balances, digits)
    for t in transfers:
        ws.append([names.get(t.from_member, t.from_member), names.get(t.to_member, t.to_member), t.amount])
    for r in range(2, ws.max_row + 1):
        ws.cell(r, 3).number_format = MONEY_FORMAT
    _autosize_columns(ws)

    wb.save(filepath)
    logger.info(
        "Exported group %s (%d expenses, %d transfers) to %s",
        book.group.id, len(exps), len(transfers), filepath,
    )
