"""
Split calculator for SplitLedger

compute_split turns one total and a strategy into per-member shares whose
sum is exactly the total. Rounding happens in integer minor units and any
residual is pushed onto the tail of the participant order, so the same
input always yields the same shares.
"""
from __future__ import annotations
from decimal import Decimal, ROUND_HALF_UP
from typing import List, Optional, Sequence, Union

from errors import InvalidAmount, InvalidParticipants, SplitAmountMismatch
from models import (
    CustomSplit,
    EqualSplit,
    PercentageSplit,
    Split,
    SplitStrategy,
    SplitType,
)
from money import MINOR_UNIT_DIGITS, Number, from_minor, round_half_up, to_minor


def make_strategy(split_type: Union[SplitType, str], participants) -> SplitStrategy:
    """
    Build a strategy from a split type and its participant data.
    equal: sequence of member ids
    percentage: mapping or pairs of member id -> percent
    custom: mapping or pairs of member id -> amount
    """
    st = SplitType(split_type)
    if st is SplitType.EQUAL:
        return EqualSplit(tuple(participants))
    if st is SplitType.PERCENTAGE:
        return PercentageSplit(participants)
    return CustomSplit(participants)


def compute_split(
    total_amount: Number,
    strategy: Union[SplitStrategy, SplitType, str],
    participants: Optional[Sequence] = None,
    digits: int = MINOR_UNIT_DIGITS,
) -> List[Split]:
    """
    Split total_amount according to strategy.
    strategy may be a ready strategy object or a split type name; in the
    latter case participants carries the per-member data (see make_strategy).
    """
    if not isinstance(strategy, (EqualSplit, PercentageSplit, CustomSplit)):
        if participants is None:
            raise InvalidParticipants("At least one split participant is required.")
        strategy = make_strategy(strategy, participants)
    elif participants is not None:
        given = [p if isinstance(p, str) else p[0] for p in participants]
        if sorted(given) != sorted(strategy.member_ids):
            raise InvalidParticipants("Participants do not match the split strategy.")

    total = _total_units(total_amount, digits)

    if isinstance(strategy, EqualSplit):
        shares = _equal_shares(total, len(strategy.participants))
        return [Split(m, from_minor(u, digits)) for m, u in zip(strategy.participants, shares)]

    if isinstance(strategy, PercentageSplit):
        shares = _percentage_shares(total, [p for _, p in strategy.percentages])
        return [
            Split(m, from_minor(u, digits), pct)
            for (m, pct), u in zip(strategy.percentages, shares)
        ]

    units = [to_minor(a, digits) for _, a in strategy.amounts]
    if sum(units) != total:
        raise SplitAmountMismatch(
            f"Split amounts must equal total expense "
            f"({from_minor(sum(units), digits)} != {from_minor(total, digits)})."
        )
    return [Split(m, from_minor(u, digits)) for (m, _), u in zip(strategy.amounts, units)]


def _total_units(total_amount: Number, digits: int) -> int:
    try:
        total = to_minor(total_amount, digits)
    except (TypeError, ValueError) as error:
        raise InvalidAmount(f"Invalid amount: {total_amount!r}") from error
    if total <= 0:
        raise InvalidAmount("Amount must be greater than zero.")
    return total


def _equal_shares(total: int, n: int) -> List[int]:
    """
    Rounded equal shares. The residual is at most n/2 units, so handing one
    unit to each of the last |residual| participants keeps max - min <= 1.
    """
    share = round_half_up(total, n)
    shares = [share] * n
    residual = total - share * n
    step = 1 if residual > 0 else -1
    for i in range(abs(residual)):
        shares[n - 1 - i] += step
    return shares


def _percentage_shares(total: int, percentages: List[Decimal]) -> List[int]:
    """Rounded percentage shares; the residual lands on the last non-zero participant"""
    shares = [
        int((Decimal(total) * pct / 100).quantize(Decimal(1), rounding=ROUND_HALF_UP))
        for pct in percentages
    ]
    residual = total - sum(shares)
    for i in reversed(range(len(shares))):
        if residual == 0:
            break
        if percentages[i] <= 0:
            continue
        take = residual if residual > 0 else max(residual, -shares[i])
        shares[i] += take
        residual -= take
    return shares
