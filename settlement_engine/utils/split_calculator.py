"""
Split Calculator

Divides one expense among participants according to per-participant split
policies, in a fixed order:

1. fixed      - explicit amounts, taken from the pool first
2. percentage - percent of the pool left after fixed splits (must total 100%);
                rounding remainder goes to the largest percentage, so the
                group takes exactly that pool
3. share      - proportional to share counts; rounding remainder goes to the
                participant with the most shares
4. equal      - whatever is left, divided evenly; rounding remainder goes to
                the first equal participant

Amounts are rounded to the currency's minor unit. Any leftover after all
groups is assigned to the first split in processing order, so the parts
always add up to the expense exactly.
"""

import logging
from decimal import Decimal
from typing import Dict, List

from settlement_engine.schemas.split_schema import ParticipantSplit, SplitResult, SplitType
from settlement_engine.utils.decimal_utils import CENT, Number, currency_quantum, round_decimal, to_decimal
from settlement_engine.utils.exceptions import (
    FixedAmountExceedsTotalError,
    InvalidSplitInputError,
    PercentageTotalError,
)

logger = logging.getLogger(__name__)

PERCENTAGE_TOLERANCE = Decimal("0.01")
PROCESSING_ORDER = (SplitType.FIXED, SplitType.PERCENTAGE, SplitType.SHARE, SplitType.EQUAL)


def _group_by_type(splits: List[ParticipantSplit]) -> Dict[SplitType, List[ParticipantSplit]]:
    groups: Dict[SplitType, List[ParticipantSplit]] = {split_type: [] for split_type in PROCESSING_ORDER}
    for split in splits:
        groups[split.split_type].append(split)
    return groups


def _largest_value(entries: List[list]) -> list:
    """First [split, amount] entry with the largest split value."""
    largest = entries[0]
    for entry in entries[1:]:
        if entry[0].value > largest[0].value:
            largest = entry
    return largest


def _validate_split_input(expense_amount: Decimal, splits: List[ParticipantSplit], quantum: Decimal) -> None:
    if expense_amount <= 0:
        raise InvalidSplitInputError(f"Invalid expense amount: {expense_amount}")
    if not splits:
        raise InvalidSplitInputError("No splits provided")

    user_ids = [split.user_id for split in splits]
    if len(user_ids) != len(set(user_ids)):
        duplicates = sorted({user_id for user_id in user_ids if user_ids.count(user_id) > 1})
        raise InvalidSplitInputError(f"Duplicate users in splits: {duplicates}")

    groups = _group_by_type(splits)

    for split_type, label in ((SplitType.FIXED, "fixed amount"),
                              (SplitType.PERCENTAGE, "percentage"),
                              (SplitType.SHARE, "shares")):
        for split in groups[split_type]:
            if split.value is None or split.value <= 0:
                raise InvalidSplitInputError(f"Invalid {label} for user {split.user_id}: {split.value}")

    fixed_total = sum((round_decimal(split.value, quantum) for split in groups[SplitType.FIXED]), Decimal("0"))
    if fixed_total > expense_amount:
        raise FixedAmountExceedsTotalError(
            f"Total of fixed amounts ({fixed_total}) exceeds expense amount ({expense_amount})"
        )

    if groups[SplitType.PERCENTAGE]:
        percentage_total = sum((split.value for split in groups[SplitType.PERCENTAGE]), Decimal("0"))
        if abs(percentage_total - Decimal("100")) > PERCENTAGE_TOLERANCE:
            raise PercentageTotalError(f"Percentage splits must total 100%, got {percentage_total}%")


def calculate_splits(expense_amount: Number, currency: str, splits: List[ParticipantSplit]) -> List[SplitResult]:
    """
    Compute each participant's owed amount for one expense.

    Args:
        expense_amount: Total expense, must be positive
        currency: ISO code; decides the rounding unit
        splits: One ParticipantSplit per user

    Returns:
        SplitResult list in processing order (fixed, percentage, share, equal)
        whose amounts sum exactly to the expense amount

    Raises:
        InvalidSplitInputError: Empty list, duplicate user, non-positive expense or split value
        FixedAmountExceedsTotalError: Fixed amounts exceed the expense
        PercentageTotalError: Percentages don't total 100 (within 0.01)

    Example:
        >>> calculate_splits(Decimal("100"), "USD", [
        ...     ParticipantSplit(user_id="A", split_type="percentage", value=Decimal("60")),
        ...     ParticipantSplit(user_id="B", split_type="percentage", value=Decimal("40")),
        ... ])
        [SplitResult(user_id='A', ..., amount=Decimal('60.00')), SplitResult(user_id='B', ..., amount=Decimal('40.00'))]
    """
    quantum = currency_quantum(currency)
    expense_amount = to_decimal(expense_amount)
    _validate_split_input(expense_amount, splits, quantum)

    total = round_decimal(expense_amount, quantum)
    groups = _group_by_type(splits)
    remaining = total

    # [split, amount] working pairs in processing order
    processed: List[list] = []

    if groups[SplitType.FIXED]:
        fixed = [[split, round_decimal(split.value, quantum)] for split in groups[SplitType.FIXED]]
        processed.extend(fixed)
        remaining -= sum(amount for _, amount in fixed)

    if groups[SplitType.PERCENTAGE]:
        pool = remaining
        percentage = [
            [split, round_decimal(split.value / Decimal("100") * pool, quantum)]
            for split in groups[SplitType.PERCENTAGE]
        ]

        # percentages total 100 within tolerance, so the group takes the whole pool
        difference = pool - sum(amount for _, amount in percentage)
        if difference:
            _largest_value(percentage)[1] += difference

        processed.extend(percentage)
        remaining -= pool

    if groups[SplitType.SHARE]:
        pool = max(remaining, Decimal("0"))
        share_splits = groups[SplitType.SHARE]
        total_shares = sum((split.value for split in share_splits), Decimal("0"))
        shares = [[split, round_decimal(split.value / total_shares * pool, quantum)] for split in share_splits]

        difference = pool - sum(amount for _, amount in shares)
        if difference:
            _largest_value(shares)[1] += difference

        processed.extend(shares)
        remaining -= pool

    if groups[SplitType.EQUAL]:
        pool = max(remaining, Decimal("0"))
        equal_splits = groups[SplitType.EQUAL]
        each = round_decimal(pool / len(equal_splits), quantum)
        equal = [[split, each] for split in equal_splits]

        difference = pool - each * len(equal_splits)
        if difference:
            equal[0][1] += difference

        processed.extend(equal)
        remaining -= pool

    leftover = total - sum(amount for _, amount in processed)
    if leftover:
        logger.debug("Assigning leftover %s %s to %s", leftover, currency, processed[0][0].user_id)
        processed[0][1] += leftover

    return [
        SplitResult(user_id=split.user_id, split_type=split.split_type, value=split.value, amount=amount)
        for split, amount in processed
    ]


def validate_split_total(splits: List[SplitResult], expense_amount: Number) -> bool:
    """Whether computed split amounts add up to the expense (within one cent)."""
    total = sum((split.amount for split in splits), Decimal("0"))
    return abs(total - to_decimal(expense_amount)) < CENT
