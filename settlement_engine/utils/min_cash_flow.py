"""
Min-Cash-Flow Settlement Module

Turns net balances into a short list of payments that settles a group.

Two formulations of the same greedy idea live here:

- greedy_settlement: repeatedly scans for the largest remaining creditor and
  the largest remaining debtor and moves min(credit, debt) between them.
- min_cash_flow: the single-array formulation over one list of balances,
  settling max(balance) against min(balance) until both are within tolerance.

Ties go to the first maximum found (input order), so results are stable.
Amounts are rounded to cents after every step and anything below the
tolerance (0.01) counts as settled.

Example Usage:
    from settlement_engine.utils.min_cash_flow import greedy_settlement

    debts = [
        DebtEntry(user_id="A", amount=Decimal("-150"), currency="USD"),
        DebtEntry(user_id="B", amount=Decimal("50"), currency="USD"),
        DebtEntry(user_id="C", amount=Decimal("100"), currency="USD"),
    ]
    settlements = greedy_settlement(debts)

    # Result: A pays C 100.00, then A pays B 50.00
"""

import logging
from decimal import Decimal
from typing import Dict, List, Optional, Tuple

from settlement_engine.schemas.debt_schema import DebtEntry, FriendRelation
from settlement_engine.schemas.settlement_schema import Settlement
from settlement_engine.utils.balance_reducer import validate_balance_sum
from settlement_engine.utils.decimal_utils import TOLERANCE, round_decimal
from settlement_engine.utils.exceptions import InvalidGraphError

logger = logging.getLogger(__name__)

# [user_id, remaining absolute amount]; mutable working copy owned by one call
Party = list


def aggregate_entries(debts: List[DebtEntry]) -> Tuple[Dict[str, Decimal], Optional[str]]:
    """
    Sum entries per user and return (balances, currency).

    Raises:
        InvalidGraphError: If the entries span more than one currency
    """
    balances: Dict[str, Decimal] = {}
    currencies = []
    for entry in debts:
        balances[entry.user_id] = balances.get(entry.user_id, Decimal("0")) + entry.amount
        if entry.currency not in currencies:
            currencies.append(entry.currency)

    if len(currencies) > 1:
        raise InvalidGraphError(
            f"Debt entries span multiple currencies {currencies}; normalize them to one working currency first"
        )

    balances = {user_id: round_decimal(balance) for user_id, balance in balances.items()}
    return balances, (currencies[0] if currencies else None)


def split_parties(balances: Dict[str, Decimal], tolerance: Decimal = TOLERANCE) -> Tuple[List[Party], List[Party]]:
    """Separate balances into creditors and debtors (debts stored as positive amounts)."""
    creditors = [[user_id, balance] for user_id, balance in balances.items() if balance >= tolerance]
    debtors = [[user_id, -balance] for user_id, balance in balances.items() if balance <= -tolerance]
    return creditors, debtors


def _largest(parties: List[Party], tolerance: Decimal) -> Optional[Party]:
    best = None
    for party in parties:
        if party[1] >= tolerance and (best is None or party[1] > best[1]):
            best = party
    return best


def settle_largest_first(
    creditors: List[Party],
    debtors: List[Party],
    currency: str,
    tolerance: Decimal = TOLERANCE,
) -> List[Settlement]:
    """
    Greedy matching of the largest creditor with the largest debtor.

    Mutates the creditors/debtors working lists in place.
    """
    settlements: List[Settlement] = []
    # every transfer settles at least one party
    max_iterations = len(creditors) + len(debtors)
    iterations = 0

    while True:
        creditor = _largest(creditors, tolerance)
        debtor = _largest(debtors, tolerance)
        if creditor is None or debtor is None:
            break

        iterations += 1
        if iterations > max_iterations:
            raise RuntimeError(
                f"Settlement loop exceeded max_iterations ({max_iterations}). "
                f"This may indicate malformed input or rounding issues."
            )

        amount = round_decimal(min(creditor[1], debtor[1]))
        settlements.append(Settlement(
            payer_id=debtor[0],
            receiver_id=creditor[0],
            amount=amount,
            currency=currency,
        ))
        creditor[1] = round_decimal(creditor[1] - amount)
        debtor[1] = round_decimal(debtor[1] - amount)
        logger.debug("Transfer %s pays %s %s %s", debtor[0], creditor[0], amount, currency)

    return settlements


def greedy_settlement(
    debts: List[DebtEntry],
    friend_relations: Optional[List[FriendRelation]] = None,
    tolerance: Decimal = TOLERANCE,
) -> List[Settlement]:
    """
    Minimize the number of transactions needed to settle all balances.

    friend_relations is accepted for interface parity with the other
    strategies and ignored.

    Args:
        debts: Net balance entries, all in one currency
        friend_relations: Unused
        tolerance: Remaining amounts below this count as settled

    Returns:
        Settlements ordered as they were matched

    Raises:
        UnbalancedLedgerError: If balances don't sum to zero (beyond tolerance)
        InvalidGraphError: If the entries mix currencies
    """
    balances, currency = aggregate_entries(debts)
    if not balances:
        return []
    validate_balance_sum(balances, tolerance)

    creditors, debtors = split_parties(balances, tolerance)
    return settle_largest_first(creditors, debtors, currency, tolerance)


def _find_max_index(amounts: List[Decimal]) -> int:
    max_index = 0
    for i in range(1, len(amounts)):
        if amounts[i] > amounts[max_index]:
            max_index = i
    return max_index


def _find_min_index(amounts: List[Decimal]) -> int:
    min_index = 0
    for i in range(1, len(amounts)):
        if amounts[i] < amounts[min_index]:
            min_index = i
    return min_index


def min_cash_flow(
    debts: List[DebtEntry],
    friend_relations: Optional[List[FriendRelation]] = None,
    tolerance: Decimal = TOLERANCE,
    max_iterations: Optional[int] = None,
) -> List[Settlement]:
    """
    Min-Cash-Flow: settle the maximum creditor against the maximum debtor.

    Works on one owned balance array; each step moves min(credit, debt)
    between the extremes and repeats until both are within tolerance.
    Produces the same transfers as greedy_settlement; kept as a separate
    strategy because callers select it by name.

    Edge Cases Handled:
    - No entries or all balances zero (within tolerance): returns []
    - Sum of balances != 0 (beyond tolerance): raises UnbalancedLedgerError
    - More steps than max_iterations (default: number of users): raises RuntimeError

    Example:
        >>> min_cash_flow([
        ...     DebtEntry(user_id="A", amount=Decimal("80"), currency="USD"),
        ...     DebtEntry(user_id="B", amount=Decimal("-10"), currency="USD"),
        ...     DebtEntry(user_id="C", amount=Decimal("-70"), currency="USD"),
        ... ])
        [Settlement(payer_id='C', receiver_id='A', amount=Decimal('70.00'), currency='USD'),
         Settlement(payer_id='B', receiver_id='A', amount=Decimal('10.00'), currency='USD')]
    """
    balances, currency = aggregate_entries(debts)
    if not balances:
        return []
    validate_balance_sum(balances, tolerance)

    users = list(balances.keys())
    amounts = list(balances.values())
    # every transfer settles at least one user
    if max_iterations is None:
        max_iterations = len(users)

    settlements: List[Settlement] = []
    while True:
        creditor_index = _find_max_index(amounts)
        debtor_index = _find_min_index(amounts)

        credit = amounts[creditor_index]
        debt = -amounts[debtor_index]
        if credit < tolerance or debt < tolerance:
            return settlements

        if len(settlements) >= max_iterations:
            raise RuntimeError(
                f"Min-cash-flow exceeded max_iterations ({max_iterations}). "
                f"This may indicate malformed input or rounding issues."
            )

        transfer = round_decimal(min(credit, debt))
        amounts[debtor_index] = round_decimal(amounts[debtor_index] + transfer)
        amounts[creditor_index] = round_decimal(amounts[creditor_index] - transfer)

        settlements.append(Settlement(
            payer_id=users[debtor_index],
            receiver_id=users[creditor_index],
            amount=transfer,
            currency=currency,
        ))
        logger.debug("Transfer %s pays %s %s %s", users[debtor_index], users[creditor_index], transfer, currency)
