"""
Balance Reducer

Collapses a debt graph of directed pairwise obligations into one net
balance per participant.

    net balance > 0 -> the user is owed money (creditor)
    net balance < 0 -> the user owes money (debtor)

The graph must be single-currency; multi-currency graphs go through
settlement_engine.utils.currency.normalize_graph first.
"""

import logging
from decimal import Decimal
from typing import Dict, List

from settlement_engine.schemas.debt_schema import DebtEntry, DebtGraph
from settlement_engine.utils.decimal_utils import TOLERANCE, round_decimal
from settlement_engine.utils.exceptions import InvalidGraphError, UnbalancedLedgerError

logger = logging.getLogger(__name__)


def validate_debt_graph(graph: DebtGraph) -> None:
    """
    Check that every debt endpoint is a member of graph.users.

    Raises:
        InvalidGraphError: On the first debt referencing an unknown user
    """
    members = set(graph.users)
    for index, debt in enumerate(graph.debts):
        for user_id in (debt.from_user_id, debt.to_user_id):
            if user_id not in members:
                raise InvalidGraphError(
                    f"Debt #{index} references user {user_id!r} which is not a participant"
                )


def reduce_debt_graph(graph: DebtGraph) -> Dict[str, Decimal]:
    """
    Calculate the net balance of every participant.

    Every user in graph.users appears in the result, including users whose
    balance is zero. The debtor side of each edge is debited and the creditor
    side credited, so the balances always sum to zero.

    Args:
        graph: Single-currency DebtGraph

    Returns:
        Dictionary mapping user_id -> net_balance, in graph.users order

    Raises:
        InvalidGraphError: If a debt references a user not in graph.users

    Example:
        >>> graph = DebtGraph(users=["A", "B"], debts=[
        ...     Debt(from_user_id="A", to_user_id="B", amount=Decimal("100"), currency="USD")])
        >>> reduce_debt_graph(graph)
        {'A': Decimal('-100.00'), 'B': Decimal('100.00')}
    """
    validate_debt_graph(graph)

    balances: Dict[str, Decimal] = {user_id: Decimal("0") for user_id in graph.users}
    for debt in graph.debts:
        balances[debt.from_user_id] -= debt.amount
        balances[debt.to_user_id] += debt.amount

    balances = {user_id: round_decimal(balance) for user_id, balance in balances.items()}
    logger.debug("Reduced %d debts over %d users", len(graph.debts), len(balances))
    return balances


def validate_balance_sum(balances: Dict[str, Decimal], tolerance: Decimal = TOLERANCE) -> None:
    """
    Validate that the sum of all balances is approximately zero.

    Raises:
        UnbalancedLedgerError: If the sum of balances exceeds the tolerance
    """
    total = sum(balances.values(), Decimal("0"))
    if abs(total) > tolerance:
        raise UnbalancedLedgerError(
            f"Balances not zero-sum: total={total}, tolerance={tolerance}. "
            f"This indicates unbalanced debt data."
        )


def balances_to_entries(balances: Dict[str, Decimal], currency: str) -> List[DebtEntry]:
    return [
        DebtEntry(user_id=user_id, amount=amount, currency=currency)
        for user_id, amount in balances.items()
    ]
