"""
Friend-Preference Settlement

Routes money between people who already have a relationship before falling
back to the largest-first greedy matching. This can produce more
transactions than pure greedy; that is the trade-off the strategy makes.
"""

import logging
from decimal import Decimal
from typing import Dict, List, Optional, Tuple

from settlement_engine.schemas.debt_schema import DebtEntry, FriendRelation
from settlement_engine.schemas.settlement_schema import Settlement
from settlement_engine.utils.balance_reducer import validate_balance_sum
from settlement_engine.utils.decimal_utils import TOLERANCE, round_decimal
from settlement_engine.utils.min_cash_flow import aggregate_entries, settle_largest_first, split_parties

logger = logging.getLogger(__name__)

UserPair = Tuple[str, str]


def user_pair(user_a: str, user_b: str) -> UserPair:
    """Canonical (sorted) key for an undirected relationship."""
    return (user_a, user_b) if user_a <= user_b else (user_b, user_a)


def build_strength_lookup(friend_relations: Optional[List[FriendRelation]]) -> Dict[UserPair, float]:
    """Symmetric strength table; a later relation for the same pair overrides an earlier one."""
    lookup: Dict[UserPair, float] = {}
    for relation in friend_relations or []:
        lookup[user_pair(relation.user_id_a, relation.user_id_b)] = relation.strength
    return lookup


def friend_preference_settlement(
    debts: List[DebtEntry],
    friend_relations: Optional[List[FriendRelation]] = None,
    tolerance: Decimal = TOLERANCE,
) -> List[Settlement]:
    """
    Settle balances preferring debtor/creditor pairs with strong relationships.

    1. Enumerate every (debtor, creditor) pair with strength > 0.
    2. Sort pairs by strength, strongest first (stable on input order).
    3. Settle each pair up to min(remaining debt, remaining credit).
    4. Run the largest-creditor/largest-debtor greedy on what is left.

    Raises:
        UnbalancedLedgerError: If balances don't sum to zero (beyond tolerance)
        InvalidGraphError: If the entries mix currencies
    """
    balances, currency = aggregate_entries(debts)
    if not balances:
        return []
    validate_balance_sum(balances, tolerance)

    strengths = build_strength_lookup(friend_relations)
    creditors, debtors = split_parties(balances, tolerance)

    friend_pairs = []
    for debtor in debtors:
        for creditor in creditors:
            strength = strengths.get(user_pair(debtor[0], creditor[0]), 0)
            if strength > 0:
                friend_pairs.append((debtor, creditor, strength))
    friend_pairs.sort(key=lambda pair: pair[2], reverse=True)

    settlements: List[Settlement] = []
    for debtor, creditor, strength in friend_pairs:
        if debtor[1] < tolerance or creditor[1] < tolerance:
            continue

        amount = round_decimal(min(debtor[1], creditor[1]))
        settlements.append(Settlement(
            payer_id=debtor[0],
            receiver_id=creditor[0],
            amount=amount,
            currency=currency,
        ))
        debtor[1] = round_decimal(debtor[1] - amount)
        creditor[1] = round_decimal(creditor[1] - amount)
        logger.debug("Friend transfer %s pays %s %s %s (strength %s)",
                     debtor[0], creditor[0], amount, currency, strength)

    settlements.extend(settle_largest_first(creditors, debtors, currency, tolerance))
    return settlements
