"""
Pytest configuration and fixtures for settlement_engine tests.
"""
import pytest
from decimal import Decimal
from typing import Dict, List

from settlement_engine.schemas.debt_schema import Debt, DebtEntry, DebtGraph, FriendRelation
from settlement_engine.schemas.settlement_schema import Settlement


def make_entries(balances: Dict[str, str], currency: str = "USD") -> List[DebtEntry]:
    """Build DebtEntry objects from {user_id: "amount"}."""
    return [
        DebtEntry(user_id=user_id, amount=Decimal(amount), currency=currency)
        for user_id, amount in balances.items()
    ]


def make_graph(users: List[str], debts: List[tuple]) -> DebtGraph:
    """Build a DebtGraph from (from, to, "amount", currency) tuples."""
    return DebtGraph(
        users=users,
        debts=[
            Debt(from_user_id=from_user, to_user_id=to_user, amount=Decimal(amount), currency=currency)
            for from_user, to_user, amount, currency in debts
        ],
    )


@pytest.fixture
def sample_balances():
    """Sample balances for testing."""
    return {
        "A": Decimal("66.67"),
        "B": Decimal("-10.00"),
        "C": Decimal("-43.33"),
        "D": Decimal("-13.34")
    }


@pytest.fixture
def sample_entries(sample_balances):
    """Sample balances as DebtEntry objects."""
    return [
        DebtEntry(user_id=user_id, amount=amount, currency="USD")
        for user_id, amount in sample_balances.items()
    ]


@pytest.fixture
def sample_graph():
    """A four-person group with a debt cycle between A, B and C."""
    return make_graph(
        ["A", "B", "C", "D"],
        [
            ("A", "B", "30", "USD"),
            ("B", "C", "20", "USD"),
            ("C", "A", "10", "USD"),
            ("D", "A", "25", "USD"),
            ("D", "C", "15.50", "USD"),
        ],
    )


@pytest.fixture
def sample_friend_relations():
    """Friend relations from the friend-preference walkthrough."""
    return [
        FriendRelation(user_id_a="user1", user_id_b="user3", strength=8),
        FriendRelation(user_id_a="user1", user_id_b="user2", strength=3),
    ]


def verify_settlements_settle_debts(balances: Dict[str, Decimal], settlements: List[Settlement]) -> None:
    """
    Helper to verify settlements settle all debts.

    Replays each settlement: the payer's balance goes up by the amount and
    the receiver's goes down. Every final balance must be within 0.01 of zero.
    """
    remaining = dict(balances)

    for settlement in settlements:
        assert settlement.payer_id != settlement.receiver_id
        assert settlement.amount > Decimal("0")
        remaining[settlement.payer_id] = remaining.get(settlement.payer_id, Decimal("0")) + settlement.amount
        remaining[settlement.receiver_id] = remaining.get(settlement.receiver_id, Decimal("0")) - settlement.amount

    for user, final_balance in remaining.items():
        assert abs(final_balance) <= Decimal("0.01"), \
            f"User {user} not settled: initial={balances.get(user)}, final={final_balance}"
