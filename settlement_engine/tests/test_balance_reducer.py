"""
Unit tests for the Balance Reducer and decimal helpers.
"""

import pytest
from decimal import Decimal

from settlement_engine.utils.balance_reducer import (
    balances_to_entries,
    reduce_debt_graph,
    validate_balance_sum,
    validate_debt_graph
)
from settlement_engine.utils.decimal_utils import currency_quantum, is_settled, round_decimal, to_decimal
from settlement_engine.utils.exceptions import InvalidGraphError, SettlementError, UnbalancedLedgerError
from settlement_engine.tests.conftest import make_graph


class TestDecimalUtils:
    """Test rounding and coercion helpers."""

    def test_round_to_cents(self):
        """Test rounding to 0.01 precision."""
        assert round_decimal(Decimal("43.333333")) == Decimal("43.33")
        assert round_decimal(Decimal("43.336666")) == Decimal("43.34")
        # ROUND_HALF_EVEN (banker's rounding)
        assert round_decimal(Decimal("100.005")) == Decimal("100.00")
        assert round_decimal(Decimal("100.015")) == Decimal("100.02")

    def test_custom_precision(self):
        """Test rounding with custom precision."""
        assert round_decimal(Decimal("43.34"), Decimal("0.1")) == Decimal("43.3")
        assert round_decimal(Decimal("1234.5"), Decimal("1")) == Decimal("1234")

    def test_to_decimal_avoids_float_noise(self):
        assert to_decimal(0.1) == Decimal("0.1")
        assert to_decimal("12.50") == Decimal("12.50")
        assert to_decimal(7) == Decimal("7")

    def test_currency_quantum(self):
        assert currency_quantum("USD") == Decimal("0.01")
        assert currency_quantum("jpy") == Decimal("1")
        assert currency_quantum("KWD") == Decimal("0.001")

    def test_is_settled(self):
        assert is_settled(Decimal("0.009"))
        assert is_settled(Decimal("-0.009"))
        assert not is_settled(Decimal("0.01"))


class TestReduceDebtGraph:
    """Test net balance calculation from a debt graph."""

    def test_single_debt(self):
        """A owes B 100: A is at -100, B at +100."""
        graph = make_graph(["A", "B"], [("A", "B", "100", "USD")])
        balances = reduce_debt_graph(graph)
        assert balances == {"A": Decimal("-100"), "B": Decimal("100")}

    def test_zero_balance_users_are_kept(self):
        """Users without debts still appear with a zero balance."""
        graph = make_graph(["A", "B", "C"], [("A", "B", "10", "USD")])
        balances = reduce_debt_graph(graph)
        assert list(balances.keys()) == ["A", "B", "C"]
        assert balances["C"] == Decimal("0")

    def test_conservation(self, sample_graph):
        """Balances always sum to zero."""
        balances = reduce_debt_graph(sample_graph)
        assert sum(balances.values()) == Decimal("0")
        assert balances == {
            "A": Decimal("5"),
            "B": Decimal("10"),
            "C": Decimal("25.50"),
            "D": Decimal("-40.50"),
        }

    def test_mutual_debts_net_out(self):
        graph = make_graph(["A", "B"], [("A", "B", "40", "USD"), ("B", "A", "40", "USD")])
        assert reduce_debt_graph(graph) == {"A": Decimal("0"), "B": Decimal("0")}

    def test_empty_graph(self):
        graph = make_graph([], [])
        assert reduce_debt_graph(graph) == {}

    def test_unknown_user_raises(self):
        """A debt to someone outside the participant set is rejected."""
        graph = make_graph(["A", "B"], [("A", "Z", "10", "USD")])
        with pytest.raises(InvalidGraphError, match="'Z'"):
            reduce_debt_graph(graph)

    def test_invalid_graph_is_a_value_error(self):
        graph = make_graph(["A"], [("X", "A", "10", "USD")])
        with pytest.raises(ValueError):
            validate_debt_graph(graph)


class TestValidateBalanceSum:
    """Test the zero-sum check."""

    def test_valid_balanced_sum(self):
        validate_balance_sum({"A": Decimal("50"), "B": Decimal("-50")})

    def test_valid_within_tolerance(self):
        validate_balance_sum({"A": Decimal("50.005"), "B": Decimal("-50")})

    def test_invalid_outside_tolerance(self):
        with pytest.raises(UnbalancedLedgerError, match="Balances not zero-sum"):
            validate_balance_sum({"A": Decimal("50"), "B": Decimal("-49")})

    def test_unbalanced_is_settlement_error(self):
        with pytest.raises(SettlementError):
            validate_balance_sum({"A": Decimal("1")})


class TestBalancesToEntries:

    def test_entries_carry_currency(self):
        entries = balances_to_entries({"A": Decimal("5"), "B": Decimal("-5")}, "EUR")
        assert [(e.user_id, e.amount, e.currency) for e in entries] == [
            ("A", Decimal("5"), "EUR"),
            ("B", Decimal("-5"), "EUR"),
        ]
