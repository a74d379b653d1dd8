"""
Error taxonomy for the settlement engine.

Every error here is a deterministic input error: it is raised where it is
detected and never retried. All of them derive from ValueError so callers
that only care about "bad input" can catch that.
"""


class SettlementError(ValueError):
    """Base class for all settlement engine input errors."""


class InvalidGraphError(SettlementError):
    """A debt references a user that is not in the participant set."""


class MissingExchangeRateError(SettlementError):
    """No direct or inverse rate exists for a currency pair."""

    def __init__(self, from_currency: str, to_currency: str):
        self.from_currency = from_currency
        self.to_currency = to_currency
        super().__init__(f"No exchange rate available for {from_currency} to {to_currency}")


class InvalidExchangeRateError(SettlementError):
    """A rate table entry has a malformed key or a non-positive rate."""


class UnbalancedLedgerError(SettlementError):
    """Net balances do not sum to zero within tolerance."""


class InvalidSplitInputError(SettlementError):
    """Empty split list, duplicate user, or non-positive amounts."""


class FixedAmountExceedsTotalError(SettlementError):
    """Fixed split amounts add up to more than the expense."""


class PercentageTotalError(SettlementError):
    """Percentage splits do not add up to 100%."""
