"""
Currency Normalizer

Converts multi-currency debt graphs into one working currency and maps the
resulting settlements back into the currency the two parties mostly used.

Exchange rates are keyed by an ordered CurrencyPair: a rate for (USD, EUR)
means 1 USD = rate EUR. Lookup tries the direct pair, then the inverse pair
(dividing). There is no triangulation through a third currency.
"""

import logging
from decimal import Decimal
from typing import Dict, List, Mapping, NamedTuple, Optional, Union

from settlement_engine.schemas.debt_schema import Debt, DebtGraph
from settlement_engine.schemas.settlement_schema import Settlement
from settlement_engine.utils.balance_reducer import validate_debt_graph
from settlement_engine.utils.decimal_utils import Number, round_decimal, to_decimal
from settlement_engine.utils.exceptions import InvalidExchangeRateError, MissingExchangeRateError

logger = logging.getLogger(__name__)


class CurrencyPair(NamedTuple):
    base: str
    quote: str

    @classmethod
    def parse(cls, key: str) -> "CurrencyPair":
        """Parse a "USD_EUR" style key."""
        parts = key.strip().upper().split("_")
        if len(parts) != 2 or not all(parts):
            raise InvalidExchangeRateError(f"Malformed currency pair key: {key!r}")
        return cls(parts[0], parts[1])

    def inverse(self) -> "CurrencyPair":
        return CurrencyPair(self.quote, self.base)


ExchangeRates = Dict[CurrencyPair, Decimal]


def parse_exchange_rates(rates: Optional[Mapping[Union[str, CurrencyPair], Number]]) -> ExchangeRates:
    """
    Build a typed rate table from a mapping keyed by "USD_EUR" strings or CurrencyPair.

    Raises:
        InvalidExchangeRateError: On a malformed key or a rate that is not positive
    """
    table: ExchangeRates = {}
    for key, rate in (rates or {}).items():
        pair = key if isinstance(key, CurrencyPair) else CurrencyPair.parse(key)
        value = to_decimal(rate)
        if value <= 0:
            raise InvalidExchangeRateError(f"Exchange rate for {pair.base}_{pair.quote} must be positive, got {value}")
        table[CurrencyPair(pair.base.upper(), pair.quote.upper())] = value
    return table


def convert_amount(amount: Number, from_currency: str, to_currency: str, rates: ExchangeRates) -> Decimal:
    """
    Convert an amount between currencies, rounded to cents.

    Raises:
        MissingExchangeRateError: If neither the direct nor the inverse pair is known
    """
    amount = to_decimal(amount)
    if from_currency == to_currency:
        return round_decimal(amount)

    pair = CurrencyPair(from_currency, to_currency)
    if pair in rates:
        return round_decimal(amount * rates[pair])
    if pair.inverse() in rates:
        return round_decimal(amount / rates[pair.inverse()])
    raise MissingExchangeRateError(from_currency, to_currency)


def normalize_graph(graph: DebtGraph, exchange_rates: ExchangeRates, working_currency: str) -> DebtGraph:
    """
    Return a copy of the graph with every debt expressed in working_currency.

    Debts whose converted amount rounds to zero are dropped since they no
    longer move any balance.

    Raises:
        InvalidGraphError: If a debt references a user not in graph.users
        MissingExchangeRateError: If a debt currency cannot be converted
    """
    validate_debt_graph(graph)

    debts: List[Debt] = []
    for debt in graph.debts:
        amount = convert_amount(debt.amount, debt.currency, working_currency, exchange_rates)
        if amount <= 0:
            logger.debug("Dropping %s->%s debt of %s %s: rounds to zero in %s",
                         debt.from_user_id, debt.to_user_id, debt.amount, debt.currency, working_currency)
            continue
        debts.append(debt.model_copy(update={"amount": amount, "currency": working_currency}))

    return DebtGraph(users=list(graph.users), debts=debts)


def preferred_currency(original_graph: DebtGraph, user_a: str, user_b: str) -> Optional[str]:
    """
    Most frequent currency among the original debts between two users in either direction.

    Ties go to the currency seen first. Returns None when the users had no direct debts.
    """
    counts: Dict[str, int] = {}
    for debt in original_graph.debts:
        if {debt.from_user_id, debt.to_user_id} == {user_a, user_b}:
            counts[debt.currency] = counts.get(debt.currency, 0) + 1

    best: Optional[str] = None
    best_count = 0
    for currency, count in counts.items():
        if count > best_count:
            best, best_count = currency, count
    return best


def denormalize_settlements(
    settlements: List[Settlement],
    original_graph: DebtGraph,
    exchange_rates: ExchangeRates,
    working_currency: str,
) -> List[Settlement]:
    """
    Re-express working-currency settlements in the currency each pair mostly used.

    Pairs with no original debts between them (possible once cycles have been
    cancelled) stay in working_currency, as do settlements too small to be
    expressed in the preferred currency once rounded.

    Raises:
        MissingExchangeRateError: If a preferred currency cannot be reached from working_currency
    """
    result: List[Settlement] = []
    for settlement in settlements:
        currency = preferred_currency(original_graph, settlement.payer_id, settlement.receiver_id) or working_currency
        if currency == working_currency:
            result.append(settlement.model_copy(update={"currency": working_currency}))
            continue

        amount = convert_amount(settlement.amount, working_currency, currency, exchange_rates)
        if amount <= 0:
            logger.debug("Settlement %s->%s of %s %s rounds to zero in %s; kept in %s",
                         settlement.payer_id, settlement.receiver_id, settlement.amount,
                         working_currency, currency, working_currency)
            result.append(settlement.model_copy(update={"currency": working_currency}))
            continue

        logger.debug("Settlement %s->%s re-expressed as %s %s",
                     settlement.payer_id, settlement.receiver_id, amount, currency)
        result.append(Settlement(
            payer_id=settlement.payer_id,
            receiver_id=settlement.receiver_id,
            amount=amount,
            currency=currency,
        ))
    return result
