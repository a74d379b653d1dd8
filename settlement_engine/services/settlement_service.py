"""
Settlement pipeline.

debt graph -> (normalize currencies) -> simplify cycles -> net balances
-> settlement strategy -> (re-express in original currencies)

Every call builds its own working data; nothing is cached between calls.
"""

import logging
from typing import Callable, Dict, List, Mapping, NamedTuple, Optional, Tuple, Union

from settlement_engine.config import settings
from settlement_engine.schemas.debt_schema import DebtEntry, DebtGraph, FriendRelation, normalize_currency_code
from settlement_engine.schemas.settlement_schema import (
    Settlement, SettlementAlgorithm, SettlementRequest, SettlementResponse
)
from settlement_engine.utils.balance_reducer import balances_to_entries, reduce_debt_graph, validate_debt_graph
from settlement_engine.utils.currency import (
    ExchangeRates, denormalize_settlements, normalize_graph, parse_exchange_rates
)
from settlement_engine.utils.cycle_simplifier import simplify_circular_debts
from settlement_engine.utils.exceptions import SettlementError
from settlement_engine.utils.friend_preference import friend_preference_settlement
from settlement_engine.utils.min_cash_flow import greedy_settlement, min_cash_flow

logger = logging.getLogger(__name__)

SettlementStrategy = Callable[[List[DebtEntry], Optional[List[FriendRelation]]], List[Settlement]]

ALGORITHMS: Dict[SettlementAlgorithm, SettlementStrategy] = {
    SettlementAlgorithm.GREEDY: greedy_settlement,
    SettlementAlgorithm.MIN_CASH_FLOW: min_cash_flow,
    SettlementAlgorithm.FRIEND_PREFERENCE: friend_preference_settlement,
}


def resolve_algorithm(algorithm: Union[SettlementAlgorithm, str, None]) -> SettlementAlgorithm:
    """Map a name (or None for the configured default) to a SettlementAlgorithm."""
    if algorithm is None:
        algorithm = settings.DEFAULT_ALGORITHM
    try:
        return SettlementAlgorithm(algorithm)
    except ValueError:
        valid = ", ".join(a.value for a in SettlementAlgorithm)
        raise SettlementError(f"Unknown settlement algorithm {algorithm!r}; expected one of: {valid}")


def prepare_working_graph(
    graph: DebtGraph,
    exchange_rates: ExchangeRates,
    working_currency: Optional[str] = None,
) -> Tuple[DebtGraph, str, bool]:
    """
    Bring a debt graph into a single working currency.

    When no working currency is given, a single-currency graph keeps its own
    currency and a multi-currency graph uses settings.DEFAULT_WORKING_CURRENCY.

    Returns:
        (working_graph, working_currency, normalized) where normalized tells
        whether any debt had to be converted

    Raises:
        InvalidGraphError: If a debt references a user not in graph.users
        MissingExchangeRateError: If a debt currency cannot be converted
    """
    validate_debt_graph(graph)

    currencies: List[str] = []
    for debt in graph.debts:
        if debt.currency not in currencies:
            currencies.append(debt.currency)

    if working_currency is None:
        working_currency = currencies[0] if len(currencies) == 1 else settings.DEFAULT_WORKING_CURRENCY
    working_currency = normalize_currency_code(working_currency)

    if all(currency == working_currency for currency in currencies):
        return graph, working_currency, False

    logger.debug("Normalizing %s into %s", currencies, working_currency)
    return normalize_graph(graph, exchange_rates, working_currency), working_currency, True


class WorkingSettlement(NamedTuple):
    """Pipeline output before settlements are re-expressed in original currencies."""
    graph: DebtGraph
    currency: str
    normalized: bool
    settlements: List[Settlement]


def settle_in_working_currency(
    graph: DebtGraph,
    algorithm: Union[SettlementAlgorithm, str, None] = None,
    friend_relations: Optional[List[FriendRelation]] = None,
    exchange_rates: Optional[Mapping] = None,
    working_currency: Optional[str] = None,
    simplify_cycles: Optional[bool] = None,
) -> WorkingSettlement:
    """
    Run the settlement pipeline in the working currency only.

    The returned graph is the normalized input (before cycle cancellation)
    and the settlements are all in the working currency, so the two can be
    compared directly.

    Raises:
        SettlementError: Any input error (unknown algorithm, invalid graph,
            missing exchange rate, unbalanced ledger)
    """
    strategy = resolve_algorithm(algorithm)
    rates = parse_exchange_rates(exchange_rates)

    working_graph, working_currency, normalized = prepare_working_graph(graph, rates, working_currency)

    if simplify_cycles is None:
        simplify_cycles = settings.SIMPLIFY_CYCLES
    simplified = simplify_circular_debts(working_graph) if simplify_cycles else working_graph

    balances = reduce_debt_graph(simplified)
    entries = balances_to_entries(balances, working_currency)
    settlements = ALGORITHMS[strategy](entries, friend_relations)

    logger.debug("%s produced %d settlements for %d debts",
                 strategy.value, len(settlements), len(graph.debts))
    return WorkingSettlement(working_graph, working_currency, normalized, settlements)


def calculate_settlements(
    graph: DebtGraph,
    algorithm: Union[SettlementAlgorithm, str, None] = None,
    friend_relations: Optional[List[FriendRelation]] = None,
    exchange_rates: Optional[Mapping] = None,
    working_currency: Optional[str] = None,
    simplify_cycles: Optional[bool] = None,
) -> List[Settlement]:
    """
    Compute the payments that settle a debt graph.

    Args:
        graph: Users and directed debts, possibly in several currencies
        algorithm: greedy, minCashFlow or friendPreference (default from settings)
        friend_relations: Relationship strengths, used by friendPreference
        exchange_rates: "USD_EUR" -> rate mapping, needed for multi-currency graphs
        working_currency: Currency for settlement arithmetic
        simplify_cycles: Cancel circular debts first (default from settings)

    Returns:
        Settlements in the order the strategy produced them, each in the
        currency its two parties mostly used

    Raises:
        SettlementError: Any input error (unknown algorithm, invalid graph,
            missing exchange rate, unbalanced ledger)
    """
    working = settle_in_working_currency(
        graph,
        algorithm=algorithm,
        friend_relations=friend_relations,
        exchange_rates=exchange_rates,
        working_currency=working_currency,
        simplify_cycles=simplify_cycles,
    )
    if not working.normalized:
        return working.settlements

    rates = parse_exchange_rates(exchange_rates)
    return denormalize_settlements(working.settlements, graph, rates, working.currency)


def process_settlement_request(request: SettlementRequest) -> SettlementResponse:
    """Run calculate_settlements for an API request."""
    algorithm = resolve_algorithm(request.algorithm)
    settlements = calculate_settlements(
        request.debt_graph,
        algorithm=algorithm,
        friend_relations=request.friend_relations,
        exchange_rates=request.exchange_rates,
        working_currency=request.working_currency,
        simplify_cycles=request.simplify_cycles,
    )
    return SettlementResponse(algorithm=algorithm, settlements=settlements)
