"""
Settlement and split breakdowns for display.

These helpers only reshape results the engine already computed; they do
not settle anything themselves.
"""

from decimal import Decimal, ROUND_HALF_UP
from typing import Dict, List, Tuple

from settlement_engine.schemas.debt_schema import DebtGraph
from settlement_engine.schemas.settlement_schema import Settlement
from settlement_engine.schemas.split_schema import SplitResult
from settlement_engine.schemas.visualization_schema import (
    BalanceItem, BreakdownStats, GraphLink, GraphNode, NetworkGraph,
    SettlementBreakdown, SplitTypeDetail, SplitTypeSummary, SplitVisualization, UserSplitSummary
)
from settlement_engine.utils.balance_reducer import reduce_debt_graph
from settlement_engine.utils.decimal_utils import Number, round_decimal, to_decimal


def reduction_percentage(original_count: int, optimized_count: int) -> int:
    if original_count == 0:
        return 0
    ratio = (Decimal("1") - Decimal(optimized_count) / Decimal(original_count)) * 100
    return int(ratio.quantize(Decimal("1"), rounding=ROUND_HALF_UP))


def generate_settlement_breakdown(graph: DebtGraph, settlements: List[Settlement]) -> SettlementBreakdown:
    """
    Explain how a single-currency debt graph turned into its settlements.

    Includes the input debts, net balances, creditors and debtors sorted by
    amount (largest first), the final settlements and transaction-count stats.
    """
    balances = reduce_debt_graph(graph)

    creditors = [BalanceItem(user_id=user_id, amount=amount) for user_id, amount in balances.items() if amount > 0]
    debtors = [BalanceItem(user_id=user_id, amount=-amount) for user_id, amount in balances.items() if amount < 0]
    creditors.sort(key=lambda item: item.amount, reverse=True)
    debtors.sort(key=lambda item: item.amount, reverse=True)

    return SettlementBreakdown(
        input_debts=list(graph.debts),
        user_balances=balances,
        creditors=creditors,
        debtors=debtors,
        final_settlements=list(settlements),
        stats=BreakdownStats(
            original_transaction_count=len(graph.debts),
            optimized_transaction_count=len(settlements),
            reduction_percentage=reduction_percentage(len(graph.debts), len(settlements)),
        ),
    )


def generate_network_graph(settlements: List[Settlement]) -> NetworkGraph:
    """
    Nodes and links for a force-directed view of settlements.

    Node balance is the net flow (received minus paid); parallel payments
    between the same pair are merged into one link. Amounts are summed as
    given, so pass settlements in one currency.
    """
    balances: Dict[str, Decimal] = {}
    links: Dict[Tuple[str, str], Decimal] = {}

    for settlement in settlements:
        balances[settlement.payer_id] = balances.get(settlement.payer_id, Decimal("0")) - settlement.amount
        balances[settlement.receiver_id] = balances.get(settlement.receiver_id, Decimal("0")) + settlement.amount
        key = (settlement.payer_id, settlement.receiver_id)
        links[key] = links.get(key, Decimal("0")) + settlement.amount

    return NetworkGraph(
        nodes=[GraphNode(id=user_id, balance=balance) for user_id, balance in balances.items()],
        links=[GraphLink(source=source, target=target, value=value) for (source, target), value in links.items()],
    )


def generate_split_visualization(expense_amount: Number, currency: str, splits: List[SplitResult]) -> SplitVisualization:
    """Group computed splits by type and by user for UI rendering."""
    expense_amount = to_decimal(expense_amount)
    by_type: Dict = {}
    by_user: Dict[str, UserSplitSummary] = {}

    for split in splits:
        summary = by_type.setdefault(split.split_type, SplitTypeSummary())
        summary.count += 1
        summary.total += split.amount
        summary.details.append(SplitTypeDetail(user_id=split.user_id, amount=split.amount, value=split.value))

        by_user[split.user_id] = UserSplitSummary(
            amount=split.amount,
            split_type=split.split_type,
            percentage_of_total=round_decimal(split.amount / expense_amount * 100),
        )

    return SplitVisualization(
        expense_total=expense_amount,
        currency=currency,
        splits_by_type=by_type,
        splits_by_user=by_user,
    )
