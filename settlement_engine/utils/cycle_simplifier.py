"""
Cycle Simplifier

Cancels circular chains of debt (A -> B -> C -> A) before settlement so the
optimizer starts from fewer edges.

The search is a single depth-first pass over the debt graph using an explicit
stack. A back-edge into the active path yields a cycle (the path slice from
the repeated node onward). Cycles are then cancelled in discovery order by
subtracting the smallest edge amount along each one, and edges left at zero
are dropped.

Known limitation: a node is expanded only on its first visit, so cycles that
would only be reached through an already-finished node are not found. Running
the simplifier again on its output can occasionally cancel more in graphs with
overlapping cycles.
"""

import logging
from decimal import Decimal
from typing import Dict, List, Optional, Tuple

from settlement_engine.schemas.debt_schema import DebtGraph
from settlement_engine.utils.balance_reducer import validate_debt_graph

logger = logging.getLogger(__name__)


def find_cycles(graph: DebtGraph) -> List[List[str]]:
    """
    Find debt cycles with one depth-first pass.

    Each cycle is a list of user ids [u0, u1, ..., uk] meaning
    u0 -> u1 -> ... -> uk -> u0.

    Raises:
        InvalidGraphError: If a debt references a user not in graph.users
    """
    validate_debt_graph(graph)

    adjacency: Dict[str, List[str]] = {user_id: [] for user_id in graph.users}
    for debt in graph.debts:
        adjacency[debt.from_user_id].append(debt.to_user_id)

    cycles: List[List[str]] = []
    visited = set()

    for root in adjacency:
        if root in visited:
            continue

        visited.add(root)
        path = [root]
        on_path = {root}
        # (node, index of the next neighbor to explore)
        stack: List[Tuple[str, int]] = [(root, 0)]

        while stack:
            node, index = stack[-1]
            neighbors = adjacency[node]
            if index == len(neighbors):
                stack.pop()
                path.pop()
                on_path.discard(node)
                continue

            stack[-1] = (node, index + 1)
            neighbor = neighbors[index]
            if neighbor not in visited:
                visited.add(neighbor)
                path.append(neighbor)
                on_path.add(neighbor)
                stack.append((neighbor, 0))
            elif neighbor in on_path:
                cycles.append(path[path.index(neighbor):])

    return cycles


def _find_edge(edges: List[list], from_user_id: str, to_user_id: str) -> Optional[list]:
    for edge in edges:
        if edge[0] == from_user_id and edge[1] == to_user_id:
            return edge
    return None


def simplify_circular_debts(graph: DebtGraph) -> DebtGraph:
    """
    Cancel circular debts and return a new graph.

    Net balances per user are unchanged and the result never has more edges
    than the input. The input graph is not modified.

    Args:
        graph: Single-currency DebtGraph

    Returns:
        DebtGraph with the same users and the remaining positive debts
    """
    cycles = find_cycles(graph)

    # [from, to, remaining amount, original debt]
    edges = [[debt.from_user_id, debt.to_user_id, debt.amount, debt] for debt in graph.debts]

    for cycle in cycles:
        cycle_edges = [
            _find_edge(edges, cycle[i], cycle[(i + 1) % len(cycle)])
            for i in range(len(cycle))
        ]
        minimum = min(edge[2] for edge in cycle_edges)
        if minimum <= Decimal("0"):
            continue

        for edge in cycle_edges:
            edge[2] -= minimum
        logger.debug("Cancelled %s around cycle %s", minimum, " -> ".join(cycle))

    debts = [
        debt if amount == debt.amount else debt.model_copy(update={"amount": amount})
        for _, _, amount, debt in edges
        if amount > 0
    ]
    return DebtGraph(users=list(graph.users), debts=debts)
