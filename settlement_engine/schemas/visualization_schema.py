from pydantic import BaseModel, Field
from typing import Dict, List, Optional
from decimal import Decimal

from settlement_engine.schemas.debt_schema import Debt
from settlement_engine.schemas.settlement_schema import Settlement
from settlement_engine.schemas.split_schema import SplitType


class BalanceItem(BaseModel):
    user_id: str
    amount: Decimal


class BreakdownStats(BaseModel):
    original_transaction_count: int
    optimized_transaction_count: int
    reduction_percentage: int


class SettlementBreakdown(BaseModel):
    input_debts: List[Debt]
    user_balances: Dict[str, Decimal]
    creditors: List[BalanceItem]
    debtors: List[BalanceItem]
    final_settlements: List[Settlement]
    stats: BreakdownStats


class GraphNode(BaseModel):
    id: str
    balance: Decimal


class GraphLink(BaseModel):
    source: str
    target: str
    value: Decimal


class NetworkGraph(BaseModel):
    nodes: List[GraphNode]
    links: List[GraphLink]


class SplitTypeDetail(BaseModel):
    user_id: str
    amount: Decimal
    value: Optional[Decimal] = None


class SplitTypeSummary(BaseModel):
    count: int = 0
    total: Decimal = Decimal("0")
    details: List[SplitTypeDetail] = Field(default_factory=list)


class UserSplitSummary(BaseModel):
    amount: Decimal
    split_type: SplitType
    percentage_of_total: Decimal


class SplitVisualization(BaseModel):
    expense_total: Decimal
    currency: str
    splits_by_type: Dict[SplitType, SplitTypeSummary]
    splits_by_user: Dict[str, UserSplitSummary]
