from enum import Enum
from pydantic import BaseModel, Field, ConfigDict, field_validator
from typing import Dict, List, Optional
from decimal import Decimal

from settlement_engine.schemas.debt_schema import DebtGraph, FriendRelation, normalize_currency_code


class SettlementAlgorithm(str, Enum):
    GREEDY = "greedy"
    MIN_CASH_FLOW = "minCashFlow"
    FRIEND_PREFERENCE = "friendPreference"


class Settlement(BaseModel):
    """A single recommended payment from payer_id to receiver_id."""
    model_config = ConfigDict(frozen=True)

    payer_id: str
    receiver_id: str
    amount: Decimal = Field(..., gt=0)
    currency: str

    @field_validator("currency", mode="before")
    @classmethod
    def _normalize_currency(cls, v):
        return normalize_currency_code(v)


class SettlementRequest(BaseModel):
    debt_graph: DebtGraph
    algorithm: Optional[SettlementAlgorithm] = None
    friend_relations: List[FriendRelation] = []
    exchange_rates: Dict[str, Decimal] = {}
    working_currency: Optional[str] = Field(None, min_length=3, max_length=3)
    simplify_cycles: Optional[bool] = None

    @field_validator("working_currency", mode="before")
    @classmethod
    def _normalize_working_currency(cls, v):
        return normalize_currency_code(v)


class SettlementResponse(BaseModel):
    algorithm: SettlementAlgorithm
    settlements: List[Settlement]
