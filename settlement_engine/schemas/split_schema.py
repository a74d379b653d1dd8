from enum import Enum
from pydantic import BaseModel, Field, ConfigDict, field_validator
from typing import List, Optional
from decimal import Decimal

from settlement_engine.schemas.debt_schema import normalize_currency_code


class SplitType(str, Enum):
    FIXED = "fixed"
    PERCENTAGE = "percentage"
    SHARE = "share"
    EQUAL = "equal"


class ParticipantSplit(BaseModel):
    """
    One participant's split policy.

    value is the fixed amount, the percentage, or the share count depending
    on split_type; it is ignored for equal splits.
    """
    model_config = ConfigDict(frozen=True)

    user_id: str
    split_type: SplitType
    value: Optional[Decimal] = None


class SplitResult(BaseModel):
    model_config = ConfigDict(frozen=True)

    user_id: str
    split_type: SplitType
    value: Optional[Decimal] = None
    amount: Decimal


class ExpenseSplitRequest(BaseModel):
    expense_amount: Decimal
    currency: str = Field(..., min_length=3, max_length=3)
    participants: List[ParticipantSplit]

    @field_validator("currency", mode="before")
    @classmethod
    def _normalize_currency(cls, v):
        return normalize_currency_code(v)


class ExpenseSplitResponse(BaseModel):
    currency: str
    splits: List[SplitResult]
