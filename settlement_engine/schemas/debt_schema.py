from pydantic import BaseModel, Field, ConfigDict, field_validator
from typing import List, Optional
from decimal import Decimal


def normalize_currency_code(value: Optional[str]) -> Optional[str]:
    """Strip and upper-case an ISO 4217 code so "usd" and "USD" match."""
    if value is None:
        return None
    return str(value).strip().upper()


class DebtEntry(BaseModel):
    """Signed net balance of one user in one currency (positive = is owed)."""
    model_config = ConfigDict(frozen=True)

    user_id: str
    amount: Decimal
    currency: str = Field(..., min_length=3, max_length=3)

    @field_validator("currency", mode="before")
    @classmethod
    def _normalize_currency(cls, v):
        return normalize_currency_code(v)


class Debt(BaseModel):
    """Directed obligation: from_user_id owes to_user_id."""
    model_config = ConfigDict(frozen=True)

    from_user_id: str
    to_user_id: str
    amount: Decimal = Field(..., gt=0)
    currency: str = Field(..., min_length=3, max_length=3)

    @field_validator("currency", mode="before")
    @classmethod
    def _normalize_currency(cls, v):
        return normalize_currency_code(v)


class DebtGraph(BaseModel):
    model_config = ConfigDict(frozen=True)

    users: List[str] = []
    debts: List[Debt] = []


class FriendRelation(BaseModel):
    """Undirected affinity between two users; strength > 0 means a relationship exists."""
    model_config = ConfigDict(frozen=True)

    user_id_a: str
    user_id_b: str
    strength: float
