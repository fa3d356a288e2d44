from datetime import datetime
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field

from delivery_ledger.core.enums import TransactionType


class AdjustmentCreate(BaseModel):
    amount: int = Field(..., gt=0, le=100_000_000, strict=True)
    type: TransactionType
    description: Optional[str] = Field(default=None, max_length=500)


class TransactionResponse(BaseModel):
    id: int
    user_id: int
    order_id: Optional[int] = None
    amount: int
    type: TransactionType
    description: Optional[str] = None
    created_at: datetime

    model_config = ConfigDict(from_attributes=True)
