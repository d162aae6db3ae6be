from decimal import Decimal
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field

from app.models.bid import BidStatus


class BidCreate(BaseModel):
    slot_id: int
    customer_name: str = Field(min_length=1, max_length=255)
    customer_phone: str = Field(min_length=3, max_length=32)
    # LD
    number: Optional[int] = None
    count: Optional[int] = None
    # JP
    jp_numbers: Optional[list[int]] = None
    note: Optional[str] = None


class BidOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    slot_id: int
    user_id: int
    unique_bid_id: str
    customer_name: str
    customer_phone: str
    number: Optional[int] = None
    count: int
    jp_numbers: list[int]
    amount: Decimal
    status: BidStatus


class RemainingCountOut(BaseModel):
    number: int
    used: int
    max_count: int
    remaining: int
