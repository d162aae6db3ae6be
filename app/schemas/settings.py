from decimal import Decimal
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field


class AppSettingsOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    bid_prize_ld: Decimal
    bid_prize_jp: Decimal
    winning_prize_ld: Decimal
    winning_prize_jp: Decimal
    min_profit_pct: Decimal
    agent_negative_balance_limit: Decimal
    default_commission_pct: Decimal
    ld_bid_limit_per_number: int


class AppSettingsUpdate(BaseModel):
    bid_prize_ld: Optional[Decimal] = Field(default=None, ge=0)
    bid_prize_jp: Optional[Decimal] = Field(default=None, ge=0)
    winning_prize_ld: Optional[Decimal] = Field(default=None, ge=0)
    winning_prize_jp: Optional[Decimal] = Field(default=None, ge=0)
    min_profit_pct: Optional[Decimal] = Field(default=None, ge=0)
    agent_negative_balance_limit: Optional[Decimal] = Field(default=None, ge=0)
    default_commission_pct: Optional[Decimal] = Field(default=None, ge=0, le=100)
    ld_bid_limit_per_number: Optional[int] = Field(default=None, ge=1)
