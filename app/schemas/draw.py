from datetime import datetime
from decimal import Decimal
from typing import Optional

from pydantic import BaseModel, ConfigDict


class AnnounceRequest(BaseModel):
    # LD
    winning_number: Optional[int] = None
    # JP: list or "10-23-31-10-1-5" / "10,23,31,10,1,5"
    winning_combo: Optional[list[int] | str] = None
    # Neither set: pick automatically.
    note: Optional[str] = None


class DrawResultOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    slot_id: int
    winner: str
    dummy_units: int
    total_units: int
    per_unit_payout: Decimal
    payout_total: Decimal
    meta: dict
    created_at: Optional[datetime] = None


class AnnounceResponse(BaseModel):
    message: str
    draw: DrawResultOut
    credited_winners: int
