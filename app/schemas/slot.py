from datetime import datetime
from typing import Optional

from pydantic import BaseModel, ConfigDict

from app.models.slot import SlotStatus, SlotType


class SlotCreate(BaseModel):
    type: SlotType
    slot_time: datetime


class SlotUpdate(BaseModel):
    type: Optional[SlotType] = None
    slot_time: Optional[datetime] = None
    status: Optional[SlotStatus] = None
    settings_json: Optional[dict] = None


class SlotOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    unique_slot_id: str
    type: SlotType
    slot_time: datetime
    window_close_at: datetime
    status: SlotStatus
    settings_json: dict
