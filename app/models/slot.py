import enum
from sqlalchemy import Column, Integer, String, DateTime, Enum, Index, JSON
from sqlalchemy.orm import relationship
from app.core.database import Base
from app.models.base import TimestampMixin


class SlotType(str, enum.Enum):
    LD = "LD"
    JP = "JP"


class SlotStatus(str, enum.Enum):
    OPEN = "open"
    CLOSED = "closed"
    COMPLETED = "completed"


class Slot(Base, TimestampMixin):
    __tablename__ = "slots"

    id = Column(Integer, primary_key=True, index=True)
    unique_slot_id = Column(String(16), unique=True, nullable=False)
    type = Column(Enum(SlotType), nullable=False)
    slot_time = Column(DateTime(timezone=True), nullable=False)
    window_close_at = Column(DateTime(timezone=True), nullable=False)
    status = Column(Enum(SlotStatus), nullable=False, default=SlotStatus.OPEN)
    # Prize/profit parameters captured when the slot was created.
    settings_json = Column(JSON, nullable=False, default=dict)

    bids = relationship("Bid", back_populates="slot")
    draw_result = relationship("DrawResult", back_populates="slot", uselist=False)


Index("ix_slots_status_window", Slot.status, Slot.window_close_at)
Index("ix_slots_type_time", Slot.type, Slot.slot_time)
