import enum
from sqlalchemy import Column, Integer, String, ForeignKey, Numeric, Enum, Index, JSON, DateTime
from sqlalchemy.orm import relationship
from app.core.database import Base
from app.models.base import TimestampMixin
from app.utils.numbers import combo_key as _combo_key


class BidStatus(str, enum.Enum):
    ACTIVE = "active"
    CANCELLED = "cancelled"


class Bid(Base, TimestampMixin):
    __tablename__ = "bids"

    id = Column(Integer, primary_key=True, index=True)
    slot_id = Column(Integer, ForeignKey("slots.id"), nullable=False)
    user_id = Column(Integer, ForeignKey("users.id"), nullable=False)
    # Deterministic but not unique: repeated identical bids share it.
    unique_bid_id = Column(String(128), nullable=False, index=True)
    customer_name = Column(String(255), nullable=False)
    customer_phone = Column(String(32), nullable=False)
    number = Column(Integer, nullable=True)
    count = Column(Integer, nullable=False, default=1)
    jp_numbers = Column(JSON, nullable=False, default=list)
    amount = Column(Numeric(14, 2), nullable=False)
    status = Column(Enum(BidStatus), nullable=False, default=BidStatus.ACTIVE)
    cancelled_at = Column(DateTime(timezone=True), nullable=True)

    slot = relationship("Slot", back_populates="bids")
    user = relationship("User", back_populates="bids")

    @property
    def combo_key(self) -> str:
        return _combo_key(self.jp_numbers or [])


Index("ix_bids_slot_number", Bid.slot_id, Bid.number)
Index("ix_bids_slot_status", Bid.slot_id, Bid.status)
