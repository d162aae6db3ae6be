from sqlalchemy import Column, Integer, String, ForeignKey, Numeric, JSON
from sqlalchemy.orm import relationship
from app.core.database import Base
from app.models.base import TimestampMixin


class DrawResult(Base, TimestampMixin):
    __tablename__ = "draw_results"

    id = Column(Integer, primary_key=True, index=True)
    slot_id = Column(Integer, ForeignKey("slots.id"), unique=True, nullable=False)
    winner = Column(String(64), nullable=False)
    dummy_units = Column(Integer, nullable=False, default=0)
    total_units = Column(Integer, nullable=False, default=0)
    per_unit_payout = Column(Numeric(14, 2), nullable=False)
    payout_total = Column(Numeric(14, 2), nullable=False)
    meta = Column(JSON, nullable=False, default=dict)

    slot = relationship("Slot", back_populates="draw_result")
