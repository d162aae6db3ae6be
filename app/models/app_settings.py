from sqlalchemy import Column, Integer, Numeric
from app.core.database import Base
from app.models.base import TimestampMixin


class AppSettings(Base, TimestampMixin):
    __tablename__ = "app_settings"

    id = Column(Integer, primary_key=True, index=True)
    bid_prize_ld = Column(Numeric(14, 2), nullable=False, default=1)
    bid_prize_jp = Column(Numeric(14, 2), nullable=False, default=5)
    winning_prize_ld = Column(Numeric(14, 2), nullable=False, default=3300)
    winning_prize_jp = Column(Numeric(14, 2), nullable=False, default=10000)
    # Fraction (0.15). Values above 1 are read as percentages.
    min_profit_pct = Column(Numeric(7, 4), nullable=False, default=0.15)
    agent_negative_balance_limit = Column(Numeric(14, 2), nullable=False, default=200)
    # Percent (10 == 10%).
    default_commission_pct = Column(Numeric(5, 2), nullable=False, default=10)
    ld_bid_limit_per_number = Column(Integer, nullable=False, default=80)
