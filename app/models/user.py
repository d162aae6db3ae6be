import enum
from sqlalchemy import Column, Integer, String, Boolean, Enum, Index, Numeric
from sqlalchemy.orm import relationship
from app.core.database import Base
from app.models.base import TimestampMixin


class UserRole(str, enum.Enum):
    AGENT = "agent"
    ADMIN = "admin"


class User(Base, TimestampMixin):
    __tablename__ = "users"

    id = Column(Integer, primary_key=True, index=True)
    phone = Column(String(32), unique=True, nullable=False, index=True)
    full_name = Column(String(255), nullable=False)
    role = Column(Enum(UserRole), nullable=False, default=UserRole.AGENT)
    is_active = Column(Boolean, default=True, nullable=False)
    is_approved = Column(Boolean, default=False, nullable=False)
    # Percent (10 == 10%). Null falls back to AppSettings.default_commission_pct.
    commission_pct = Column(Numeric(5, 2), nullable=True)

    wallet = relationship("Wallet", back_populates="user", uselist=False)
    bids = relationship("Bid", back_populates="user")


Index("ix_users_role_active", User.role, User.is_active)
