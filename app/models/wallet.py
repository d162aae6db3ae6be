from decimal import Decimal
from sqlalchemy import Column, Integer, ForeignKey, Numeric
from sqlalchemy.orm import relationship
from app.core.database import Base
from app.models.base import TimestampMixin


class Wallet(Base, TimestampMixin):
    __tablename__ = "wallets"

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(Integer, ForeignKey("users.id"), unique=True, nullable=False, index=True)
    # May go negative down to the agent negative-balance limit.
    total_balance = Column(Numeric(14, 2), default=0, nullable=False)
    reserved_winning = Column(Numeric(14, 2), default=0, nullable=False)

    user = relationship("User", back_populates="wallet")
    transactions = relationship("WalletTx", back_populates="wallet")

    @property
    def available_balance(self) -> Decimal:
        return Decimal(self.total_balance or 0) - Decimal(self.reserved_winning or 0)
