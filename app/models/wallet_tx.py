import enum
from sqlalchemy import Column, Integer, ForeignKey, Numeric, String, Enum, Index, JSON
from sqlalchemy.orm import relationship
from app.core.database import Base
from app.models.base import TimestampMixin


class WalletTxType(str, enum.Enum):
    BID_CREDIT = "bid_credit"
    BID_DEBIT = "bid_debit"
    COMMISSION_CREDIT = "commission_credit"
    COMMISSION_SETTLEMENT = "commission_settlement"
    WIN_CREDIT = "win_credit"
    WIN_SETTLEMENT_ADMIN_TO_AGENT = "win_settlement_admin_to_agent"
    WIN_SETTLEMENT_AGENT_TO_USER = "win_settlement_agent_to_user"
    WITHDRAW = "withdraw"


class DepositStatus(str, enum.Enum):
    PENDING = "pending"
    APPROVED = "approved"
    DECLINED = "declined"


class WalletTx(Base, TimestampMixin):
    """Append-only ledger row.

    The only tolerated update is a BID_CREDIT deposit request moving out of
    PENDING, which also back-fills ``balance_after`` on approval.
    """

    __tablename__ = "wallet_tx"

    id = Column(Integer, primary_key=True, index=True)
    wallet_id = Column(Integer, ForeignKey("wallets.id"), nullable=False)
    tx_type = Column(Enum(WalletTxType), nullable=False)
    amount = Column(Numeric(14, 2), nullable=False)
    balance_after = Column(Numeric(14, 2), nullable=False)
    deposit_status = Column(Enum(DepositStatus), nullable=True)
    reference = Column(String(64), nullable=True, index=True)
    meta = Column(JSON, nullable=False, default=dict)

    wallet = relationship("Wallet", back_populates="transactions")


Index("ix_wallet_tx_wallet_id_type", WalletTx.wallet_id, WalletTx.tx_type)
Index("ix_wallet_tx_type_deposit_status", WalletTx.tx_type, WalletTx.deposit_status)
