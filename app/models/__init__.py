from app.models.user import User, UserRole
from app.models.wallet import Wallet
from app.models.wallet_tx import WalletTx, WalletTxType, DepositStatus
from app.models.slot import Slot, SlotType, SlotStatus
from app.models.bid import Bid, BidStatus
from app.models.draw_result import DrawResult
from app.models.app_settings import AppSettings

__all__ = [
    "User",
    "UserRole",
    "Wallet",
    "WalletTx",
    "WalletTxType",
    "DepositStatus",
    "Slot",
    "SlotType",
    "SlotStatus",
    "Bid",
    "BidStatus",
    "DrawResult",
    "AppSettings",
]
