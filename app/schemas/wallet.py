from datetime import datetime
from decimal import Decimal
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field

from app.models.wallet_tx import DepositStatus, WalletTxType


class WalletOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    total_balance: Decimal
    reserved_winning: Decimal
    available_balance: Decimal


class WalletSummaryOut(WalletOut):
    commission_earned: Decimal
    commission_settled: Decimal
    commission_pending: Decimal


class LedgerOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    created_at: Optional[datetime] = None
    tx_type: WalletTxType
    amount: Decimal
    balance_after: Decimal
    deposit_status: Optional[DepositStatus] = None
    reference: Optional[str] = None
    meta: dict


class LedgerPage(BaseModel):
    items: list[LedgerOut]
    total: int
    page: int
    page_size: int


class DepositRequest(BaseModel):
    amount: Decimal = Field(gt=0)
    trans_id: str
    proof_url: Optional[str] = None
    note: Optional[str] = None


class DepositDecision(BaseModel):
    approve: bool
    admin_note: Optional[str] = None


class CustomerSettlementRequest(BaseModel):
    amount: Decimal = Field(gt=0)
    trans_id: str
    proof_url: Optional[str] = None
    note: Optional[str] = None


class AdminPaymentRequest(BaseModel):
    user_id: int
    amount: Decimal = Field(gt=0)
    trans_id: str
    note: Optional[str] = None


class PendingWinningOut(BaseModel):
    user_id: int
    full_name: Optional[str] = None
    phone: Optional[str] = None
    reserved_winning: Decimal
    total_balance: Decimal
