"""Typed ``meta`` payloads for ledger rows, one shape per transaction type."""
from decimal import Decimal
from typing import Literal, Optional, Union

from pydantic import BaseModel, ConfigDict

from app.models.wallet_tx import WalletTxType


class _Meta(BaseModel):
    model_config = ConfigDict(extra="forbid")


class DepositMeta(_Meta):
    kind: Literal["deposit"] = "deposit"
    trans_id: str
    requested_by: int
    proof_url: Optional[str] = None
    note: Optional[str] = None
    decided_by: Optional[int] = None
    admin_note: Optional[str] = None


class BidDebitMeta(_Meta):
    kind: Literal["bid_debit"] = "bid_debit"
    slot_id: int
    slot_type: str
    number: Optional[int] = None
    count: Optional[int] = None
    jp_numbers: Optional[list[int]] = None


class CommissionMeta(_Meta):
    kind: Literal["commission"] = "commission"
    slot_id: Optional[int] = None
    bid_amount: Optional[Decimal] = None
    commission_pct: Optional[Decimal] = None


class WinCreditMeta(_Meta):
    kind: Literal["win_credit"] = "win_credit"
    slot_id: int
    bid_id: int
    units: int = 1
    note: str = "winning reserved until admin payment"


class SettlementMeta(_Meta):
    kind: Literal["settlement"] = "settlement"
    trans_id: str
    admin_id: Optional[int] = None
    proof_url: Optional[str] = None
    note: Optional[str] = None


LedgerMeta = Union[DepositMeta, BidDebitMeta, CommissionMeta, WinCreditMeta, SettlementMeta]

META_BY_TYPE: dict[WalletTxType, type[_Meta]] = {
    WalletTxType.BID_CREDIT: DepositMeta,
    WalletTxType.BID_DEBIT: BidDebitMeta,
    WalletTxType.COMMISSION_CREDIT: CommissionMeta,
    WalletTxType.COMMISSION_SETTLEMENT: SettlementMeta,
    WalletTxType.WIN_CREDIT: WinCreditMeta,
    WalletTxType.WIN_SETTLEMENT_ADMIN_TO_AGENT: SettlementMeta,
    WalletTxType.WIN_SETTLEMENT_AGENT_TO_USER: SettlementMeta,
    WalletTxType.WITHDRAW: SettlementMeta,
}


def dump_meta(tx_type: WalletTxType, meta: LedgerMeta) -> dict:
    expected = META_BY_TYPE[tx_type]
    if not isinstance(meta, expected):
        raise TypeError(f"{tx_type.name} rows carry {expected.__name__}, got {type(meta).__name__}")
    return meta.model_dump(mode="json", exclude_none=True)


def load_meta(tx_type: WalletTxType, raw: dict | None) -> LedgerMeta:
    return META_BY_TYPE[tx_type].model_validate(raw or {})
