import logging
from decimal import Decimal, ROUND_HALF_UP
from typing import Optional

from sqlalchemy import func
from sqlalchemy.orm import Session

from app.core.errors import (
    DepositAlreadyProcessed,
    DepositNotFound,
    InsufficientFunds,
    InsufficientReserve,
    ValidationFailed,
    WalletNotFound,
)
from app.models import DepositStatus, User, UserRole, Wallet, WalletTx, WalletTxType
from app.schemas.ledger import (
    BidDebitMeta,
    CommissionMeta,
    DepositMeta,
    LedgerMeta,
    SettlementMeta,
    WinCreditMeta,
    dump_meta,
    load_meta,
)

logger = logging.getLogger(__name__)

CENT = Decimal("0.01")


def to_money(value) -> Decimal:
    return Decimal(str(value or 0)).quantize(CENT, rounding=ROUND_HALF_UP)


def _require_positive(amount) -> Decimal:
    value = to_money(amount)
    if value <= 0:
        raise ValidationFailed("Amount must be > 0")
    return value


def _lock_wallet(db: Session, user_id: int) -> Optional[Wallet]:
    # Row lock: every balance change is a read-modify-write of this row.
    return db.query(Wallet).filter(Wallet.user_id == user_id).with_for_update().first()


def _require_wallet(db: Session, user_id: int) -> Wallet:
    wallet = _lock_wallet(db, user_id)
    if not wallet:
        raise WalletNotFound()
    return wallet


def get_wallet(db: Session, user_id: int) -> Wallet:
    wallet = db.query(Wallet).filter(Wallet.user_id == user_id).first()
    if not wallet:
        raise WalletNotFound()
    return wallet


def get_or_create_wallet(db: Session, user_id: int, commit: bool = True) -> Wallet:
    wallet = _lock_wallet(db, user_id)
    if not wallet:
        wallet = Wallet(user_id=user_id, total_balance=Decimal("0"), reserved_winning=Decimal("0"))
        db.add(wallet)
        if commit:
            db.commit()
            db.refresh(wallet)
        else:
            db.flush()
    return wallet


def _append(
    db: Session,
    wallet: Wallet,
    tx_type: WalletTxType,
    amount: Decimal,
    meta: LedgerMeta,
    *,
    reference: Optional[str] = None,
    deposit_status: Optional[DepositStatus] = None,
    commit: bool = True,
) -> WalletTx:
    entry = WalletTx(
        wallet_id=wallet.id,
        tx_type=tx_type,
        amount=amount,
        balance_after=to_money(wallet.total_balance),
        deposit_status=deposit_status,
        reference=reference,
        meta=dump_meta(tx_type, meta),
    )
    db.add(entry)
    if commit:
        db.commit()
        db.refresh(entry)
    else:
        db.flush()
    return entry


def request_bid_deposit(
    db: Session,
    user_id: int,
    amount,
    trans_id: str,
    proof_url: Optional[str] = None,
    note: Optional[str] = None,
) -> WalletTx:
    """Agent asks the house to top up the wallet. No balance effect until approved."""
    value = _require_positive(amount)
    wallet = get_or_create_wallet(db, user_id, commit=False)
    meta = DepositMeta(trans_id=trans_id, requested_by=user_id, proof_url=proof_url, note=note)
    entry = _append(
        db,
        wallet,
        WalletTxType.BID_CREDIT,
        value,
        meta,
        reference=trans_id,
        deposit_status=DepositStatus.PENDING,
    )
    logger.info("Deposit requested user_id=%s amount=%s tx_id=%s", user_id, value, entry.id)
    return entry


def decide_deposit(
    db: Session,
    admin_id: int,
    wallet_tx_id: int,
    approve: bool,
    admin_note: Optional[str] = None,
) -> WalletTx:
    pending = db.query(WalletTx).filter(WalletTx.id == wallet_tx_id).with_for_update().first()
    if not pending:
        raise DepositNotFound()
    if pending.tx_type != WalletTxType.BID_CREDIT:
        raise ValidationFailed("Transaction is not a deposit request")
    if pending.deposit_status != DepositStatus.PENDING:
        raise DepositAlreadyProcessed()

    meta = load_meta(WalletTxType.BID_CREDIT, pending.meta)
    meta = meta.model_copy(update={"decided_by": admin_id, "admin_note": admin_note})

    if approve:
        wallet = db.query(Wallet).filter(Wallet.id == pending.wallet_id).with_for_update().first()
        if not wallet:
            raise WalletNotFound()
        wallet.total_balance = to_money(wallet.total_balance) + to_money(pending.amount)
        pending.balance_after = to_money(wallet.total_balance)
        pending.deposit_status = DepositStatus.APPROVED
    else:
        pending.deposit_status = DepositStatus.DECLINED
    pending.meta = dump_meta(WalletTxType.BID_CREDIT, meta)

    db.commit()
    db.refresh(pending)
    logger.info(
        "Deposit %s tx_id=%s admin_id=%s amount=%s",
        pending.deposit_status.value,
        pending.id,
        admin_id,
        pending.amount,
    )
    return pending


def debit_for_bid(
    db: Session,
    user_id: int,
    amount,
    *,
    negative_limit,
    meta: BidDebitMeta,
    commit: bool = True,
) -> WalletTx:
    value = _require_positive(amount)
    wallet = _require_wallet(db, user_id)
    limit = to_money(negative_limit)

    if wallet.available_balance - value < -limit:
        raise InsufficientFunds(f"Negative limit exceeded. Allowed: {limit}")

    wallet.total_balance = to_money(wallet.total_balance) - value
    return _append(db, wallet, WalletTxType.BID_DEBIT, -value, meta, reference=f"slot:{meta.slot_id}", commit=commit)


def credit_commission(
    db: Session,
    user_id: int,
    amount,
    meta: Optional[CommissionMeta] = None,
    commit: bool = True,
) -> WalletTx:
    value = _require_positive(amount)
    wallet = get_or_create_wallet(db, user_id, commit=False)
    wallet.total_balance = to_money(wallet.total_balance) + value
    return _append(db, wallet, WalletTxType.COMMISSION_CREDIT, value, meta or CommissionMeta(), commit=commit)


def credit_winning(
    db: Session,
    user_id: int,
    amount,
    *,
    slot_id: int,
    bid_id: int,
    units: int = 1,
    commit: bool = True,
) -> WalletTx:
    """Reserve a winning for the agent's customer. Total balance is untouched."""
    value = _require_positive(amount)
    wallet = _require_wallet(db, user_id)
    wallet.reserved_winning = to_money(wallet.reserved_winning) + value
    meta = WinCreditMeta(slot_id=slot_id, bid_id=bid_id, units=units)
    return _append(db, wallet, WalletTxType.WIN_CREDIT, value, meta, reference=f"slot:{slot_id}", commit=commit)


def settle_winning_to_agent(
    db: Session,
    admin_id: int,
    user_id: int,
    amount,
    trans_id: str,
    note: Optional[str] = None,
) -> WalletTx:
    """House pays the agent. Reserved winning is reconciled separately by the agent."""
    value = _require_positive(amount)
    wallet = _require_wallet(db, user_id)
    wallet.total_balance = to_money(wallet.total_balance) + value
    meta = SettlementMeta(trans_id=trans_id, admin_id=admin_id, note=note)
    entry = _append(db, wallet, WalletTxType.WIN_SETTLEMENT_ADMIN_TO_AGENT, value, meta, reference=trans_id)
    logger.info("Winning settled to agent user_id=%s amount=%s admin_id=%s", user_id, value, admin_id)
    return entry


def settle_winning_to_customer(
    db: Session,
    user_id: int,
    amount,
    trans_id: str,
    proof_url: Optional[str] = None,
    note: Optional[str] = None,
) -> WalletTx:
    value = _require_positive(amount)
    wallet = _require_wallet(db, user_id)
    if to_money(wallet.reserved_winning) < value:
        raise InsufficientReserve()

    wallet.reserved_winning = to_money(wallet.reserved_winning) - value
    wallet.total_balance = to_money(wallet.total_balance) - value
    meta = SettlementMeta(trans_id=trans_id, proof_url=proof_url, note=note)
    return _append(db, wallet, WalletTxType.WIN_SETTLEMENT_AGENT_TO_USER, -value, meta, reference=trans_id)


def _pay_out_of_available(
    db: Session,
    tx_type: WalletTxType,
    admin_id: int,
    user_id: int,
    amount,
    trans_id: str,
    note: Optional[str],
    error_message: str,
) -> WalletTx:
    value = _require_positive(amount)
    wallet = _require_wallet(db, user_id)
    if value > wallet.available_balance:
        raise InsufficientFunds(error_message)

    wallet.total_balance = to_money(wallet.total_balance) - value
    meta = SettlementMeta(trans_id=trans_id, admin_id=admin_id, note=note)
    entry = _append(db, wallet, tx_type, -value, meta, reference=trans_id)
    logger.info("%s user_id=%s amount=%s admin_id=%s", tx_type.name, user_id, value, admin_id)
    return entry


def settle_commission_by_admin(
    db: Session, admin_id: int, user_id: int, amount, trans_id: str, note: Optional[str] = None
) -> WalletTx:
    return _pay_out_of_available(
        db,
        WalletTxType.COMMISSION_SETTLEMENT,
        admin_id,
        user_id,
        amount,
        trans_id,
        note,
        "Insufficient available balance to settle commission",
    )


def admin_process_withdraw(
    db: Session, admin_id: int, user_id: int, amount, trans_id: str, note: Optional[str] = None
) -> WalletTx:
    return _pay_out_of_available(
        db,
        WalletTxType.WITHDRAW,
        admin_id,
        user_id,
        amount,
        trans_id,
        note,
        "Withdraw amount exceeds available balance",
    )


def _sum_by_type(db: Session, wallet_id: int) -> list[tuple]:
    return (
        db.query(WalletTx.tx_type, WalletTx.deposit_status, func.coalesce(func.sum(WalletTx.amount), 0))
        .filter(WalletTx.wallet_id == wallet_id)
        .group_by(WalletTx.tx_type, WalletTx.deposit_status)
        .all()
    )


def ledger_totals(db: Session, wallet_id: int) -> tuple[Decimal, Decimal]:
    """Recompute (total_balance, reserved_winning) from the ledger alone."""
    total = Decimal("0")
    reserved = Decimal("0")
    for tx_type, deposit_status, amount in _sum_by_type(db, wallet_id):
        amount = to_money(amount)
        if tx_type == WalletTxType.BID_CREDIT:
            if deposit_status == DepositStatus.APPROVED:
                total += amount
        elif tx_type == WalletTxType.WIN_CREDIT:
            reserved += amount
        elif tx_type == WalletTxType.WIN_SETTLEMENT_AGENT_TO_USER:
            total += amount
            reserved += amount
        else:
            total += amount
    return total, reserved


def get_wallet_summary(db: Session, user_id: int) -> dict:
    wallet = get_wallet(db, user_id)
    earned = Decimal("0")
    settled = Decimal("0")
    for tx_type, _status, amount in _sum_by_type(db, wallet.id):
        if tx_type == WalletTxType.COMMISSION_CREDIT:
            earned += to_money(amount)
        elif tx_type == WalletTxType.COMMISSION_SETTLEMENT:
            # Stored negative.
            settled += abs(to_money(amount))
    return {
        "total_balance": to_money(wallet.total_balance),
        "reserved_winning": to_money(wallet.reserved_winning),
        "available_balance": to_money(wallet.available_balance),
        "commission_earned": earned,
        "commission_settled": settled,
        "commission_pending": earned - settled,
    }


def list_wallet_history(db: Session, user_id: int, page: int = 1, page_size: int = 50) -> tuple[list[WalletTx], int]:
    wallet = get_wallet(db, user_id)
    query = db.query(WalletTx).filter(WalletTx.wallet_id == wallet.id)
    total = query.count()
    items = query.order_by(WalletTx.id.desc()).offset((page - 1) * page_size).limit(page_size).all()
    return items, total


def list_pending_deposits(db: Session) -> list[WalletTx]:
    return (
        db.query(WalletTx)
        .filter(
            WalletTx.tx_type == WalletTxType.BID_CREDIT,
            WalletTx.deposit_status == DepositStatus.PENDING,
        )
        .order_by(WalletTx.id.desc())
        .all()
    )


def list_pending_winning_settlements(db: Session) -> list[dict]:
    rows = (
        db.query(Wallet, User)
        .join(User, Wallet.user_id == User.id)
        .filter(Wallet.reserved_winning > 0, User.role == UserRole.AGENT)
        .order_by(Wallet.reserved_winning.desc())
        .all()
    )
    return [
        {
            "user_id": user.id,
            "full_name": user.full_name,
            "phone": user.phone,
            "reserved_winning": to_money(wallet.reserved_winning),
            "total_balance": to_money(wallet.total_balance),
        }
        for wallet, user in rows
    ]
