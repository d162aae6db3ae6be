import logging
from collections import Counter
from datetime import datetime
from decimal import Decimal
from typing import Optional

from sqlalchemy import func
from sqlalchemy.orm import Session

from app.core.errors import BiddingClosed, SlotNotFound, ValidationFailed
from app.models import Bid, BidStatus, Slot, SlotStatus, SlotType, User
from app.schemas.bid import BidCreate
from app.schemas.ledger import BidDebitMeta, CommissionMeta
from app.services.settings import PricingSnapshot, build_snapshot, get_app_settings
from app.services.wallet import credit_commission, debit_for_bid, to_money
from app.utils.dates import as_utc, utcnow
from app.utils.numbers import combo_key, validate_jp_combo, validate_ld_number

logger = logging.getLogger(__name__)


def generate_unique_bid_id(
    slot_code: str,
    customer_phone: str,
    *,
    number: Optional[int] = None,
    count: Optional[int] = None,
    jp_numbers: Optional[list[int]] = None,
) -> str:
    if jp_numbers:
        return f"{slot_code}#{customer_phone}#{combo_key(jp_numbers)}"
    return f"{slot_code}#{customer_phone}#{number}#{count}"


def _active_bids(db: Session, slot_id: int):
    return db.query(Bid).filter(Bid.slot_id == slot_id, Bid.status == BidStatus.ACTIVE)


def aggregate_collected(db: Session, slot_id: int) -> Decimal:
    total = (
        db.query(func.coalesce(func.sum(Bid.amount), 0))
        .filter(Bid.slot_id == slot_id, Bid.status == BidStatus.ACTIVE)
        .scalar()
    )
    return to_money(total)


def units_for_number(db: Session, slot_id: int, number: int) -> int:
    used = (
        db.query(func.coalesce(func.sum(Bid.count), 0))
        .filter(Bid.slot_id == slot_id, Bid.number == number, Bid.status == BidStatus.ACTIVE)
        .scalar()
    )
    return int(used or 0)


def aggregate_units_by_number(db: Session, slot_id: int) -> dict[int, int]:
    rows = (
        db.query(Bid.number, func.sum(Bid.count))
        .filter(Bid.slot_id == slot_id, Bid.status == BidStatus.ACTIVE, Bid.number.isnot(None))
        .group_by(Bid.number)
        .all()
    )
    return {int(number): int(units or 0) for number, units in rows}


def aggregate_units_by_combo(db: Session, slot_id: int) -> dict[str, int]:
    # jp_numbers is a JSON column, so grouping happens here rather than in SQL.
    return dict(Counter(bid.combo_key for bid in _active_bids(db, slot_id).all()))


def list_bids_for_number(db: Session, slot_id: int, number: int) -> list[Bid]:
    return _active_bids(db, slot_id).filter(Bid.number == number).order_by(Bid.id.asc()).all()


def list_bids_for_combo(db: Session, slot_id: int, key: str) -> list[Bid]:
    return [bid for bid in _active_bids(db, slot_id).order_by(Bid.id.asc()).all() if bid.combo_key == key]


def remaining_count(db: Session, slot_id: int, number: int) -> dict:
    validate_ld_number(number)
    max_count = int(get_app_settings(db).ld_bid_limit_per_number or 0)
    used = units_for_number(db, slot_id, number)
    return {"number": number, "used": used, "max_count": max_count, "remaining": max(max_count - used, 0)}


def _ensure_open(slot: Slot, now: datetime) -> None:
    if slot.status != SlotStatus.OPEN:
        raise BiddingClosed()
    if now > as_utc(slot.window_close_at):
        raise BiddingClosed("Bidding window closed for this slot")


def _commission_pct(db: Session, agent_id: int, snapshot: PricingSnapshot) -> Decimal:
    user = db.query(User).filter(User.id == agent_id).first()
    if user is not None and user.commission_pct is not None:
        return Decimal(str(user.commission_pct))
    return snapshot.default_commission_pct


def place_bid(db: Session, agent_id: int, payload: BidCreate, now: Optional[datetime] = None) -> Bid:
    """Validate, debit the agent, credit commission and store the bid in one transaction."""
    now = now or utcnow()
    slot = db.query(Slot).filter(Slot.id == payload.slot_id).first()
    if not slot:
        raise SlotNotFound()
    _ensure_open(slot, now)

    snapshot = build_snapshot(get_app_settings(db), slot.type, slot.settings_json)

    if slot.type == SlotType.LD:
        if payload.number is None or payload.count is None:
            raise ValidationFailed("LD bid requires number and count")
        number = validate_ld_number(payload.number)
        if payload.count <= 0:
            raise ValidationFailed("count must be positive")
        count = payload.count
        used = units_for_number(db, slot.id, number)
        if used + count > snapshot.max_units_per_number:
            remaining = max(0, snapshot.max_units_per_number - used)
            raise ValidationFailed(
                f"Max {snapshot.max_units_per_number} units allowed per number in this slot. Remaining: {remaining}"
            )
        jp_numbers: list[int] = []
        amount = to_money(snapshot.bid_prize * count)
        debit_meta = BidDebitMeta(slot_id=slot.id, slot_type=slot.type.value, number=number, count=count)
    else:
        jp_numbers = validate_jp_combo(payload.jp_numbers)
        number = None
        count = 1
        amount = to_money(snapshot.bid_prize)
        debit_meta = BidDebitMeta(slot_id=slot.id, slot_type=slot.type.value, jp_numbers=jp_numbers)

    if amount <= 0:
        raise ValidationFailed("Bid prize is not configured for this slot type")

    pct = _commission_pct(db, agent_id, snapshot)
    commission = to_money(amount * pct / 100)

    try:
        debit_for_bid(
            db,
            agent_id,
            amount,
            negative_limit=snapshot.negative_balance_limit,
            meta=debit_meta,
            commit=False,
        )
        if commission > 0:
            credit_commission(
                db,
                agent_id,
                commission,
                CommissionMeta(slot_id=slot.id, bid_amount=amount, commission_pct=pct),
                commit=False,
            )
        bid = Bid(
            slot_id=slot.id,
            user_id=agent_id,
            unique_bid_id=generate_unique_bid_id(
                slot.unique_slot_id,
                payload.customer_phone,
                number=number,
                count=count,
                jp_numbers=jp_numbers,
            ),
            customer_name=payload.customer_name,
            customer_phone=payload.customer_phone,
            number=number,
            count=count,
            jp_numbers=jp_numbers,
            amount=amount,
            status=BidStatus.ACTIVE,
        )
        db.add(bid)
        db.commit()
    except Exception:
        db.rollback()
        raise

    db.refresh(bid)
    logger.info("Bid placed bid_id=%s slot=%s agent_id=%s amount=%s", bid.id, slot.unique_slot_id, agent_id, amount)
    return bid
