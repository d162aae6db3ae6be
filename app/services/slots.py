import logging
from datetime import datetime, timedelta
from typing import Optional

from sqlalchemy.orm import Session

from app.core.config import get_settings
from app.core.errors import SlotLocked, SlotNotFound, ValidationFailed
from app.models import Bid, DrawResult, Slot, SlotStatus, SlotType
from app.services.settings import get_app_settings, slot_settings_snapshot
from app.utils.dates import as_utc, utcnow

logger = logging.getLogger(__name__)

# Status moves only forward; COMPLETED is set by the announcement, never by hand.
_ALLOWED_MANUAL_TRANSITIONS = {
    SlotStatus.OPEN: {SlotStatus.OPEN, SlotStatus.CLOSED},
    SlotStatus.CLOSED: {SlotStatus.CLOSED},
    SlotStatus.COMPLETED: {SlotStatus.COMPLETED},
}


def generate_slot_code(slot_type: SlotType, index: int) -> str:
    return f"{slot_type.value}{index:04d}"


def _window_close_at(slot_time: datetime) -> datetime:
    return as_utc(slot_time) - timedelta(minutes=get_settings().slot_window_lead_minutes)


def _next_slot_index(db: Session, slot_type: SlotType) -> int:
    last = db.query(Slot).filter(Slot.type == slot_type).order_by(Slot.id.desc()).first()
    if not last or not last.unique_slot_id.startswith(slot_type.value):
        return 1
    return int(last.unique_slot_id[len(slot_type.value):]) + 1


def get_slot(db: Session, slot_id: int, lock: bool = False) -> Slot:
    query = db.query(Slot).filter(Slot.id == slot_id)
    if lock:
        query = query.with_for_update()
    slot = query.first()
    if not slot:
        raise SlotNotFound()
    return slot


def create_slot(db: Session, slot_type: SlotType, slot_time: datetime) -> Slot:
    app_settings = get_app_settings(db)
    slot = Slot(
        type=slot_type,
        unique_slot_id=generate_slot_code(slot_type, _next_slot_index(db, slot_type)),
        slot_time=as_utc(slot_time),
        window_close_at=_window_close_at(slot_time),
        status=SlotStatus.OPEN,
        settings_json=slot_settings_snapshot(app_settings, slot_type),
    )
    db.add(slot)
    db.commit()
    db.refresh(slot)
    logger.info("Slot created %s at %s", slot.unique_slot_id, slot.slot_time)
    return slot


def update_slot(
    db: Session,
    slot_id: int,
    *,
    slot_type: Optional[SlotType] = None,
    slot_time: Optional[datetime] = None,
    status: Optional[SlotStatus] = None,
    settings_json: Optional[dict] = None,
) -> Slot:
    slot = get_slot(db, slot_id, lock=True)
    if slot_type is not None or slot_time is not None or settings_json is not None:
        has_bids = db.query(Bid.id).filter(Bid.slot_id == slot.id).first() is not None
        if has_bids:
            raise SlotLocked()

    if status is not None:
        if status not in _ALLOWED_MANUAL_TRANSITIONS[slot.status]:
            raise ValidationFailed(f"Cannot move slot from {slot.status.value} to {status.value}")
        slot.status = status
    if slot_type is not None:
        slot.type = slot_type
    if slot_time is not None:
        slot.slot_time = as_utc(slot_time)
        slot.window_close_at = _window_close_at(slot_time)
    if settings_json is not None:
        slot.settings_json = {**(slot.settings_json or {}), **settings_json}

    db.commit()
    db.refresh(slot)
    return slot


def close_expired_slots(db: Session, now: Optional[datetime] = None) -> list[Slot]:
    now = now or utcnow()
    open_slots = db.query(Slot).filter(Slot.status == SlotStatus.OPEN).with_for_update().all()
    closed = [slot for slot in open_slots if now > as_utc(slot.window_close_at)]
    for slot in closed:
        slot.status = SlotStatus.CLOSED
    if closed:
        db.commit()
        logger.info("Closed %s slot(s): %s", len(closed), ", ".join(s.unique_slot_id for s in closed))
    return closed


def slots_due_for_auto_announce(db: Session, now: Optional[datetime] = None) -> list[Slot]:
    now = now or utcnow()
    rows = (
        db.query(Slot)
        .outerjoin(DrawResult, DrawResult.slot_id == Slot.id)
        .filter(Slot.status == SlotStatus.CLOSED, DrawResult.id.is_(None))
        .order_by(Slot.slot_time.asc())
        .all()
    )
    return [slot for slot in rows if as_utc(slot.slot_time) <= now]


def list_active_slots(db: Session, now: Optional[datetime] = None) -> list[Slot]:
    now = now or utcnow()
    rows = db.query(Slot).filter(Slot.status == SlotStatus.OPEN).order_by(Slot.slot_time.asc()).all()
    return [slot for slot in rows if as_utc(slot.slot_time) >= now]
