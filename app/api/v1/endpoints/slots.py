from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from app.core.database import get_db
from app.dependencies import get_current_user, require_admin
from app.models import User
from app.schemas.slot import SlotCreate, SlotOut, SlotUpdate
from app.services.slots import create_slot, list_active_slots, update_slot

router = APIRouter()


@router.get("/active", response_model=list[SlotOut])
def active_slots(user: User = Depends(get_current_user), db: Session = Depends(get_db)):
    return list_active_slots(db)


@router.post("", response_model=SlotOut, status_code=201)
def new_slot(payload: SlotCreate, admin: User = Depends(require_admin), db: Session = Depends(get_db)):
    return create_slot(db, payload.type, payload.slot_time)


@router.patch("/{slot_id}", response_model=SlotOut)
def edit_slot(slot_id: int, payload: SlotUpdate, admin: User = Depends(require_admin), db: Session = Depends(get_db)):
    return update_slot(
        db,
        slot_id,
        slot_type=payload.type,
        slot_time=payload.slot_time,
        status=payload.status,
        settings_json=payload.settings_json,
    )
