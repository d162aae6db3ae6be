from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from app.core.database import get_db
from app.dependencies import require_admin
from app.models import User
from app.schemas.draw import AnnounceRequest, AnnounceResponse, DrawResultOut
from app.services.draws import announce_result, get_draw_result

router = APIRouter()


@router.post("/{slot_id}/announce", response_model=AnnounceResponse)
def announce(slot_id: int, payload: AnnounceRequest, admin: User = Depends(require_admin), db: Session = Depends(get_db)):
    outcome = announce_result(
        db,
        admin.id,
        slot_id,
        winning_number=payload.winning_number,
        winning_combo=payload.winning_combo,
        note=payload.note,
    )
    return {
        "message": f"{outcome.draw.meta.get('mode', '')} result announced".strip(),
        "draw": outcome.draw,
        "credited_winners": len(outcome.credits),
    }


@router.get("/{slot_id}", response_model=DrawResultOut)
def draw_result(slot_id: int, admin: User = Depends(require_admin), db: Session = Depends(get_db)):
    return get_draw_result(db, slot_id)
