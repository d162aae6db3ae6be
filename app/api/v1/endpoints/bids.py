from fastapi import APIRouter, Depends, Request
from sqlalchemy.orm import Session

from app.core.database import get_db
from app.dependencies import get_current_user, require_agent
from app.middlewares.rate_limit import limiter
from app.models import User
from app.schemas.bid import BidCreate, BidOut, RemainingCountOut
from app.services.bidding import place_bid, remaining_count

router = APIRouter()


@router.post("", response_model=BidOut, status_code=201)
@limiter.limit("60/minute")
def create_bid(request: Request, payload: BidCreate, user: User = Depends(require_agent), db: Session = Depends(get_db)):
    return place_bid(db, user.id, payload)


@router.get("/remaining", response_model=RemainingCountOut)
def get_remaining(slot_id: int, number: int, user: User = Depends(get_current_user), db: Session = Depends(get_db)):
    return remaining_count(db, slot_id, number)
