from fastapi import APIRouter, Depends, HTTPException, Request
from sqlalchemy.orm import Session

from app.core.database import get_db
from app.dependencies import get_current_user, require_agent
from app.middlewares.rate_limit import limiter
from app.models import User
from app.schemas.wallet import (
    CustomerSettlementRequest,
    DepositRequest,
    LedgerOut,
    LedgerPage,
    WalletSummaryOut,
)
from app.services.wallet import (
    get_wallet_summary,
    list_wallet_history,
    request_bid_deposit,
    settle_winning_to_customer,
)

router = APIRouter()


@router.get("/me", response_model=WalletSummaryOut)
def get_wallet(user: User = Depends(get_current_user), db: Session = Depends(get_db)):
    return get_wallet_summary(db, user.id)


@router.get("/ledger", response_model=LedgerPage)
def get_ledger(
    page: int = 1,
    page_size: int = 50,
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    if page < 1:
        raise HTTPException(status_code=400, detail="page must be >= 1")
    if page_size < 1 or page_size > 200:
        raise HTTPException(status_code=400, detail="page_size must be between 1 and 200")
    items, total = list_wallet_history(db, user.id, page, page_size)
    return {"items": items, "total": total, "page": page, "page_size": page_size}


@router.post("/deposits", response_model=LedgerOut, status_code=201)
@limiter.limit("5/minute")
def request_deposit(
    request: Request,
    payload: DepositRequest,
    user: User = Depends(require_agent),
    db: Session = Depends(get_db),
):
    return request_bid_deposit(db, user.id, payload.amount, payload.trans_id, payload.proof_url, payload.note)


@router.post("/winnings/settle", response_model=LedgerOut)
@limiter.limit("10/minute")
def settle_to_customer(
    request: Request,
    payload: CustomerSettlementRequest,
    user: User = Depends(require_agent),
    db: Session = Depends(get_db),
):
    return settle_winning_to_customer(db, user.id, payload.amount, payload.trans_id, payload.proof_url, payload.note)
