from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from app.core.database import get_db
from app.dependencies import require_admin
from app.models import User
from app.schemas.wallet import AdminPaymentRequest, DepositDecision, LedgerOut, PendingWinningOut
from app.services.wallet import (
    admin_process_withdraw,
    decide_deposit,
    list_pending_deposits,
    list_pending_winning_settlements,
    settle_commission_by_admin,
    settle_winning_to_agent,
)

router = APIRouter()


@router.get("/deposits/pending", response_model=list[LedgerOut])
def pending_deposits(admin: User = Depends(require_admin), db: Session = Depends(get_db)):
    return list_pending_deposits(db)


@router.post("/deposits/{tx_id}/decision", response_model=LedgerOut)
def deposit_decision(
    tx_id: int,
    payload: DepositDecision,
    admin: User = Depends(require_admin),
    db: Session = Depends(get_db),
):
    return decide_deposit(db, admin.id, tx_id, payload.approve, payload.admin_note)


@router.get("/winnings/pending", response_model=list[PendingWinningOut])
def pending_winnings(admin: User = Depends(require_admin), db: Session = Depends(get_db)):
    return list_pending_winning_settlements(db)


@router.post("/winnings/settle", response_model=LedgerOut)
def settle_to_agent(payload: AdminPaymentRequest, admin: User = Depends(require_admin), db: Session = Depends(get_db)):
    return settle_winning_to_agent(db, admin.id, payload.user_id, payload.amount, payload.trans_id, payload.note)


@router.post("/commissions/settle", response_model=LedgerOut)
def settle_commission(payload: AdminPaymentRequest, admin: User = Depends(require_admin), db: Session = Depends(get_db)):
    return settle_commission_by_admin(db, admin.id, payload.user_id, payload.amount, payload.trans_id, payload.note)


@router.post("/withdrawals", response_model=LedgerOut)
def process_withdraw(payload: AdminPaymentRequest, admin: User = Depends(require_admin), db: Session = Depends(get_db)):
    return admin_process_withdraw(db, admin.id, payload.user_id, payload.amount, payload.trans_id, payload.note)
