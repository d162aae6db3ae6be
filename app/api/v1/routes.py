from fastapi import APIRouter
from app.api.v1.endpoints import admin, bids, draws, settings, slots, wallet

router = APIRouter()

router.include_router(wallet.router, prefix="/wallet", tags=["wallet"])
router.include_router(bids.router, prefix="/bids", tags=["bids"])
router.include_router(slots.router, prefix="/slots", tags=["slots"])
router.include_router(draws.router, prefix="/draws", tags=["draws"])
router.include_router(settings.router, prefix="/settings", tags=["settings"])
router.include_router(admin.router, prefix="/admin", tags=["admin"])
