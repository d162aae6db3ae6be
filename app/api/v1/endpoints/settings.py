from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from app.core.database import get_db
from app.dependencies import require_admin
from app.models import User
from app.schemas.settings import AppSettingsOut, AppSettingsUpdate
from app.services.settings import get_app_settings, update_app_settings

router = APIRouter()


@router.get("", response_model=AppSettingsOut)
def read_settings(admin: User = Depends(require_admin), db: Session = Depends(get_db)):
    return get_app_settings(db)


@router.put("", response_model=AppSettingsOut)
def write_settings(payload: AppSettingsUpdate, admin: User = Depends(require_admin), db: Session = Depends(get_db)):
    return update_app_settings(db, payload.model_dump(exclude_none=True))
