from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session
from typing import Optional
from showtracker.api.deps import get_current_user_id
from showtracker.db.session import get_db
from showtracker.exceptions import ValidationError
from showtracker.schemas import OkResponse, SavePinRequest
from showtracker.services.credentials import CredentialStore

router = APIRouter()

@router.post("/saveTvdbPin", response_model=OkResponse)
def save_tvdb_pin(
    payload: Optional[SavePinRequest] = None,
    user_id: str = Depends(get_current_user_id),
    db: Session = Depends(get_db),
):
    pin = (payload.pin or "").strip() if payload else ""
    if not pin:
        raise ValidationError("pin_required", "PIN is required")

    CredentialStore(db).save_pin(user_id, pin)
    return OkResponse(ok=True)
