from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session
from app.core.security import require_self_or_admin
from app.crud import user as crud
from app.db.session import get_db
from app.schemas.user import UserOut
from app.schemas.user_profile import UserProfileUpsert
from app.schemas.user_settings import UserSettingsUpsert

router = APIRouter()


# Must be declared before /{user_id}
@router.get("/email/{email}", response_model=UserOut)
def get_user_by_email(email: str, db: Session = Depends(get_db)):
    return crud.get_user_by_email(db, email)


@router.get("/{user_id}", response_model=UserOut)
def get_user_by_id(user_id: int, db: Session = Depends(get_db)):
    return crud.get_user_by_id(db, user_id)


# Profile and settings: the user themself or an admin only
@router.get("/{user_id}/profile/overview", dependencies=[Depends(require_self_or_admin)])
def get_profile_overview(user_id: int, db: Session = Depends(get_db)):
    return crud.get_profile_overview(db, user_id)


@router.post("/{user_id}/profile", dependencies=[Depends(require_self_or_admin)])
def upsert_profile(user_id: int, profile_in: UserProfileUpsert, db: Session = Depends(get_db)):
    return {"profile": crud.upsert_profile(db, user_id, profile_in)}


@router.get("/{user_id}/settings", dependencies=[Depends(require_self_or_admin)])
def get_settings(user_id: int, db: Session = Depends(get_db)):
    return crud.get_settings(db, user_id)


@router.post("/{user_id}/settings", dependencies=[Depends(require_self_or_admin)])
def upsert_settings(user_id: int, settings_in: UserSettingsUpsert, db: Session = Depends(get_db)):
    return {"settings": crud.upsert_settings(db, user_id, settings_in)}
