"""Profile API router: avatar upload."""

from fastapi import APIRouter, Depends, File, UploadFile
from sqlalchemy.orm import Session

from kanvaro.core.security import CurrentUser, get_current_user
from kanvaro.db.session import get_db
from kanvaro.schemas.schemas import UserOut
from kanvaro.services.auth_service import auth_service
from kanvaro.services.file_service import file_service

router = APIRouter(prefix="/profile", tags=["profile"])


@router.post("/avatar", response_model=UserOut)
async def upload_avatar(
    file: UploadFile = File(...),
    db: Session = Depends(get_db),
    user: CurrentUser = Depends(get_current_user),
):
    """Store a new avatar image and point the profile at it."""
    profile = auth_service.get_user(db, user.id)
    profile.avatar_url = await file_service.upload_avatar(file, user.id)
    db.commit()
    db.refresh(profile)
    return profile
