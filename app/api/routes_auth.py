# FILE: app/api/routes_auth.py
from __future__ import annotations

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from app.api.deps import current_user, get_db
from app.models.user import User
from app.schemas.auth import LoginIn, SessionUserOut, SetupIn, TokenOut
from app.schemas.user import UserOut
from app.schemas.lab import LabInfoOut
from app.schemas.common import CamelModel
from app.services import user_service

router = APIRouter(prefix="/auth", tags=["Auth"])


class SetupOut(CamelModel):
    success: bool = True
    lab_info: LabInfoOut
    user: UserOut


@router.post("/login", response_model=TokenOut)
def login(payload: LoginIn, db: Session = Depends(get_db)):
    return user_service.login(db,
                              user_id=payload.user_id.strip(),
                              password=payload.password)


@router.post("/setup", response_model=SetupOut, status_code=201)
def setup(payload: SetupIn, db: Session = Depends(get_db)):
    out = user_service.setup_lab(db, payload)
    return {"success": True, **out}


@router.get("/me", response_model=SessionUserOut)
def me(user: User = Depends(current_user)):
    return user_service.session_user(user)
