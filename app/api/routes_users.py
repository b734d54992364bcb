# FILE: app/api/routes_users.py
from __future__ import annotations

from typing import List, Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from app.api.deps import current_user, get_db
from app.core.rbac import ACCESS_MASTER_ONLY, require_access
from app.models.user import User
from app.schemas.common import MessageOut
from app.schemas.user import RoleOut, UserCreate, UserOut, UserUpdate
from app.services import user_service

router = APIRouter(prefix="/users", tags=["Users"])


@router.get("/roles", response_model=List[RoleOut])
def list_roles(
        db: Session = Depends(get_db),
        me: User = Depends(current_user),
):
    require_access(me, ACCESS_MASTER_ONLY)
    return user_service.list_roles(db)


@router.get("", response_model=List[UserOut])
def list_users(
        lab_info_id: Optional[int] = Query(None, alias="labInfoId"),
        db: Session = Depends(get_db),
        me: User = Depends(current_user),
):
    require_access(me, ACCESS_MASTER_ONLY)
    return user_service.list_users(db, lab_info_id or me.lab_info_id)


@router.post("", response_model=UserOut, status_code=201)
def create_user(
        payload: UserCreate,
        db: Session = Depends(get_db),
        me: User = Depends(current_user),
):
    require_access(me, ACCESS_MASTER_ONLY)
    return user_service.create_user(db, payload)


@router.put("/{user_pk}", response_model=UserOut)
def update_user(
        user_pk: int,
        payload: UserUpdate,
        db: Session = Depends(get_db),
        me: User = Depends(current_user),
):
    require_access(me, ACCESS_MASTER_ONLY)
    return user_service.update_user(db, user_pk, payload)


@router.delete("/{user_pk}", response_model=MessageOut)
def delete_user(
        user_pk: int,
        db: Session = Depends(get_db),
        me: User = Depends(current_user),
):
    require_access(me, ACCESS_MASTER_ONLY)
    user_service.delete_user(db, user_pk)
    return {"success": True, "message": "User deleted successfully"}
