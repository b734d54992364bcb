# FILE: app/api/routes_lab_info.py
from __future__ import annotations

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from app.api.deps import current_user, get_db
from app.core.rbac import ACCESS_MASTER_ONLY, require_access
from app.crud import crud_lab_masters
from app.models.user import User
from app.schemas.lab import LabInfoCreate, LabInfoOut, LabInfoUpdate

router = APIRouter(prefix="/lab-info", tags=["Lab Info"])


@router.get("", response_model=LabInfoOut)
def get_main_lab_info(
        db: Session = Depends(get_db),
        me: User = Depends(current_user),
):
    return crud_lab_masters.get_main_lab_info(db)


@router.get("/{lab_info_id}", response_model=LabInfoOut)
def get_lab_info(
        lab_info_id: int,
        db: Session = Depends(get_db),
        me: User = Depends(current_user),
):
    return crud_lab_masters.get_lab_info(db, lab_info_id)


@router.post("", response_model=LabInfoOut, status_code=201)
def create_lab_info(
        payload: LabInfoCreate,
        db: Session = Depends(get_db),
        me: User = Depends(current_user),
):
    require_access(me, ACCESS_MASTER_ONLY)
    return crud_lab_masters.create_lab_info(db, payload)


@router.put("/{lab_info_id}", response_model=LabInfoOut)
def update_lab_info(
        lab_info_id: int,
        payload: LabInfoUpdate,
        db: Session = Depends(get_db),
        me: User = Depends(current_user),
):
    require_access(me, ACCESS_MASTER_ONLY)
    return crud_lab_masters.update_lab_info(db, lab_info_id, payload)
