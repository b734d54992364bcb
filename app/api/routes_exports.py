# FILE: app/api/routes_exports.py
from __future__ import annotations

from typing import Optional

from fastapi import APIRouter, Body, Depends
from sqlalchemy.orm import Session

from app.api.deps import current_user, get_db
from app.core.rbac import ACCESS_EXPORTS, require_access
from app.models.user import User
from app.schemas.common import MessageOut
from app.schemas.exports import (
    CleanupExportsIn,
    CleanupExportsOut,
    ExportDownloadOut,
    ExportListOut,
    ExportOut,
)
from app.services import excel_export

router = APIRouter(prefix="/exports", tags=["Exports"])


@router.post("/patients", response_model=ExportOut)
def export_patients(
        db: Session = Depends(get_db),
        me: User = Depends(current_user),
):
    require_access(me, ACCESS_EXPORTS)
    return excel_export.export_patients(db)


@router.post("/tests", response_model=ExportOut)
def export_tests(
        db: Session = Depends(get_db),
        me: User = Depends(current_user),
):
    require_access(me, ACCESS_EXPORTS)
    return excel_export.export_tests(db)


@router.post("/lab-report", response_model=ExportOut)
def export_lab_report(
        db: Session = Depends(get_db),
        me: User = Depends(current_user),
):
    require_access(me, ACCESS_EXPORTS)
    return excel_export.export_lab_snapshot(db)


@router.get("", response_model=ExportListOut)
def list_exports(me: User = Depends(current_user)):
    require_access(me, ACCESS_EXPORTS)
    return {"success": True, "files": excel_export.list_exports()}


@router.get("/{filename}", response_model=ExportDownloadOut)
def download_export(filename: str, me: User = Depends(current_user)):
    require_access(me, ACCESS_EXPORTS)
    return excel_export.download_export(filename)


@router.delete("/{filename}", response_model=MessageOut)
def delete_export(filename: str, me: User = Depends(current_user)):
    require_access(me, ACCESS_EXPORTS)
    excel_export.delete_export(filename)
    return {"success": True, "message": "File deleted successfully"}


@router.post("/cleanup", response_model=CleanupExportsOut)
def cleanup_exports(
        payload: Optional[CleanupExportsIn] = Body(None),
        me: User = Depends(current_user),
):
    require_access(me, ACCESS_EXPORTS)
    deleted = excel_export.cleanup_exports(payload.days_old if payload else None)
    return {
        "success": True,
        "deleted_count": deleted,
        "message": f"Deleted {deleted} old export file(s)",
    }
