# FILE: app/schemas/exports.py
from __future__ import annotations

from datetime import datetime
from typing import Dict, List, Optional

from pydantic import Field

from app.schemas.common import CamelModel


class ExportOut(CamelModel):
    success: bool = True
    message: str
    filename: str
    filepath: str
    stats: Optional[Dict[str, int]] = None


class ExportFileOut(CamelModel):
    filename: str
    size: int
    modified_at: datetime


class ExportListOut(CamelModel):
    success: bool = True
    files: List[ExportFileOut] = Field(default_factory=list)


class ExportDownloadOut(CamelModel):
    success: bool = True
    data: str  # base64
    filename: str
    mime_type: str


class CleanupExportsIn(CamelModel):
    days_old: Optional[int] = Field(default=None, ge=0)


class CleanupExportsOut(CamelModel):
    success: bool = True
    deleted_count: int
    message: str
