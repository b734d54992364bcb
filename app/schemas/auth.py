# FILE: app/schemas/auth.py
from __future__ import annotations

from typing import List, Optional

from pydantic import Field

from app.schemas.common import CamelModel
from app.schemas.lab import LabInfoCreate, LabInfoOut


class LoginIn(CamelModel):
    user_id: str = Field(min_length=1)
    password: str = Field(min_length=1)


class SessionUserOut(CamelModel):
    id: int
    user_id: str
    full_name: str
    email: Optional[str] = None
    role: str
    role_id: int
    lab_info: Optional[LabInfoOut] = None
    permissions: List[str] = Field(default_factory=list)


class TokenOut(CamelModel):
    success: bool = True
    access_token: str
    token_type: str = "bearer"
    user: SessionUserOut


class SetupMasterIn(CamelModel):
    user_id: str = Field(min_length=1)
    password: str = Field(min_length=6)
    full_name: str = Field(min_length=1)
    email: Optional[str] = None
    phone_number: Optional[str] = None


class SetupIn(CamelModel):
    """First-run bootstrap: the lab plus its master account."""
    lab: LabInfoCreate
    master: SetupMasterIn
