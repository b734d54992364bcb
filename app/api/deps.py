# app/api/deps.py
from __future__ import annotations

from typing import Generator, Optional

from fastapi import Depends, Header
from sqlalchemy.orm import Session, joinedload

from app.db.session import SessionLocal
from app.models.user import User
from app.services.errors import AuthError
from app.utils.jwt import decode_access_token


def get_db() -> Generator[Session, None, None]:
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


def _extract_bearer(authorization: Optional[str]) -> Optional[str]:
    if not authorization:
        return None
    parts = authorization.split()
    if len(parts) == 2 and parts[0].lower() == "bearer":
        return parts[1]
    return None


def current_user(
    authorization: Optional[str] = Header(None),
    db: Session = Depends(get_db),
) -> User:
    """
    Resolve the caller from the bearer token. Role and permissions come
    from the users row, never from token claims.
    """
    raw = _extract_bearer(authorization)
    if not raw:
        raise AuthError("Missing token")

    payload = decode_access_token(raw)
    if not payload or not payload.get("sub"):
        raise AuthError("Invalid token")

    user: Optional[User] = (db.query(User).options(
        joinedload(User.role), joinedload(User.lab_info)).filter(
            User.user_id == payload["sub"]).first())
    if not user:
        raise AuthError("User not found")
    if not user.is_active:
        raise AuthError("User inactive")
    return user
