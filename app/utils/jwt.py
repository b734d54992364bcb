# app/utils/jwt.py
from datetime import datetime, timedelta
from typing import Optional

from jose import jwt, JWTError

from app.core.config import settings


def create_access_token(
    *,
    subject: str,
    role: str,
    expires_delta: Optional[timedelta] = None,
) -> str:
    """
    role is informational for clients only; the server re-reads
    the user's role from the database on every request.
    """
    now = datetime.utcnow()
    delta = expires_delta or timedelta(
        minutes=settings.ACCESS_TOKEN_EXPIRE_MINUTES)
    payload = {
        "sub": subject,  # users.user_id (login id)
        "role": role,
        "iat": now,
        "exp": now + delta,
    }
    return jwt.encode(payload, settings.JWT_SECRET, algorithm=settings.JWT_ALG)


def decode_access_token(raw_token: str) -> Optional[dict]:
    try:
        return jwt.decode(raw_token,
                          settings.JWT_SECRET,
                          algorithms=[settings.JWT_ALG])
    except JWTError:
        return None
