# app/core/security.py
from __future__ import annotations

from typing import Optional, Tuple

from passlib.context import CryptContext

from app.core.config import settings

# hex_sha256 only verifies accounts created before the bcrypt switch;
# a successful login re-hashes them with bcrypt.
pwd_context = CryptContext(
    schemes=["bcrypt", "hex_sha256"],
    deprecated=["hex_sha256"],
    bcrypt__rounds=settings.BCRYPT_ROUNDS,
)


def hash_password(raw: str) -> str:
    return pwd_context.hash(raw)


def verify_and_update(raw: str, hashed: Optional[str]) -> Tuple[bool, Optional[str]]:
    """
    Returns (ok, new_hash). new_hash is set when the stored hash
    uses a deprecated scheme and should be replaced.
    """
    if not raw or not hashed:
        return False, None
    try:
        return pwd_context.verify_and_update(raw, hashed)
    except (ValueError, TypeError):
        return False, None
