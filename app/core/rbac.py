# app/core/rbac.py
from __future__ import annotations

from enum import Enum
from typing import Any, Iterable, Optional, Set

from app.models.role import RoleName
from app.services.errors import ForbiddenError


def _code(x: Any) -> str:
    """
    Normalize a role / permission code:
      - Enum -> enum.value
      - str  -> str
    """
    if x is None:
        return ""
    if isinstance(x, Enum):
        return str(x.value)
    return str(x)


# Operation groups -> (roles allowed, permission tag that also grants it)
ACCESS_PATIENTS = ({RoleName.CASHIER, RoleName.LAB_TECHNICIAN}, "patients")
ACCESS_BILLING = ({RoleName.CASHIER}, "billing")
ACCESS_PAYMENTS = ({RoleName.CASHIER}, "payments")
ACCESS_RESULTS = ({RoleName.LAB_TECHNICIAN}, "results")
ACCESS_REPORTS = ({RoleName.CASHIER, RoleName.LAB_TECHNICIAN}, "reports")
ACCESS_EXPORTS = (set(), "exports")
ACCESS_MASTER_ONLY = (set(), None)


def is_master(user: Any) -> bool:
    return _code(getattr(user, "role_name", "")) == RoleName.MASTER.value


def iter_user_perm_codes(user: Any) -> Set[str]:
    """
    Permission tags stored on the user row (JSON array).
    """
    out: Set[str] = set()
    for p in getattr(user, "permission_list", None) or []:
        c = _code(p).strip()
        if c:
            out.add(c)
    return out


def has_access(user: Any, roles: Iterable[Any], perm: Optional[str] = None) -> bool:
    if not user:
        return False
    if is_master(user):
        return True
    if _code(getattr(user, "role_name", "")) in {_code(r) for r in roles}:
        return True
    return bool(perm) and perm in iter_user_perm_codes(user)


def require_access(user: Any, access: tuple, *, message: Optional[str] = None) -> None:
    """
    Raise 403 unless the user's role or permission tags allow the operation group.
    """
    roles, perm = access
    if has_access(user, roles, perm):
        return
    raise ForbiddenError(
        message or "You do not have permission to perform this action.")
