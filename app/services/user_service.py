# FILE: app/services/user_service.py
from __future__ import annotations

import json
import logging
from typing import Any, Dict, List

from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session, joinedload

from app.core.security import hash_password, verify_and_update
from app.models.lab_info import LabInfo
from app.models.role import ROLE_DESCRIPTIONS, RoleName, UserRole
from app.models.user import User
from app.schemas.auth import SetupIn
from app.schemas.user import UserCreate, UserUpdate
from app.services.errors import (AuthError, ConflictError, InternalError,
                                 LabError, NotFoundError)
from app.utils.jwt import create_access_token
from app.utils.timezone import now_local

logger = logging.getLogger(__name__)

INVALID_CREDENTIALS = "Invalid credentials"


def _dump_permissions(perms) -> str:
    return json.dumps(sorted({str(p).strip() for p in perms or [] if str(p).strip()}))


def seed_roles(db: Session) -> List[UserRole]:
    """
    Insert missing roles; safe to run multiple times.
    """
    existing = {r.role_name for r in db.query(UserRole).all()}
    for role in RoleName:
        if role.value not in existing:
            db.add(
                UserRole(role_name=role.value,
                         description=ROLE_DESCRIPTIONS[role]))
    db.flush()
    return db.query(UserRole).order_by(UserRole.id.asc()).all()


def list_roles(db: Session) -> List[UserRole]:
    return db.query(UserRole).order_by(UserRole.id.asc()).all()


def _role_by_name(db: Session, name: RoleName) -> UserRole:
    role = db.query(UserRole).filter(UserRole.role_name == name.value).first()
    if not role:
        raise NotFoundError(f"Role not found: {name.value}")
    return role


def create_user(db: Session, data: UserCreate) -> User:
    if db.query(User.id).filter(User.user_id == data.user_id).first():
        raise ConflictError(f'User with login ID "{data.user_id}" already exists')
    if not db.get(UserRole, data.role_id):
        raise NotFoundError(f"Role not found: {data.role_id}")
    if not db.get(LabInfo, data.lab_info_id):
        raise NotFoundError("Lab info not found")

    user = User(
        user_id=data.user_id,
        password=hash_password(data.password),
        full_name=data.full_name,
        email=data.email,
        phone_number=data.phone_number,
        role_id=data.role_id,
        lab_info_id=data.lab_info_id,
        permissions=_dump_permissions(data.permissions),
        is_active=True,
    )
    db.add(user)
    try:
        db.commit()
    except IntegrityError:
        db.rollback()
        raise ConflictError(f'User with login ID "{data.user_id}" already exists')
    except SQLAlchemyError as e:
        db.rollback()
        logger.exception("[USERS] create failed user_id=%s", data.user_id)
        raise InternalError("Failed to create user") from e
    db.refresh(user)
    logger.info("[USERS] created %s role_id=%s", user.user_id, user.role_id)
    return user


def list_users(db: Session, lab_info_id: int) -> List[User]:
    return (db.query(User).options(joinedload(User.role)).filter(
        User.lab_info_id == lab_info_id).order_by(User.id.asc()).all())


def update_user(db: Session, user_pk: int, data: UserUpdate) -> User:
    user = db.get(User, user_pk)
    if not user:
        raise NotFoundError("User not found")

    fields = data.model_dump(exclude_unset=True)
    if fields.get("role_id") is not None and not db.get(UserRole, fields["role_id"]):
        raise NotFoundError(f"Role not found: {fields['role_id']}")

    for k in ("full_name", "email", "phone_number", "role_id"):
        if fields.get(k):
            setattr(user, k, fields[k])
    if fields.get("permissions") is not None:
        user.permissions = _dump_permissions(fields["permissions"])
    if fields.get("is_active") is not None:
        user.is_active = bool(fields["is_active"])
    if fields.get("password"):
        user.password = hash_password(fields["password"])

    try:
        db.commit()
    except SQLAlchemyError as e:
        db.rollback()
        logger.exception("[USERS] update failed id=%s", user_pk)
        raise InternalError("Failed to update user") from e
    db.refresh(user)
    return user


def delete_user(db: Session, user_pk: int) -> None:
    user = db.get(User, user_pk)
    if not user:
        raise NotFoundError("User not found")
    db.delete(user)
    try:
        db.commit()
    except SQLAlchemyError as e:
        db.rollback()
        logger.exception("[USERS] delete failed id=%s", user_pk)
        raise InternalError("Failed to delete user") from e
    logger.info("[USERS] deleted id=%s", user_pk)


def session_user(user: User) -> Dict[str, Any]:
    return {
        "id": user.id,
        "user_id": user.user_id,
        "full_name": user.full_name,
        "email": user.email,
        "role": user.role_name,
        "role_id": user.role_id,
        "lab_info": user.lab_info,
        "permissions": user.permission_list,
    }


def login(db: Session, *, user_id: str, password: str) -> Dict[str, Any]:
    """
    Verify credentials and issue an access token.
    Legacy SHA-256 hashes are upgraded to bcrypt on success.
    """
    user = (db.query(User).options(joinedload(User.role),
                                   joinedload(User.lab_info)).filter(
                                       User.user_id == user_id).first())
    if not user or not user.is_active:
        raise AuthError(INVALID_CREDENTIALS)

    ok, new_hash = verify_and_update(password, user.password)
    if not ok:
        logger.info("[AUTH] failed login for %s", user_id)
        raise AuthError(INVALID_CREDENTIALS)

    if new_hash:
        user.password = new_hash
        logger.info("[AUTH] upgraded password hash for %s", user_id)
    user.last_login = now_local()
    try:
        db.commit()
    except SQLAlchemyError as e:
        db.rollback()
        logger.exception("[AUTH] login bookkeeping failed for %s", user_id)
        raise InternalError("Login failed") from e
    db.refresh(user)

    token = create_access_token(subject=user.user_id, role=user.role_name)
    return {
        "success": True,
        "access_token": token,
        "token_type": "bearer",
        "user": session_user(user),
    }


def setup_lab(db: Session, payload: SetupIn) -> Dict[str, Any]:
    """
    First run: create the lab and its master account.
    Refused once any user exists.
    """
    if db.query(User.id).first():
        raise ConflictError("Setup already completed")

    try:
        seed_roles(db)
        lab = LabInfo(**payload.lab.model_dump())
        db.add(lab)
        db.flush()

        master = User(
            user_id=payload.master.user_id,
            password=hash_password(payload.master.password),
            full_name=payload.master.full_name,
            email=payload.master.email,
            phone_number=payload.master.phone_number,
            role_id=_role_by_name(db, RoleName.MASTER).id,
            lab_info_id=lab.id,
            permissions="[]",
            is_active=True,
        )
        db.add(master)
        db.commit()
    except LabError:
        db.rollback()
        raise
    except SQLAlchemyError as e:
        db.rollback()
        logger.exception("[SETUP] failed")
        raise InternalError("Setup failed") from e

    db.refresh(master)
    logger.info("[SETUP] lab %s created with master %s", lab.id,
                master.user_id)
    return {"lab_info": lab, "user": master}
