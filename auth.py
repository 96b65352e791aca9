from __future__ import annotations

import logging
import uuid
from dataclasses import dataclass
from typing import Any, Optional

import bcrypt
from sqlalchemy import select
from sqlalchemy.orm import Session

from errors import Unauthorized
from models import User

logger = logging.getLogger(__name__)

ADMINISTRATOR = "administrator"
TEACHER = "teacher"
EXAMINER = "examiner"
STUDENT = "student"
ROLES = (STUDENT, TEACHER, EXAMINER, ADMINISTRATOR)

ASSESSMENT_EDITORS = (ADMINISTRATOR, TEACHER, EXAMINER)
ASSESSMENT_REVIEWERS = (ADMINISTRATOR, EXAMINER)


@dataclass(frozen=True)
class Actor:
    id: uuid.UUID
    role: str

    @classmethod
    def from_user(cls, user: Any) -> Actor:
        if isinstance(user, dict):
            return cls(id=uuid.UUID(str(user["id"])), role=str(user["role"]))
        return cls(id=user.id, role=user.role)


def hash_password(password: str) -> str:
    return bcrypt.hashpw(password.encode("utf-8"), bcrypt.gensalt()).decode("utf-8")


def verify_password(password: str, password_hash: str) -> bool:
    return bcrypt.checkpw(password.encode("utf-8"), password_hash.encode("utf-8"))


def authenticate_user(db: Session, email: str, password: str) -> Optional[User]:
    user = db.scalar(select(User).where(User.email == email))
    if not user or not user.password_hash:
        return None
    if not verify_password(password, user.password_hash):
        return None
    return user


def get_user_by_id(db: Session, user_id: str | uuid.UUID) -> Optional[User]:
    return db.get(User, uuid.UUID(str(user_id)))


def require_role(actor: Actor | None, *roles: str) -> Actor:
    if actor is None:
        raise Unauthorized("Authentication required")
    if roles and actor.role not in roles:
        logger.warning("Rejected action for role %s (requires %s)", actor.role, ", ".join(roles))
        raise Unauthorized(f"Role '{actor.role}' is not allowed to perform this action")
    return actor
