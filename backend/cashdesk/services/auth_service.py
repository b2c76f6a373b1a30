# Overview: Service-layer operations for users; encapsulates business logic and database work.

"""
User Service

WHY: Every sale, session and stock adjustment is attributed to a user, and
the role (admin/cashier) drives the authorization checks in the other
services. Token/session storage lives outside this engine; the upstream auth
store supplies the user id with each request.

SECURITY NOTES:
- Passwords hashed with bcrypt (cost factor from BCRYPT_ROUNDS, default 12)
- Users are deactivated, never deleted
"""

from __future__ import annotations

import logging

import bcrypt
from flask import current_app
from sqlalchemy.exc import IntegrityError

from ..errors import ConflictError, NotFoundError, PosError, ValidationError
from ..extensions import db
from ..models import User, UserRole
from ..validation import clean_required_text, parse_enum

logger = logging.getLogger(__name__)

MIN_PASSWORD_LENGTH = 4

USER_MUTABLE_FIELDS = {"username", "password", "full_name", "role", "active"}


def validate_password_strength(password: str) -> None:
    if not isinstance(password, str) or len(password) < MIN_PASSWORD_LENGTH:
        raise ValidationError(f"Password must be at least {MIN_PASSWORD_LENGTH} characters long")


def hash_password(password: str) -> str:
    """
    Hash password using bcrypt.

    Password is validated for length before hashing.
    """
    validate_password_strength(password)
    rounds = current_app.config.get("BCRYPT_ROUNDS", 12)
    salt = bcrypt.gensalt(rounds=rounds)
    hashed = bcrypt.hashpw(password.encode('utf-8'), salt)
    return hashed.decode('utf-8')  # Store as string in database


def verify_password(password: str, password_hash: str) -> bool:
    """Timing-safe bcrypt comparison."""
    try:
        return bcrypt.checkpw(password.encode('utf-8'), password_hash.encode('utf-8'))
    except ValueError:
        # Malformed hash in storage
        return False


def get_user(user_id: int) -> User:
    user = db.session.get(User, user_id)
    if user is None:
        raise NotFoundError("User not found", details={"user_id": user_id})
    return user


def list_users(*, include_inactive: bool = True) -> list[User]:
    query = db.session.query(User)
    if not include_inactive:
        query = query.filter(User.active.is_(True))
    return query.order_by(User.username.asc()).all()


def create_user(username: str, password: str, full_name: str, role=UserRole.CASHIER) -> User:
    username = clean_required_text(username, "username", max_length=64)
    full_name = clean_required_text(full_name, "full_name", max_length=128)
    role = parse_enum(UserRole, role, "role")

    if db.session.query(User).filter_by(username=username).first():
        raise ConflictError(f"Username '{username}' already exists")

    user = User(
        username=username,
        password_hash=hash_password(password),
        full_name=full_name,
        role=role,
        active=True,
    )
    db.session.add(user)
    try:
        db.session.commit()
    except IntegrityError:
        db.session.rollback()
        raise ConflictError(f"Username '{username}' already exists")

    logger.info("User %s created with role %s", user.username, user.role.value)
    return user


def _apply_user_patch(user: User, patch: dict) -> None:
    for key, value in patch.items():
        if key not in USER_MUTABLE_FIELDS:
            continue
        if key == "username":
            username = clean_required_text(value, "username", max_length=64)
            clash = db.session.query(User).filter(User.username == username, User.id != user.id).first()
            if clash:
                raise ConflictError(f"Username '{username}' already exists")
            user.username = username
        elif key == "password":
            user.password_hash = hash_password(value)
        elif key == "full_name":
            user.full_name = clean_required_text(value, "full_name", max_length=128)
        elif key == "role":
            user.role = parse_enum(UserRole, value, "role")
        elif key == "active":
            if not isinstance(value, bool):
                raise ValidationError("active must be a boolean")
            user.active = value


def update_user(user_id: int, patch: dict) -> User:
    """Apply a partial update; unknown keys are ignored."""
    user = get_user(user_id)

    try:
        _apply_user_patch(user, patch)
        db.session.commit()
    except IntegrityError:
        db.session.rollback()
        raise ConflictError("Username already exists")
    except PosError:
        db.session.rollback()
        raise
    return user


def deactivate_user(user_id: int) -> User:
    """Soft delete. The user keeps their history but can no longer act."""
    return update_user(user_id, {"active": False})


def verify_credentials(username: str, password: str) -> User | None:
    """Return the active user matching the credentials, or None."""
    if not isinstance(username, str) or not isinstance(password, str) or not username or not password:
        return None
    user = db.session.query(User).filter_by(username=username.strip()).first()
    if user is None or not user.active:
        return None
    if not verify_password(password, user.password_hash):
        return None
    return user