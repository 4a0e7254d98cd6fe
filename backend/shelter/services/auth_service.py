# Overview: Service-layer operations for auth; password hashing, users and roles.

"""
Authentication Service

WHY: Every adoption decision and payment must be attributable to a user.
Uses bcrypt for password hashing and validates password strength.

SECURITY NOTES:
- Passwords hashed with bcrypt (cost factor from BCRYPT_ROUNDS, default 12)
- Minimum 8 characters, upper, lower, digit and special character
- Session tokens managed separately (see session_service.py)
"""

import re

import bcrypt
from flask import current_app

from ..extensions import db
from ..models import Role, RoleName, User
from shelter.time_utils import utcnow


DEFAULT_ROLE_DESCRIPTIONS = {
    RoleName.ADMIN: "Full access, including invoice cancellation and user management",
    RoleName.STAFF: "Processes adoptions and handles billing",
    RoleName.VETERINARIAN: "Medical care; no adoption or billing decisions",
    RoleName.ADOPTER: "Files and cancels their own adoption requests",
}


class PasswordValidationError(Exception):
    """Raised when password doesn't meet strength requirements."""
    pass


class UserCreationError(Exception):
    """Raised when a user cannot be created (duplicate, unknown role)."""
    pass


def validate_password_strength(password: str) -> None:
    if len(password) < 8:
        raise PasswordValidationError("Password must be at least 8 characters long")

    if not re.search(r'[A-Z]', password):
        raise PasswordValidationError("Password must contain at least one uppercase letter")

    if not re.search(r'[a-z]', password):
        raise PasswordValidationError("Password must contain at least one lowercase letter")

    if not re.search(r'\d', password):
        raise PasswordValidationError("Password must contain at least one digit")

    if not re.search(r"[!@#$%^&*(),.'\":{}|<>]", password):
        raise PasswordValidationError("Password must contain at least one special character")


def hash_password(password: str) -> str:
    """Validate strength, then hash with bcrypt at the configured cost."""
    validate_password_strength(password)
    salt = bcrypt.gensalt(rounds=current_app.config.get("BCRYPT_ROUNDS", 12))
    hashed = bcrypt.hashpw(password.encode('utf-8'), salt)
    return hashed.decode('utf-8')  # Store as string in database


def verify_password(password: str, password_hash: str) -> bool:
    try:
        return bcrypt.checkpw(password.encode('utf-8'), password_hash.encode('utf-8'))
    except ValueError:
        # Malformed hash in the database
        return False


def create_default_roles() -> list[Role]:
    """Idempotently create Admin, Staff, Veterinarian and Adopter."""
    roles = []
    for name in RoleName.ALL:
        role = db.session.query(Role).filter_by(name=name).first()
        if not role:
            role = Role(name=name, description=DEFAULT_ROLE_DESCRIPTIONS.get(name))
            db.session.add(role)
        roles.append(role)
    db.session.commit()
    return roles


def create_user(
    username: str,
    email: str,
    password: str,
    role_name: str,
    first_name: str | None = None,
    last_name: str | None = None,
) -> User:
    """
    Create a user with a bcrypt-hashed password.

    Raises:
        PasswordValidationError: weak password
        UserCreationError: unknown role, duplicate username or email
    """
    role = db.session.query(Role).filter_by(name=role_name).first()
    if not role:
        raise UserCreationError(f"Role '{role_name}' not found")

    if db.session.query(User).filter_by(username=username).first():
        raise UserCreationError(f"Username '{username}' already exists")
    if db.session.query(User).filter_by(email=email).first():
        raise UserCreationError(f"Email '{email}' already exists")

    user = User(
        username=username,
        email=email,
        first_name=first_name,
        last_name=last_name,
        password_hash=hash_password(password),
        role_id=role.id,
        is_active=True,
    )
    db.session.add(user)
    db.session.commit()
    return user


def authenticate(identifier: str, password: str) -> User | None:
    """
    Look up an active user by username or email and check the password.

    Returns None on any failure; callers must not reveal which part failed.
    """
    user = db.session.query(User).filter(
        (User.username == identifier) | (User.email == identifier)
    ).first()
    if not user or not user.is_active:
        return None
    if not verify_password(password, user.password_hash):
        return None

    user.last_login_at = utcnow()
    db.session.commit()
    return user
