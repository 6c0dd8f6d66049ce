"""
Dashboard account service.

Only store owners have accounts; storefront shoppers check out anonymously.
Passwords are stored as bcrypt hashes and must pass PASSWORD_RULES before
they are hashed. Bearer sessions live in session_service.
"""

import re

import bcrypt

from ..extensions import db
from ..models import User


BCRYPT_ROUNDS = 12
PASSWORD_MIN_LENGTH = 8
PASSWORD_RULES = (
    (re.compile(r"[A-Z]"), "an uppercase letter"),
    (re.compile(r"[a-z]"), "a lowercase letter"),
    (re.compile(r"\d"), "a digit"),
    (re.compile(r"[^A-Za-z0-9\s]"), "a special character"),
)


class PasswordValidationError(Exception):
    """Password rejected by PASSWORD_RULES."""


def validate_password_strength(password: str) -> None:
    if len(password) < PASSWORD_MIN_LENGTH:
        raise PasswordValidationError(f"Password must be at least {PASSWORD_MIN_LENGTH} characters long")

    missing = [label for pattern, label in PASSWORD_RULES if not pattern.search(password)]
    if missing:
        raise PasswordValidationError(f"Password must contain {', '.join(missing)}")


def hash_password(password: str) -> str:
    validate_password_strength(password)
    digest = bcrypt.hashpw(password.encode("utf-8"), bcrypt.gensalt(rounds=BCRYPT_ROUNDS))
    return digest.decode("utf-8")


def verify_password(password: str, password_hash: str) -> bool:
    # bcrypt raises ValueError on a corrupt stored hash; treat that as a mismatch
    try:
        return bcrypt.checkpw(password.encode("utf-8"), password_hash.encode("utf-8"))
    except ValueError:
        return False


def create_user(username: str, email: str, password: str) -> User:
    """
    Create a dashboard user (CLI only; there is no sign-up endpoint).

    Raises:
        PasswordValidationError: weak password
        ValueError: missing fields, or username/email already taken
    """
    username = (username or "").strip()
    email = (email or "").strip().lower()
    if not username or not email:
        raise ValueError("username and email are required")

    taken = (
        db.session.query(User)
        .filter(db.or_(User.username == username, User.email == email))
        .first()
    )
    if taken is not None:
        field = "Username" if taken.username == username else "Email"
        raise ValueError(f"{field} already in use")

    user = User(username=username, email=email, password_hash=hash_password(password))
    db.session.add(user)
    db.session.commit()
    return user


def authenticate(identifier: str, password: str) -> User | None:
    """Active user matching username or email with a correct password, else None."""
    identifier = (identifier or "").strip()
    user = (
        db.session.query(User)
        .filter(db.or_(User.username == identifier, User.email == identifier.lower()))
        .first()
    )
    if user is None or not user.is_active:
        return None
    return user if verify_password(password, user.password_hash) else None
