"""
Bearer sessions for dashboard users.

The client holds a random hex token; only its SHA-256 digest is stored.
A session stops working when any of these hold:
- SESSION_ABSOLUTE_TIMEOUT has passed since login
- it was idle for longer than SESSION_IDLE_TIMEOUT
- it was revoked (logout) or its user was deactivated
"""

import hashlib
import secrets
from datetime import timedelta

from ..extensions import db
from ..models import SessionToken, User
from ..time_utils import utcnow


SESSION_ABSOLUTE_TIMEOUT = timedelta(hours=24)
SESSION_IDLE_TIMEOUT = timedelta(hours=2)
TOKEN_BYTES = 32


def generate_token() -> str:
    return secrets.token_hex(TOKEN_BYTES)


def hash_token(token: str) -> str:
    return hashlib.sha256(token.encode("utf-8")).hexdigest()


def _find_open(token: str) -> SessionToken | None:
    return (
        db.session.query(SessionToken)
        .filter(SessionToken.token_hash == hash_token(token), SessionToken.is_revoked.is_(False))
        .first()
    )


def create_session(
    user_id: int,
    user_agent: str | None = None,
    ip_address: str | None = None,
) -> tuple[SessionToken, str]:
    """Open a session and return it with the plaintext token (shown to the client once)."""
    if db.session.get(User, user_id) is None:
        raise ValueError("User not found")

    token = generate_token()
    issued_at = utcnow()
    record = SessionToken(
        user_id=user_id,
        token_hash=hash_token(token),
        created_at=issued_at,
        last_used_at=issued_at,
        expires_at=issued_at + SESSION_ABSOLUTE_TIMEOUT,
        user_agent=user_agent[:255] if user_agent else None,
        ip_address=ip_address,
    )
    db.session.add(record)
    db.session.commit()
    return record, token


def _revoke(record: SessionToken, reason: str) -> None:
    record.is_revoked = True
    record.revoked_at = utcnow()
    record.revoked_reason = reason
    db.session.commit()


def validate_session(token: str) -> SessionToken | None:
    """The open session for token (touching last_used_at), or None."""
    record = _find_open(token)
    if record is None:
        return None

    now = utcnow()
    if now >= record.expires_at:
        return None
    if now - record.last_used_at > SESSION_IDLE_TIMEOUT:
        _revoke(record, "Idle timeout")
        return None
    if record.user is None or not record.user.is_active:
        _revoke(record, "User deactivated")
        return None

    record.last_used_at = now
    db.session.commit()
    return record


def revoke_session(token: str, reason: str = "Logout") -> bool:
    record = _find_open(token)
    if record is None:
        return False
    _revoke(record, reason)
    return True
