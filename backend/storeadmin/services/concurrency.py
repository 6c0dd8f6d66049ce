# Overview: Transaction helpers shared by the variant and checkout services.

from __future__ import annotations

import time

from flask import current_app
from sqlalchemy.exc import OperationalError
from sqlalchemy.orm.exc import StaleDataError


RETRYABLE_ERRORS = (OperationalError, StaleDataError)


def lock_for_update(query):
    """SELECT ... FOR UPDATE. A no-op on SQLite, which serializes writers anyway."""
    return query.with_for_update()


def run_with_retry(session, func, *, attempts: int = 3, backoff_base: float = 0.1):
    """
    Run func as one unit of work, retrying on lock contention and
    version_id conflicts.

    The session is rolled back before every retry so func always starts a
    fresh transaction. Any other exception propagates on the first attempt.
    """
    attempt = 0
    while True:
        try:
            return func()
        except RETRYABLE_ERRORS as exc:
            session.rollback()
            attempt += 1
            if attempt >= attempts:
                raise
            current_app.logger.warning(
                "Retrying unit of work after %s (attempt %d of %d)",
                type(exc).__name__, attempt + 1, attempts,
            )
            time.sleep(backoff_base * (2 ** (attempt - 1)))
