# Overview: Transaction helpers shared by every booking mutation.

from __future__ import annotations

import time

from flask import current_app
from sqlalchemy.exc import OperationalError
from sqlalchemy.orm.exc import StaleDataError

from ..extensions import db

RETRYABLE = (OperationalError, StaleDataError)


def lock_for_update(query):
    """Take row locks on the rows a query returns (a no-op on SQLite)."""
    return query.with_for_update()


def run_with_retry(func, *, attempts: int = 3, backoff_base: float = 0.1):
    """
    Call func until it succeeds or attempts run out.

    Lock timeouts and version-counter mismatches are retried after a
    rollback with exponential backoff. The final failure is re-raised.
    """
    for attempt in range(1, attempts + 1):
        try:
            return func()
        except RETRYABLE as exc:
            db.session.rollback()
            if attempt == attempts:
                current_app.logger.warning("Giving up after %d attempts: %s", attempts, exc)
                raise
            current_app.logger.info("Retrying unit of work (attempt %d of %d): %s", attempt, attempts, exc)
            time.sleep(backoff_base * (2 ** (attempt - 1)))


def run_in_transaction(func, *, attempts: int = 3, backoff_base: float = 0.1):
    """
    Run func and commit, as one unit of work.

    Any exception rolls the session back before propagating, so a failed
    booking mutation never leaves half-written rows in the session.
    """
    def _unit():
        try:
            result = func()
            db.session.commit()
            return result
        except RETRYABLE:
            raise
        except Exception:
            db.session.rollback()
            raise

    return run_with_retry(_unit, attempts=attempts, backoff_base=backoff_base)
