# Overview: Retry and locking helpers shared by the write paths (orders, ledger, entitlements).

from __future__ import annotations

import time

from flask import current_app
from sqlalchemy.exc import OperationalError
from sqlalchemy.orm.exc import StaleDataError

from ..extensions import db


RETRYABLE_ERRORS = (OperationalError, StaleDataError)


def lock_for_update(query):
    """
    Row lock for read-modify-write paths (order status, verification, apron hand-out).

    SQLite has no SELECT ... FOR UPDATE; its single-writer lock covers us there.
    """
    return query.with_for_update()


def run_with_retry(func, *, label: str = "db operation", attempts: int = 3, backoff_base: float = 0.1):
    """
    Run func, retrying on lock contention and version_id conflicts.

    The session is rolled back before each retry so func always starts from
    fresh rows. The last failure propagates.
    """
    for attempt in range(1, attempts + 1):
        try:
            return func()
        except RETRYABLE_ERRORS as exc:
            db.session.rollback()
            if attempt == attempts:
                raise
            current_app.logger.debug(
                "%s hit %s (attempt %s/%s); retrying",
                label, type(exc).__name__, attempt, attempts,
            )
            time.sleep(backoff_base * (2 ** (attempt - 1)))
