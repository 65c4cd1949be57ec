# Overview: Row locking and retry helpers for the checkout commit path.

from __future__ import annotations

import time

from flask import current_app
from sqlalchemy.exc import OperationalError
from sqlalchemy.orm.exc import StaleDataError

from ..extensions import db

# Lock timeouts/deadlocks and optimistic version_id conflicts
RETRYABLE_ERRORS = (OperationalError, StaleDataError)


def lock_for_update(query):
    """
    Add SELECT ... FOR UPDATE to a query.

    NOTE: SQLite ignores FOR UPDATE; there the conditional stock UPDATE and
    the database-level write lock carry the guarantee.
    """
    return query.with_for_update()


def run_with_retry(func, *, attempts: int = 3, backoff_base: float = 0.1):
    """
    Run func, rolling back and retrying on lock or version conflicts.

    func must be safe to call again from a clean session (it re-reads
    everything it needs). Any other exception propagates on the first try.
    """
    for attempt in range(1, attempts + 1):
        try:
            return func()
        except RETRYABLE_ERRORS as exc:
            db.session.rollback()
            if attempt >= attempts:
                raise
            current_app.logger.warning(
                "Concurrent update conflict (attempt %s/%s): %s", attempt, attempts, exc
            )
            time.sleep(backoff_base * (2 ** (attempt - 1)))
