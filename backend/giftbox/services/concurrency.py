# Overview: Transaction helpers shared by services: row locks, retries, atomic blocks.

from __future__ import annotations

import logging
import time
from contextlib import contextmanager

from sqlalchemy.exc import OperationalError
from sqlalchemy.orm.exc import StaleDataError

from ..extensions import db

logger = logging.getLogger(__name__)

RETRYABLE_ERRORS = (OperationalError, StaleDataError)


def lock_for_update(query):
    """
    Apply row-level locking for read-modify-write sequences.

    NOTE: SQLite ignores SELECT ... FOR UPDATE; Postgres honors it.
    """
    return query.with_for_update()


def run_with_retry(func, *, attempts: int = 3, backoff_base: float = 0.1):
    """
    Run a unit of work, retrying on deadlocks, lock timeouts and stale rows.

    func must be safe to re-run from scratch: the session is rolled back
    before each retry. Domain errors are never retried.
    """
    for attempt in range(attempts):
        try:
            return func()
        except RETRYABLE_ERRORS as exc:
            db.session.rollback()
            if attempt >= attempts - 1:
                raise
            delay = backoff_base * (2 ** attempt)
            logger.warning("Retrying after %s (attempt %d/%d, sleeping %.2fs)",
                           type(exc).__name__, attempt + 1, attempts, delay)
            time.sleep(delay)


@contextmanager
def atomic():
    """Commit the block's work, or roll all of it back and re-raise."""
    try:
        yield db.session
        db.session.commit()
    except Exception:
        db.session.rollback()
        raise
