# Overview: Unit-of-work scope, row locking and retry for the commit protocol.

from __future__ import annotations

import time
from contextlib import contextmanager

from flask import current_app
from sqlalchemy.exc import OperationalError
from sqlalchemy.orm.exc import StaleDataError

from ..extensions import db

# Failures worth another attempt: lock timeouts/deadlocks and version_id conflicts
RETRYABLE_ERRORS = (OperationalError, StaleDataError)


def lock_for_update(query):
    """
    SELECT ... FOR UPDATE on engines that support it.

    SQLite has no row locks and drops the clause; there the conditional stock
    UPDATE and the single-writer database lock keep commits consistent.
    """
    return query.with_for_update()


@contextmanager
def atomic_unit():
    """
    Scope one all-or-nothing unit of work on the shared session.

    Commits when the block exits normally. Any exception, domain or
    infrastructural, rolls back every write made inside the block and is
    re-raised unchanged.
    """
    try:
        yield db.session
        db.session.commit()
    except BaseException:
        db.session.rollback()
        raise


def run_with_retry(func, *, attempts: int | None = None, backoff_base: float = 0.1):
    """
    Call func, re-running it after a RETRYABLE_ERRORS failure.

    attempts defaults to the COMMIT_RETRY_ATTEMPTS setting. The session is
    rolled back before every new attempt and the wait doubles each time. The
    last failure propagates. Any other exception propagates immediately.
    """
    if attempts is None:
        attempts = current_app.config.get("COMMIT_RETRY_ATTEMPTS", 3)
    attempts = max(int(attempts), 1)

    for attempt in range(1, attempts + 1):
        try:
            return func()
        except RETRYABLE_ERRORS as exc:
            db.session.rollback()
            if attempt == attempts:
                raise
            current_app.logger.warning(
                "Retrying unit of work after %s (attempt %d/%d)",
                type(exc).__name__, attempt, attempts,
            )
            time.sleep(backoff_base * (2 ** (attempt - 1)))
