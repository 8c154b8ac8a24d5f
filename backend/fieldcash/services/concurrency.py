# Overview: Service-layer helpers for row locking, atomic units and caller-side retries.

from __future__ import annotations

import time
from contextlib import contextmanager

from sqlalchemy.exc import OperationalError
from sqlalchemy.orm.exc import StaleDataError

from ..extensions import db


def lock_for_update(query):
    """
    Apply row-level locking for critical operations.

    NOTE: SQLite ignores SELECT ... FOR UPDATE, but other DBs will honor it.
    On SQLite, version_id_col on the locked models turns a lost update into
    StaleDataError at flush instead.
    """
    return query.with_for_update()


@contextmanager
def atomic(*, commit: bool = True):
    """
    One unit of work on the request session.

    commit=True: commit on success, roll back on any error.
    commit=False: flush only, so an outer unit can fold this work into its
    own transaction; errors still propagate to the outer unit.
    """
    try:
        yield db.session
        if commit:
            db.session.commit()
        else:
            db.session.flush()
    except Exception:
        if commit:
            db.session.rollback()
        raise


def run_with_retry(func, *, attempts: int = 3, backoff_base: float = 0.1):
    """
    Execute a DB operation with retry on concurrency-related failures.

    Retries on OperationalError (deadlocks, locks) and StaleDataError
    (optimistic locking conflicts). Services never call this themselves;
    retry policy belongs to the caller (HTTP routes, CLI).
    """
    last_exc = None
    for attempt in range(attempts):
        try:
            return func()
        except (OperationalError, StaleDataError) as exc:
            db.session.rollback()
            last_exc = exc
            if attempt >= attempts - 1:
                raise
            time.sleep(backoff_base * (2 ** attempt))
    if last_exc:
        raise last_exc
