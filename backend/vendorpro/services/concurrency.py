# Overview: Transaction-boundary helpers shared by the write services.

from __future__ import annotations

import time

from sqlalchemy import text
from sqlalchemy.exc import OperationalError
from sqlalchemy.orm.exc import StaleDataError

from ..extensions import db


class UncommittedChangesError(RuntimeError):
    """A write operation was started on a session holding unflushed work."""


def begin_write_transaction() -> None:
    """
    Open the write transaction for one create/approve/reject/mark-paid call.

    SQLite takes the database write lock up front (BEGIN IMMEDIATE) so two
    callers can never both read a row and then both write it. Other databases
    rely on lock_for_update plus the conditional UPDATEs in the services.

    The session must be clean on entry. Pending adds/edits/deletes would
    either break BEGIN IMMEDIATE or be rolled back with the write, so they
    raise UncommittedChangesError and are left untouched for the caller.
    """
    if db.session.new or db.session.dirty or db.session.deleted:
        raise UncommittedChangesError(
            "Session has uncommitted changes; commit or roll back before a write operation"
        )
    if db.engine.dialect.name == "sqlite":
        db.session.execute(text("BEGIN IMMEDIATE"))


def lock_for_update(query):
    """
    Apply row-level locking for critical operations.

    NOTE: SQLite ignores SELECT ... FOR UPDATE, but other DBs will honor it.
    """
    return query.with_for_update()


def run_with_retry(func, *, attempts: int = 3, backoff_base: float = 0.1):
    """
    Transport-layer retry for transient persistence failures.

    Only OperationalError (locks, dropped connections) and StaleDataError
    (optimistic version conflicts) are retried. Business errors propagate on
    the first attempt. Services never call this themselves.
    """
    for attempt in range(attempts):
        try:
            return func()
        except (OperationalError, StaleDataError):
            db.session.rollback()
            if attempt >= attempts - 1:
                raise
            time.sleep(backoff_base * (2 ** attempt))
