# Overview: Unit-of-work helpers shared by every stock-mutating operation.

from __future__ import annotations

from flask import current_app
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError

from ..errors import LedgerError, PersistenceError
from ..extensions import db


def begin_write() -> None:
    """
    Take the database write lock up front on SQLite.

    SQLite has no row locks; a deferred transaction that reads and then
    writes can deadlock against a concurrent writer. BEGIN IMMEDIATE makes
    concurrent units of work queue on the lock (bounded by the busy timeout)
    instead. Other databases rely on the conditional UPDATE alone.
    """
    if db.engine.dialect.name == "sqlite":
        db.session.execute(text("BEGIN IMMEDIATE"))


def run_atomic(func, *, label: str):
    """
    Execute func as one unit of work: commit on success, roll back on any failure.

    - LedgerError subclasses propagate unchanged after rollback.
    - SQLAlchemy failures (lock timeouts, lost connections, constraint
      violations) are rolled back and re-raised as PersistenceError.

    No retries: retry policy belongs to the caller.
    """
    try:
        begin_write()
        result = func()
        db.session.commit()
        return result
    except LedgerError:
        db.session.rollback()
        raise
    except SQLAlchemyError as exc:
        db.session.rollback()
        current_app.logger.warning("%s rolled back: %s", label, exc)
        raise PersistenceError(f"{label} could not be persisted") from exc
    except Exception:
        db.session.rollback()
        raise
