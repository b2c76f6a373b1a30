# Overview: Transaction, locking and retry helpers shared by the services.

from __future__ import annotations

import logging
import time
from contextlib import contextmanager

from sqlalchemy import text
from sqlalchemy.exc import OperationalError
from sqlalchemy.orm.exc import StaleDataError

from ..errors import StorageUnavailableError
from ..extensions import db

logger = logging.getLogger(__name__)

"""
Concurrency model:

- Every mutation runs inside write_transaction(). On SQLite the transaction is
  opened with BEGIN IMMEDIATE, which takes the database write lock before the
  first read, so a read-check-write on stock cannot interleave with another
  writer. Other backends rely on lock_for_update() (SELECT ... FOR UPDATE) on
  the rows being checked.
- Any exception rolls back; nothing partially applied is ever committed.
- Mutations are NOT retried here: a retried sale could charge twice. Only
  read-only aggregations go through run_with_retry().
"""


def lock_for_update(query):
    """
    Apply row-level locking for critical operations.

    NOTE: SQLite ignores SELECT ... FOR UPDATE; BEGIN IMMEDIATE covers it there.
    """
    return query.with_for_update()


@contextmanager
def write_transaction():
    """
    Run the block as one atomic unit of work and commit it.

    Storage failures (lock timeouts, deadlocks, optimistic version conflicts)
    surface as StorageUnavailableError; the caller must treat the outcome as
    not committed.
    """
    try:
        if db.engine.dialect.name == "sqlite":
            db.session.execute(text("BEGIN IMMEDIATE"))
        yield db.session
        db.session.commit()
    except (OperationalError, StaleDataError) as exc:
        db.session.rollback()
        logger.warning("Write transaction failed at the storage layer: %s", exc)
        raise StorageUnavailableError("Storage unavailable, no changes were applied") from exc
    except BaseException:
        db.session.rollback()
        raise


def run_with_retry(func, *, attempts: int = 3, backoff_base: float = 0.1):
    """
    Execute a read-only DB operation with retry on transient failures.

    Retries on OperationalError (locks, dropped connections). Exhausted
    retries surface as StorageUnavailableError.
    """
    for attempt in range(attempts):
        try:
            return func()
        except OperationalError as exc:
            db.session.rollback()
            if attempt >= attempts - 1:
                raise StorageUnavailableError("Storage unavailable, try again later") from exc
            logger.info("Retrying read after storage error (attempt %d): %s", attempt + 1, exc)
            time.sleep(backoff_base * (2 ** attempt))
