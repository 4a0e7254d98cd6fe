# Overview: Transaction runner and row-locking helpers shared by the adoption and billing services.

from __future__ import annotations

import time

from flask import current_app
from sqlalchemy.exc import OperationalError, SQLAlchemyError
from sqlalchemy.orm.exc import StaleDataError

from ..extensions import db
from ..validation import ShelterError, TransactionFailure


def lock_for_update(query):
    """
    Apply row-level locking for critical operations.

    NOTE: SQLite ignores SELECT ... FOR UPDATE, but other DBs will honor it.
    """
    return query.with_for_update()


def run_in_transaction(func, *, attempts: int | None = None, backoff_base: float | None = None):
    """
    Run func() as one unit of work and commit it.

    - Any exception rolls the whole session back; nothing partial is committed.
    - OperationalError (deadlocks, lock timeouts) and StaleDataError
      (version_id conflicts) are retried with exponential back-off.
    - Domain errors (ShelterError) are re-raised unchanged.
    - Other SQLAlchemy errors surface as TransactionFailure.

    func must be safe to call again from scratch: it re-reads and re-locks
    everything it touches.
    """
    if attempts is None:
        attempts = current_app.config.get("TRANSACTION_RETRY_ATTEMPTS", 3)
    if backoff_base is None:
        backoff_base = current_app.config.get("TRANSACTION_RETRY_BACKOFF", 0.1)

    for attempt in range(attempts):
        try:
            result = func()
            db.session.commit()
            return result
        except (OperationalError, StaleDataError) as exc:
            db.session.rollback()
            if attempt >= attempts - 1:
                raise TransactionFailure("Transaction could not be completed, please retry") from exc
            current_app.logger.warning(
                "Retrying transaction after %s (attempt %d of %d)",
                type(exc).__name__, attempt + 1, attempts,
            )
            time.sleep(backoff_base * (2 ** attempt))
        except ShelterError:
            db.session.rollback()
            raise
        except SQLAlchemyError as exc:
            db.session.rollback()
            raise TransactionFailure("Transaction failed and was rolled back") from exc
        except Exception:
            db.session.rollback()
            raise
    raise TransactionFailure("Transaction could not be completed, please retry")
