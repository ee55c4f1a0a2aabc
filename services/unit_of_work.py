import logging
from functools import wraps

from flask import current_app
from sqlalchemy.exc import OperationalError

from models import db
from models.errors import Conflict, StaleWrite

logger = logging.getLogger(__name__)


def _is_lock_contention(exc: OperationalError) -> bool:
    # SQLite gives up on a writer lock instead of waiting when waiting could deadlock
    return "database is locked" in str(exc.orig)


def atomic(fn):
    """
    Runs fn as a single database transaction: commit on return, rollback on
    any exception. A StaleWrite (or SQLite lock contention) re-runs fn from
    scratch with fresh reads, up to SWAP_CONFLICT_RETRIES extra attempts,
    after which Conflict is raised.

    Usage: @atomic on a function that only reads and writes through db.session
    """
    @wraps(fn)
    def wrapper(*args, **kwargs):
        retries = max(0, int(current_app.config.get("SWAP_CONFLICT_RETRIES", 2)))
        attempt = 1
        while True:
            try:
                result = fn(*args, **kwargs)
                db.session.commit()
                return result
            except (StaleWrite, OperationalError) as exc:
                db.session.rollback()
                if isinstance(exc, OperationalError) and not _is_lock_contention(exc):
                    raise
                if attempt > retries:
                    logger.warning("%s gave up after %d attempts: %s", fn.__name__, attempt, exc)
                    raise Conflict(
                        "The records changed while this request was processed. Try again.",
                        details={"attempts": attempt},
                    )
                logger.info("%s hit a stale write (%s), retrying", fn.__name__, exc)
                attempt += 1
            except Exception:
                db.session.rollback()
                raise
    return wrapper
