"""
Transaction helpers shared by the services.

Writes run inside atomic(): one commit at the end, full rollback on any
error, and driver failures surfaced as StorageUnavailable. Reads may be
wrapped in retry_read_once to survive a dropped connection.
"""
import logging
from contextlib import contextmanager
from functools import wraps

from sqlalchemy.exc import DBAPIError, SQLAlchemyError

from dental_clinic.errors import ClinicError, StorageUnavailable
from dental_clinic.extensions import db

logger = logging.getLogger(__name__)


@contextmanager
def atomic(operation: str):
    """Run the block as one unit of work and commit it."""
    try:
        yield db.session
        db.session.commit()
    except ClinicError:
        db.session.rollback()
        raise
    except SQLAlchemyError as e:
        db.session.rollback()
        logger.error("Storage failure during %s: %s", operation, e, exc_info=True)
        raise StorageUnavailable(operation) from e
    except Exception:
        db.session.rollback()
        raise


def retry_read_once(func):
    """
    Retry an idempotent read a single time after a connection-level failure.

    A second failure is reported as StorageUnavailable.
    """
    @wraps(func)
    def wrapper(*args, **kwargs):
        try:
            return func(*args, **kwargs)
        except DBAPIError as e:
            logger.warning("Read %s failed (%s), retrying once", func.__name__, e)
            db.session.rollback()
        try:
            return func(*args, **kwargs)
        except DBAPIError as e:
            db.session.rollback()
            logger.error("Read %s failed again: %s", func.__name__, e, exc_info=True)
            raise StorageUnavailable(func.__name__) from e
    return wrapper
