"""
Sequence Service
Display serials (PAT-000001, APT-000001, PRS-000001) backed by counter rows
"""
import logging

from sqlalchemy import select, update
from sqlalchemy.exc import IntegrityError, SQLAlchemyError

from dental_clinic.errors import SequenceUnavailable
from dental_clinic.extensions import db
from dental_clinic.models import SequenceCounter

logger = logging.getLogger(__name__)

SERIAL_PREFIXES = {
    'patient': 'PAT',
    'appointment': 'APT',
    'prescription': 'PRS',
}
SERIAL_WIDTH = 6


def format_serial(kind: str, number: int) -> str:
    """Render a counter value as e.g. APT-000123."""
    return f"{SERIAL_PREFIXES[kind]}-{number:0{SERIAL_WIDTH}d}"


def _increment(kind: str) -> bool:
    """Bump the counter row in place; False when the row does not exist yet."""
    result = db.session.execute(
        update(SequenceCounter)
        .where(SequenceCounter.kind == kind)
        .values(value=SequenceCounter.value + 1)
        .execution_options(synchronize_session=False)
    )
    return result.rowcount > 0


def next_number(kind: str) -> int:
    """
    Reserve the next number for a kind inside the caller's transaction.

    The UPDATE takes the row's write lock, which is held until the caller
    commits or rolls back, so concurrent callers are serialized on the
    counter and can never read the same value. A rollback undoes the
    increment along with the row that would have carried the number.

    Raises:
        ValueError: unknown kind
        SequenceUnavailable: the counter could not be incremented
    """
    if kind not in SERIAL_PREFIXES:
        raise ValueError(f"Unknown sequence kind: {kind}")

    try:
        if not _increment(kind):
            try:
                with db.session.begin_nested():
                    db.session.add(SequenceCounter(kind=kind, value=1))
                logger.info("Created sequence counter for %s", kind)
            except IntegrityError:
                # Another caller created the row first
                if not _increment(kind):
                    raise SequenceUnavailable(kind)

        return db.session.execute(
            select(SequenceCounter.value).where(SequenceCounter.kind == kind)
        ).scalar_one()
    except SQLAlchemyError as e:
        logger.error("Sequence increment for %s failed: %s", kind, e, exc_info=True)
        raise SequenceUnavailable(kind) from e


def next_display_id(kind: str) -> str:
    """Reserve and format the next display serial for kind."""
    return format_serial(kind, next_number(kind))


def ensure_sequences() -> None:
    """Create any missing counter rows (run once at startup or after create_all)."""
    existing = {row.kind for row in SequenceCounter.query.all()}
    missing = [kind for kind in SERIAL_PREFIXES if kind not in existing]
    for kind in missing:
        db.session.add(SequenceCounter(kind=kind, value=0))
    if missing:
        db.session.commit()
        logger.info("Seeded sequence counters: %s", ", ".join(missing))
