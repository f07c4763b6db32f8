"""Commit/rollback boundary shared by the engine services."""

import logging
from contextlib import contextmanager

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session
from sqlalchemy.orm.exc import StaleDataError

from app.core.exceptions import IntegrityRace
from app.services.notification_service import EventOutbox, NotificationSink

logger = logging.getLogger(__name__)


@contextmanager
def engine_transaction(db: Session, outbox: EventOutbox, sink: NotificationSink):
    """Run one engine operation as a single transaction.

    Commits when the block finishes, then publishes the outbox. Any error
    rolls back and discards pending events; uniqueness and version
    conflicts surface as :class:`IntegrityRace`.
    """
    try:
        yield
        db.commit()
    except (IntegrityError, StaleDataError) as e:
        db.rollback()
        outbox.clear()
        logger.warning("Concurrent write rejected: %s", e)
        raise IntegrityRace("Another update to this order or table won the race; retry") from e
    except Exception:
        db.rollback()
        outbox.clear()
        raise
    outbox.flush(sink)
