"""
Retention sweeper: purges lessons/exams older than the retention horizon.

Listing endpoints call `sweep_quietly` before reading, so stale rows never
reach a dashboard; a failed sweep is logged and the read carries on.
"""
import logging
from datetime import datetime
from typing import Optional

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from driveschool.config import settings
from driveschool.models import Lesson
from driveschool.scheduling.time_window import retention_cutoff

logger = logging.getLogger(__name__)


def sweep_expired_lessons(db: Session, now: datetime,
                          retention_days: Optional[int] = None) -> int:
    """Delete every lesson dated before `now - retention_days`. Returns the count."""
    if retention_days is None:
        retention_days = settings.scheduling.retention_days
    cutoff = retention_cutoff(now, retention_days)

    deleted = (
        db.query(Lesson)
        .filter(Lesson.lesson_date < cutoff)
        .delete(synchronize_session=False)
    )
    db.commit()

    if deleted:
        logger.info("Cleaned up %d old lessons/exams dated before %s", deleted, cutoff)
    return deleted


def sweep_quietly(db: Session, now: datetime,
                  retention_days: Optional[int] = None) -> Optional[int]:
    """Best-effort sweep; returns None when the sweep failed."""
    try:
        return sweep_expired_lessons(db, now, retention_days)
    except SQLAlchemyError:
        db.rollback()
        logger.exception("Failed to clean up old lessons")
        return None
