"""
Lesson view queries for dashboards and calendars.

Dashboard mode buckets one lesson type into recent / current / upcoming
around `now`:

  current  : today, start <= now < end                 (start asc, uncapped)
  recent   : yesterday, or today with start < now      (date/start desc, capped)
  upcoming : today with start >= now, or tomorrow      (date/start asc, capped)

A lesson running right now is only ever reported as current. Lessons outside
yesterday..tomorrow fall in no bucket.

Calendar mode returns every lesson inside an inclusive date range.
"""
import enum
from dataclasses import dataclass, field
from datetime import date, datetime
from typing import Iterable, Optional

from sqlalchemy.orm import Session, joinedload

from driveschool.config import settings
from driveschool.errors import ErrorKind, SchedulingError
from driveschool.models import Instructor, Lesson, LessonType
from driveschool.scheduling.time_window import TimeWindow, compute_time_window


class LessonView(str, enum.Enum):
    DRIVING = "DRIVING"
    CODE = "CODE"
    EXAMS = "EXAMS"

    @property
    def lesson_type(self) -> LessonType:
        return _VIEW_TYPES[self]


_VIEW_TYPES = {
    LessonView.DRIVING: LessonType.DRIVING,
    LessonView.CODE: LessonType.THEORY,
    LessonView.EXAMS: LessonType.EXAM,
}


class Bucket(str, enum.Enum):
    RECENT = "recent"
    CURRENT = "current"
    UPCOMING = "upcoming"


@dataclass(frozen=True)
class DateRange:
    """Inclusive calendar range."""
    start: date
    end: date

    def __post_init__(self):
        if self.start > self.end:
            raise SchedulingError(
                ErrorKind.INVALID_DATE_RANGE,
                f"'from' ({self.start}) must not be after 'to' ({self.end})",
                field="from",
            )


@dataclass
class BucketedLessons:
    recent: list = field(default_factory=list)
    current: list = field(default_factory=list)
    upcoming: list = field(default_factory=list)


# ── Pure classification ───────────────────────────────────────────────────────

def classify_lesson(lesson_date: date, start_time: str, end_time: str,
                    window: TimeWindow) -> Optional[Bucket]:
    now_t = window.current_time
    if lesson_date == window.today:
        if start_time <= now_t < end_time:
            return Bucket.CURRENT
        if start_time < now_t:
            return Bucket.RECENT
        return Bucket.UPCOMING
    if lesson_date == window.yesterday:
        return Bucket.RECENT
    if lesson_date == window.tomorrow:
        return Bucket.UPCOMING
    return None


def bucket_lessons(lessons: Iterable[Lesson], window: TimeWindow,
                   limit: int) -> BucketedLessons:
    result = BucketedLessons()
    for lesson in lessons:
        bucket = classify_lesson(lesson.lesson_date, lesson.start_time,
                                 lesson.end_time, window)
        if bucket is not None:
            getattr(result, bucket.value).append(lesson)

    result.recent.sort(key=lambda l: (l.lesson_date, l.start_time), reverse=True)
    result.current.sort(key=lambda l: l.start_time)
    result.upcoming.sort(key=lambda l: (l.lesson_date, l.start_time))

    result.recent = result.recent[:limit]
    result.upcoming = result.upcoming[:limit]
    return result


# ── Queries ───────────────────────────────────────────────────────────────────

def _with_relations(query):
    return query.options(
        joinedload(Lesson.student),
        joinedload(Lesson.instructor),
        joinedload(Lesson.vehicle),
        joinedload(Lesson.category),
    )


def query_view(db: Session, view: LessonView, now: datetime,
               limit: Optional[int] = None) -> BucketedLessons:
    """Three-bucket dashboard for one lesson view at instant `now`."""
    if limit is None:
        limit = settings.scheduling.view_bucket_limit
    window = compute_time_window(now)

    lessons = (
        _with_relations(db.query(Lesson))
        .filter(Lesson.lesson_type == view.lesson_type)
        .filter(Lesson.lesson_date >= window.yesterday)
        .filter(Lesson.lesson_date <= window.tomorrow)
        .all()
    )
    return bucket_lessons(lessons, window, limit)


def query_calendar(db: Session, date_range: DateRange,
                   instructor_id: Optional[str] = None,
                   student_id: Optional[str] = None) -> list[Lesson]:
    """
    Every lesson dated inside the range, ordered by date then start time.
    `instructor_id` / `student_id` are row ids, not user ids.
    """
    query = (
        _with_relations(db.query(Lesson))
        .filter(Lesson.lesson_date >= date_range.start)
        .filter(Lesson.lesson_date <= date_range.end)
    )
    if instructor_id is not None:
        query = query.filter(Lesson.instructor_id == instructor_id)
    if student_id is not None:
        query = query.filter(Lesson.student_id == student_id)
    return query.order_by(Lesson.lesson_date, Lesson.start_time).all()


def get_lesson(db: Session, lesson_id: str) -> Lesson:
    lesson = (
        _with_relations(db.query(Lesson))
        .filter(Lesson.id == lesson_id)
        .first()
    )
    if lesson is None:
        raise SchedulingError(ErrorKind.LESSON_NOT_FOUND, "Lesson not found", field="id")
    return lesson


def lesson_owned_by(lesson: Lesson, instructor: Optional[Instructor]) -> bool:
    return instructor is not None and lesson.instructor_id == instructor.id
