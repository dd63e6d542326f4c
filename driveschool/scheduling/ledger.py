"""
Tracks which instructors and vehicles are already booked on a date.
Acts as an in-memory overlap checker before admission commits to the DB.
"""
from dataclasses import dataclass, field
from datetime import date
from typing import Iterable, Optional

from driveschool.models import Lesson, LessonStatus
from driveschool.scheduling.time_window import overlaps


def instructor_key(instructor_id: str) -> tuple:
    return ("instructor", instructor_id)


def vehicle_key(vehicle_id: int) -> tuple:
    return ("vehicle", vehicle_id)


@dataclass
class ResourceLedger:
    booked: dict = field(default_factory=dict)   # (resource, date) → [(start, end, lesson_id)]

    def _key(self, resource: tuple, d: date) -> tuple:
        return (resource, d)

    def first_clash(self, resource: tuple, d: date,
                    start: str, end: str) -> Optional[tuple]:
        for (s, e, lesson_id) in self.booked.get(self._key(resource, d), []):
            if overlaps(start, end, s, e):
                return (s, e, lesson_id)
        return None

    def book(self, resource: tuple, d: date, start: str, end: str,
             lesson_id: Optional[str] = None):
        self.booked.setdefault(self._key(resource, d), []).append((start, end, lesson_id))

    @classmethod
    def from_lessons(cls, lessons: Iterable[Lesson]) -> "ResourceLedger":
        """Cancelled lessons release their instructor and vehicle."""
        ledger = cls()
        for lesson in lessons:
            if lesson.status == LessonStatus.CANCELLED:
                continue
            ledger.book(instructor_key(lesson.instructor_id), lesson.lesson_date,
                        lesson.start_time, lesson.end_time, lesson.id)
            if lesson.vehicle_id is not None:
                ledger.book(vehicle_key(lesson.vehicle_id), lesson.lesson_date,
                            lesson.start_time, lesson.end_time, lesson.id)
        return ledger
