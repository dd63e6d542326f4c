"""
Business rules for lesson admission.
Keeps admission.py clean: all structural rule logic lives here.
"""
from typing import Callable, Optional, Sequence

from driveschool.errors import ErrorKind, SchedulingError
from driveschool.models import Category, Instructor, LessonType, MULTI_STUDENT_TYPES
from driveschool.scheduling.time_window import duration_minutes


def check_time_range(start_time: str, end_time: str) -> int:
    """Return the lesson length in minutes; it must be positive."""
    minutes = duration_minutes(start_time, end_time)
    if minutes <= 0:
        raise SchedulingError(
            ErrorKind.INVALID_TIME_RANGE,
            "End time must be after start time",
            field="end_time",
        )
    return minutes


def resolve_category(
    lesson_type: LessonType,
    instructor: Instructor,
    fallback: Callable[[], Optional[Category]],
) -> Category:
    """
    Theory classes may run under the school default category when the
    instructor holds none; every practical lesson or exam needs a
    qualification. `fallback` is only consulted for theory.
    """
    if instructor.qualified_categories:
        return instructor.qualified_categories[0]

    if lesson_type != LessonType.THEORY:
        raise SchedulingError(
            ErrorKind.INSTRUCTOR_NOT_QUALIFIED,
            "Instructor has no qualified categories. "
            "Assign categories to this instructor first.",
            field="instructor_id",
        )

    category = fallback()
    if category is None:
        raise SchedulingError(
            ErrorKind.NO_CATEGORY_AVAILABLE,
            "No active categories found in the system",
        )
    return category


def requested_students(
    lesson_type: LessonType,
    student_id: Optional[str],
    student_ids: Optional[Sequence[str]],
    max_students_per_exam: int,
) -> list[str]:
    """
    Normalise the student part of a request into the list of user ids that
    will each get a lesson row. An empty list means a theory group class.
    """
    if lesson_type in MULTI_STUDENT_TYPES:
        ids = list(student_ids or [])
        if not ids:
            raise SchedulingError(
                ErrorKind.STUDENT_REQUIRED,
                "At least one student is required for an exam",
                field="student_ids",
            )
        if len(ids) > max_students_per_exam:
            raise SchedulingError(
                ErrorKind.TOO_MANY_STUDENTS,
                f"Maximum {max_students_per_exam} students per exam",
                field="student_ids",
            )
        if len(set(ids)) != len(ids):
            raise SchedulingError(
                ErrorKind.DUPLICATE_STUDENT,
                "A student can only be listed once per exam",
                field="student_ids",
            )
        return ids

    if lesson_type == LessonType.DRIVING and not student_id:
        raise SchedulingError(
            ErrorKind.STUDENT_REQUIRED,
            "Student is required for driving lessons",
            field="student_id",
        )

    return [student_id] if student_id else []


def carries_vehicle(lesson_type: LessonType, student_count: int) -> bool:
    """Theory group classes are held in a classroom, never in a car."""
    return not (lesson_type == LessonType.THEORY and student_count == 0)
