"""
Booking admission: validates a lesson/exam request and persists its rows.

Order of checks:
  1. time range           → INVALID_TIME_RANGE
  2. instructor exists    → INSTRUCTOR_NOT_FOUND
  3. category resolution  → INSTRUCTOR_NOT_QUALIFIED / NO_CATEGORY_AVAILABLE
  4. students             → STUDENT_REQUIRED / TOO_MANY_STUDENTS / STUDENT_NOT_FOUND
  5. vehicle exists       → VEHICLE_NOT_FOUND
  6. instructor + vehicle free for the slot → RESOURCE_CONFLICT

Instructor and vehicle rows are locked before the overlap check, so two
admissions for the same resource serialize. Rows for a multi-student exam
are committed together or not at all.
"""
import logging
from dataclasses import dataclass, field
from datetime import date
from typing import Optional

from sqlalchemy import or_
from sqlalchemy.orm import Session

from driveschool.config import settings
from driveschool.errors import ErrorKind, SchedulingError
from driveschool.models import (
    MULTI_STUDENT_TYPES, Category, Instructor, Lesson, LessonStatus, LessonType,
    Student, Vehicle,
)
from driveschool.scheduling.booking_rules import (
    carries_vehicle, check_time_range, requested_students, resolve_category
)
from driveschool.scheduling.ledger import ResourceLedger, instructor_key, vehicle_key

logger = logging.getLogger(__name__)


@dataclass
class BookingRequest:
    lesson_type: LessonType
    instructor_id: str                      # instructor's user id
    lesson_date: date
    start_time: str
    end_time: str
    student_id: Optional[str] = None        # student's user id
    student_ids: Optional[list[str]] = None
    vehicle_id: Optional[int] = None


@dataclass
class AdmissionResult:
    lesson_type: LessonType
    lessons: list[Lesson] = field(default_factory=list)

    @property
    def is_group(self) -> bool:
        return self.lesson_type in (LessonType.EXAM, LessonType.THEORY_EXAM)


def admit_booking(
    db: Session,
    request: BookingRequest,
    max_students_per_exam: Optional[int] = None,
    default_category_name: Optional[str] = None,
    enforce_conflicts: Optional[bool] = None,
) -> AdmissionResult:
    cfg = settings.scheduling
    if max_students_per_exam is None:
        max_students_per_exam = cfg.max_students_per_exam
    if default_category_name is None:
        default_category_name = cfg.default_category_name
    if enforce_conflicts is None:
        enforce_conflicts = cfg.enforce_resource_conflicts

    try:
        rows = _build_rows(db, request, max_students_per_exam,
                           default_category_name, enforce_conflicts)
        db.add_all(rows)
        db.commit()
    except SchedulingError as e:
        db.rollback()
        logger.info("Booking rejected: %s (%s)", e.kind.value, e.message)
        raise
    except Exception:
        db.rollback()
        raise

    for row in rows:
        db.refresh(row)

    logger.info(
        "Admitted %d %s lesson(s) on %s %s-%s",
        len(rows), request.lesson_type.value, request.lesson_date,
        request.start_time, request.end_time,
    )
    return AdmissionResult(lesson_type=request.lesson_type, lessons=rows)


def _build_rows(db: Session, request: BookingRequest, max_students_per_exam: int,
                default_category_name: str, enforce_conflicts: bool) -> list[Lesson]:
    minutes = check_time_range(request.start_time, request.end_time)

    instructor = _lock_instructor(db, request.instructor_id)
    if instructor is None:
        raise SchedulingError(ErrorKind.INSTRUCTOR_NOT_FOUND, "Instructor not found",
                              field="instructor_id")

    category = resolve_category(
        request.lesson_type, instructor,
        lambda: _fallback_category(db, default_category_name),
    )

    user_ids = requested_students(request.lesson_type, request.student_id,
                                  request.student_ids, max_students_per_exam)
    student_field = "student_ids" if request.lesson_type in MULTI_STUDENT_TYPES else "student_id"
    students = [_find_student(db, uid, student_field) for uid in user_ids]

    vehicle_id = request.vehicle_id if carries_vehicle(request.lesson_type, len(students)) else None
    if vehicle_id is not None and _lock_vehicle(db, vehicle_id) is None:
        raise SchedulingError(ErrorKind.VEHICLE_NOT_FOUND, "Vehicle not found",
                              field="vehicle_id")

    if enforce_conflicts:
        _check_conflicts(db, instructor.id, vehicle_id, request)

    return [
        Lesson(
            lesson_type=request.lesson_type,
            student_id=student.id if student is not None else None,
            instructor_id=instructor.id,
            vehicle_id=vehicle_id,
            category_id=category.id,
            lesson_date=request.lesson_date,
            start_time=request.start_time,
            end_time=request.end_time,
            duration_minutes=minutes,
            status=LessonStatus.SCHEDULED,
        )
        for student in (students or [None])
    ]


# ── Lookups ───────────────────────────────────────────────────────────────────

def _lock_instructor(db: Session, user_id: str) -> Optional[Instructor]:
    return (
        db.query(Instructor)
        .filter(Instructor.user_id == user_id)
        .with_for_update()
        .first()
    )


def _lock_vehicle(db: Session, vehicle_id: int) -> Optional[Vehicle]:
    return (
        db.query(Vehicle)
        .filter(Vehicle.id == vehicle_id)
        .with_for_update()
        .first()
    )


def _find_student(db: Session, user_id: str, field_name: str = "student_id") -> Student:
    student = db.query(Student).filter(Student.user_id == user_id).first()
    if student is None:
        raise SchedulingError(ErrorKind.STUDENT_NOT_FOUND, f"Student {user_id} not found",
                              field=field_name)
    return student


def _fallback_category(db: Session, name: str) -> Optional[Category]:
    """School default category, else any active one."""
    default = db.query(Category).filter(Category.name == name).first()
    if default is not None:
        return default
    return (
        db.query(Category)
        .filter(Category.is_active.is_(True))
        .order_by(Category.display_order, Category.id)
        .first()
    )


# ── Conflicts ─────────────────────────────────────────────────────────────────

def _check_conflicts(db: Session, instructor_id: str,
                     vehicle_id: Optional[int], request: BookingRequest):
    holders = [Lesson.instructor_id == instructor_id]
    if vehicle_id is not None:
        holders.append(Lesson.vehicle_id == vehicle_id)

    same_day = (
        db.query(Lesson)
        .filter(Lesson.lesson_date == request.lesson_date)
        .filter(Lesson.status != LessonStatus.CANCELLED)
        .filter(or_(*holders))
        .all()
    )
    ledger = ResourceLedger.from_lessons(same_day)

    checks = [(instructor_key(instructor_id), "instructor_id", "Instructor")]
    if vehicle_id is not None:
        checks.append((vehicle_key(vehicle_id), "vehicle_id", "Vehicle"))

    for resource, field_name, label in checks:
        clash = ledger.first_clash(resource, request.lesson_date,
                                   request.start_time, request.end_time)
        if clash:
            start, end, lesson_id = clash
            logger.warning("%s double-booking refused: %s %s-%s overlaps lesson %s",
                           label, request.lesson_date, request.start_time,
                           request.end_time, lesson_id)
            raise SchedulingError(
                ErrorKind.RESOURCE_CONFLICT,
                f"{label} is already booked {start}-{end} on {request.lesson_date}",
                field=field_name,
            )
