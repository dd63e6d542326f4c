"""
FastAPI app: lesson calendar and fleet endpoints
  GET  /lessons                   dashboard buckets (?view=) or calendar (?from=&to=)
  POST /lessons                   book a lesson / exam
  GET  /lessons/{id}
  GET  /instructor/lessons        caller's own calendar
  GET  /student/lessons           caller's own calendar
  GET  /vehicles                  fleet with live status
  POST /vehicles/{id}/maintenance
  POST /admin/cleanup             purge lessons past the retention horizon
  POST /ingest/run                seed reference data
"""
import logging
from datetime import date, datetime
from typing import Optional

from fastapi import FastAPI, Depends, HTTPException, Query, Request
from fastapi.responses import JSONResponse
from sqlalchemy.orm import Session

from driveschool.api.access import (
    Principal, Role, ensure_vehicle_management, get_features, get_now, require_roles
)
from driveschool.api.schemas import BookingCreate, MaintenanceUpdate
from driveschool.config import FeatureConfig
from driveschool.database import get_db, init_db
from driveschool.errors import ErrorKind, SchedulingError
from driveschool.fleet.status import list_fleet, set_maintenance
from driveschool.ingestion.job import run_ingestion
from driveschool.models import Instructor, Lesson, Student, Vehicle, VehicleStatus
from driveschool.scheduling.admission import BookingRequest, admit_booking
from driveschool.scheduling.retention import sweep_expired_lessons, sweep_quietly
from driveschool.scheduling.views import (
    DateRange, LessonView, get_lesson, lesson_owned_by, query_calendar, query_view
)

logger = logging.getLogger(__name__)

app = FastAPI(title="Driving School Scheduling API", version="1.0.0")

staff = require_roles(Role.SUPER_ADMIN, Role.INSTRUCTOR)
admin_only = require_roles(Role.SUPER_ADMIN)


# Initialize DB tables on startup
@app.on_event("startup")
def startup():
    init_db()
    logger.info("Database initialized")


@app.exception_handler(SchedulingError)
async def scheduling_error_handler(request: Request, exc: SchedulingError) -> JSONResponse:
    return JSONResponse(status_code=exc.status_code, content={"detail": exc.to_detail()})


# ── Lessons ───────────────────────────────────────────────────────────────────

@app.get("/lessons")
def lessons_list(
    view: LessonView = LessonView.DRIVING,
    from_date: Optional[date] = Query(default=None, alias="from"),
    to_date: Optional[date] = Query(default=None, alias="to"),
    principal: Principal = Depends(staff),
    now: datetime = Depends(get_now),
    db: Session = Depends(get_db),
):
    """
    Dashboard mode (default): recent / current / upcoming lessons of one view.
    Calendar mode (both `from` and `to`): every lesson in the inclusive range.
    Lessons past the retention horizon are purged first.
    """
    date_range = _date_range(from_date, to_date, required=False)
    sweep_quietly(db, now)

    if date_range is not None:
        lessons = query_calendar(db, date_range)
        return {"lessons": [_lesson_dict(l) for l in lessons]}

    buckets = query_view(db, view, now)
    return {
        "recent": [_lesson_dict(l) for l in buckets.recent],
        "current": [_lesson_dict(l) for l in buckets.current],
        "upcoming": [_lesson_dict(l) for l in buckets.upcoming],
    }


@app.post("/lessons", status_code=201)
def lessons_create(
    body: BookingCreate,
    principal: Principal = Depends(staff),
    features: FeatureConfig = Depends(get_features),
    db: Session = Depends(get_db),
):
    """
    Book a lesson. EXAM / THEORY_EXAM take `student_ids` and create one row
    per student; THEORY without a student is a group class.
    """
    if body.vehicle_id is not None:
        ensure_vehicle_management(features)

    # Instructors can only book themselves
    instructor_id = body.instructor_id if principal.is_admin else principal.user_id
    if not instructor_id:
        raise SchedulingError(ErrorKind.INSTRUCTOR_REQUIRED, "Instructor is required",
                              field="instructor_id")

    result = admit_booking(db, BookingRequest(
        lesson_type=body.lesson_type,
        instructor_id=instructor_id,
        lesson_date=body.lesson_date,
        start_time=body.start_time,
        end_time=body.end_time,
        student_id=body.student_id,
        student_ids=body.student_ids,
        vehicle_id=body.vehicle_id,
    ))

    if result.is_group:
        return {
            "message": f"Exam booked successfully for {len(result.lessons)} student(s)",
            "lessons": [_lesson_dict(l) for l in result.lessons],
        }

    lesson = result.lessons[0]
    message = ("Theory group class created successfully" if lesson.student_id is None
               else "Lesson booked successfully")
    return {"message": message, "lesson": _lesson_dict(lesson)}


@app.get("/lessons/{lesson_id}")
def lessons_get(
    lesson_id: str,
    principal: Principal = Depends(staff),
    db: Session = Depends(get_db),
):
    lesson = get_lesson(db, lesson_id)
    if not principal.is_admin:
        instructor = db.query(Instructor).filter(Instructor.user_id == principal.user_id).first()
        if not lesson_owned_by(lesson, instructor):
            raise HTTPException(status_code=403, detail="Forbidden")
    return _lesson_dict(lesson)


@app.get("/instructor/lessons")
def instructor_lessons(
    from_date: Optional[date] = Query(default=None, alias="from"),
    to_date: Optional[date] = Query(default=None, alias="to"),
    principal: Principal = Depends(require_roles(Role.INSTRUCTOR)),
    now: datetime = Depends(get_now),
    db: Session = Depends(get_db),
):
    date_range = _date_range(from_date, to_date, required=True)
    instructor = db.query(Instructor).filter(Instructor.user_id == principal.user_id).first()
    if instructor is None:
        raise HTTPException(status_code=404, detail="Instructor profile not found")

    sweep_quietly(db, now)
    lessons = query_calendar(db, date_range, instructor_id=instructor.id)
    return {"lessons": [_lesson_dict(l) for l in lessons]}


@app.get("/student/lessons")
def student_lessons(
    from_date: Optional[date] = Query(default=None, alias="from"),
    to_date: Optional[date] = Query(default=None, alias="to"),
    principal: Principal = Depends(require_roles(Role.STUDENT)),
    now: datetime = Depends(get_now),
    db: Session = Depends(get_db),
):
    date_range = _date_range(from_date, to_date, required=True)
    student = db.query(Student).filter(Student.user_id == principal.user_id).first()
    if student is None:
        raise HTTPException(status_code=404, detail="Student profile not found")

    sweep_quietly(db, now)
    lessons = query_calendar(db, date_range, student_id=student.id)
    return {"lessons": [_lesson_dict(l) for l in lessons]}


# ── Fleet ─────────────────────────────────────────────────────────────────────

@app.get("/vehicles")
def vehicles_list(
    status: Optional[VehicleStatus] = None,
    category_id: Optional[int] = None,
    principal: Principal = Depends(staff),
    features: FeatureConfig = Depends(get_features),
    now: datetime = Depends(get_now),
    db: Session = Depends(get_db),
):
    """Fleet roster; `status` is the live derived status, not the stored one."""
    ensure_vehicle_management(features)
    fleet = list_fleet(db, now, status=status, category_id=category_id)
    return {"vehicles": [_vehicle_dict(e.vehicle, e.status) for e in fleet]}


@app.post("/vehicles/{vehicle_id}/maintenance")
def vehicles_maintenance(
    vehicle_id: int,
    body: MaintenanceUpdate,
    principal: Principal = Depends(admin_only),
    features: FeatureConfig = Depends(get_features),
    db: Session = Depends(get_db),
):
    ensure_vehicle_management(features)
    set_maintenance(db, vehicle_id, body.under_maintenance)
    return {
        "message": f"Vehicle {'marked for' if body.under_maintenance else 'removed from'} maintenance",
    }


# ── Housekeeping ──────────────────────────────────────────────────────────────

@app.post("/admin/cleanup")
def admin_cleanup(
    principal: Principal = Depends(admin_only),
    now: datetime = Depends(get_now),
    db: Session = Depends(get_db),
):
    """Run the retention sweep on demand and report how many rows went."""
    count = sweep_expired_lessons(db, now)
    return {
        "message": f"Successfully cleaned up {count} old lessons/exams",
        "count": count,
    }


# ── Reference data ────────────────────────────────────────────────────────────

@app.post("/ingest/run")
def ingest_run(
    force: bool = False,
    principal: Principal = Depends(admin_only),
    db: Session = Depends(get_db),
):
    """
    Seed categories, instructors, students and vehicles.
    Idempotent (skips if unchanged unless force=True).
    """
    try:
        return run_ingestion(db, force=force)
    except Exception as e:
        raise HTTPException(status_code=500, detail=str(e))


# ── Helpers ───────────────────────────────────────────────────────────────────

def _date_range(from_date: Optional[date], to_date: Optional[date],
                required: bool) -> Optional[DateRange]:
    if from_date is None and to_date is None and not required:
        return None
    if from_date is None or to_date is None:
        raise SchedulingError(ErrorKind.INVALID_DATE_RANGE,
                              'Missing "from" and/or "to" query params', field="from")
    return DateRange(from_date, to_date)


def _to_dict(obj) -> dict:
    """Convert SQLAlchemy model to dict."""
    if obj is None:
        return {}
    return {c.name: getattr(obj, c.name) for c in obj.__table__.columns}


def _lesson_dict(lesson: Lesson) -> dict:
    data = _to_dict(lesson)
    data["student_name"] = lesson.student.name if lesson.student else None
    data["instructor_name"] = lesson.instructor.name if lesson.instructor else None
    data["vehicle_registration"] = (
        lesson.vehicle.registration_number if lesson.vehicle else None
    )
    data["category_name"] = lesson.category.name if lesson.category else None
    return data


def _vehicle_dict(vehicle: Vehicle, status: VehicleStatus) -> dict:
    data = _to_dict(vehicle)
    data["status"] = status
    data["category_name"] = vehicle.category.name if vehicle.category else None
    return data


# ── Health check ──────────────────────────────────────────────────────────────

@app.get("/")
def root():
    return {
        "service": "Driving School Scheduling API",
        "version": "1.0.0",
        "endpoints": ["/lessons", "/instructor/lessons", "/student/lessons",
                      "/vehicles", "/admin/cleanup", "/ingest/run"]
    }
