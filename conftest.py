"""Shared test fixtures: in-memory database, reference data, API client."""
import os

# Must be set before driveschool.config is imported
os.environ["DATABASE_URL"] = "sqlite://"

from datetime import date, datetime
from types import SimpleNamespace
from typing import Optional

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from driveschool.api.access import get_now
from driveschool.api.main import app
from driveschool.database import get_db
from driveschool.models import (
    Base, Category, Instructor, Lesson, LessonStatus, LessonType,
    Student, Vehicle, VehicleStatus,
)
from driveschool.scheduling.time_window import duration_minutes

# Wednesday morning, mid-lesson
NOW = datetime(2025, 7, 9, 10, 30)
TODAY = NOW.date()

ADMIN = {"X-User-Id": "usr-admin", "X-User-Role": "SUPER_ADMIN"}
INSTRUCTOR_ANA = {"X-User-Id": "usr-ana", "X-User-Role": "INSTRUCTOR"}
STUDENT_MIGUEL = {"X-User-Id": "usr-miguel", "X-User-Role": "STUDENT"}


@pytest.fixture
def engine():
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(bind=engine)
    yield engine
    engine.dispose()


@pytest.fixture
def db(engine):
    session = sessionmaker(bind=engine, autoflush=False, autocommit=False)()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture
def school(db):
    """
    Two categories, three instructors (one unqualified), three students and
    three vehicles (one inactive, one under maintenance).
    """
    cat_b = Category(name="B", full_name="Car", display_order=1)
    cat_a1 = Category(name="A1", full_name="Light motorcycle", display_order=2)
    db.add_all([cat_b, cat_a1])
    db.flush()

    ana = Instructor(id="INS-01", user_id="usr-ana", name="Ana Ribeiro",
                     qualified_categories=[cat_b, cat_a1])
    jorge = Instructor(id="INS-02", user_id="usr-jorge", name="Jorge Matos",
                       qualified_categories=[cat_a1])
    rita = Instructor(id="INS-03", user_id="usr-rita", name="Rita Sousa",
                      qualified_categories=[])

    miguel = Student(id="STU-0001", user_id="usr-miguel", name="Miguel Costa")
    ines = Student(id="STU-0002", user_id="usr-ines", name="Ines Lopes")
    tiago = Student(id="STU-0003", user_id="usr-tiago", name="Tiago Alves")

    clio = Vehicle(registration_number="AA-10-BB", make="Renault", model="Clio",
                   category_id=cat_b.id)
    ibiza = Vehicle(registration_number="GG-56-HH", make="Seat", model="Ibiza",
                    category_id=cat_b.id, is_active=False,
                    status=VehicleStatus.OUT_OF_SERVICE)
    honda = Vehicle(registration_number="EE-34-FF", make="Honda", model="CB125F",
                    category_id=cat_a1.id, under_maintenance=True)

    db.add_all([ana, jorge, rita, miguel, ines, tiago, clio, ibiza, honda])
    db.commit()

    return SimpleNamespace(
        cat_b=cat_b, cat_a1=cat_a1,
        ana=ana, jorge=jorge, rita=rita,
        miguel=miguel, ines=ines, tiago=tiago,
        clio=clio, ibiza=ibiza, honda=honda,
    )


@pytest.fixture
def add_lesson(db, school):
    """Insert a lesson row directly, bypassing admission."""
    def _add(lesson_date: date, start: str, end: str,
             lesson_type: LessonType = LessonType.DRIVING,
             student: Optional[Student] = None,
             instructor: Optional[Instructor] = None,
             vehicle: Optional[Vehicle] = None,
             status: LessonStatus = LessonStatus.SCHEDULED) -> Lesson:
        lesson = Lesson(
            lesson_type=lesson_type,
            student_id=student.id if student else None,
            instructor_id=(instructor or school.ana).id,
            vehicle_id=vehicle.id if vehicle else None,
            category_id=school.cat_b.id,
            lesson_date=lesson_date,
            start_time=start,
            end_time=end,
            duration_minutes=duration_minutes(start, end),
            status=status,
        )
        db.add(lesson)
        db.commit()
        return lesson
    return _add


@pytest.fixture
def client(db, school):
    def _get_db():
        yield db

    app.dependency_overrides[get_db] = _get_db
    app.dependency_overrides[get_now] = lambda: NOW
    try:
        yield TestClient(app)
    finally:
        app.dependency_overrides.clear()
