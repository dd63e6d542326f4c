from sqlalchemy import (
    Column, String, Integer, Boolean, DateTime,
    Date, JSON, ForeignKey, Table, Enum as SAEnum
)
from sqlalchemy.orm import declarative_base, relationship
from sqlalchemy.sql import func
import enum
import uuid

Base = declarative_base()


# ── Enums ────────────────────────────────────────────────────────────────────

class LessonType(str, enum.Enum):
    THEORY = "THEORY"
    DRIVING = "DRIVING"
    EXAM = "EXAM"
    THEORY_EXAM = "THEORY_EXAM"

class LessonStatus(str, enum.Enum):
    SCHEDULED = "SCHEDULED"
    IN_PROGRESS = "IN_PROGRESS"
    COMPLETED = "COMPLETED"
    CANCELLED = "CANCELLED"
    PENDING = "PENDING"

class VehicleStatus(str, enum.Enum):
    AVAILABLE = "AVAILABLE"
    IN_USE = "IN_USE"
    MAINTENANCE = "MAINTENANCE"
    OUT_OF_SERVICE = "OUT_OF_SERVICE"


# Lesson types that book one row per student under a shared slot
MULTI_STUDENT_TYPES = (LessonType.EXAM, LessonType.THEORY_EXAM)


# ── Reference entities ───────────────────────────────────────────────────────

instructor_categories = Table(
    "instructor_categories",
    Base.metadata,
    Column("instructor_id", String, ForeignKey("instructors.id"), primary_key=True),
    Column("category_id", Integer, ForeignKey("categories.id"), primary_key=True),
)


class Category(Base):
    __tablename__ = "categories"

    id = Column(Integer, primary_key=True, autoincrement=True)
    name = Column(String, nullable=False)               # e.g. "B", "A1"
    full_name = Column(String, nullable=True)           # "Car"
    is_active = Column(Boolean, default=True, nullable=False)
    display_order = Column(Integer, default=0, nullable=False)


class Instructor(Base):
    __tablename__ = "instructors"

    id = Column(String, primary_key=True)               # e.g. "INS-01"
    user_id = Column(String, unique=True, nullable=False)
    name = Column(String, nullable=False)
    updated_at = Column(DateTime, server_default=func.now(), onupdate=func.now())

    qualified_categories = relationship(
        Category,
        secondary=instructor_categories,
        order_by=(Category.display_order, Category.id),
        lazy="selectin",
    )


class Student(Base):
    __tablename__ = "students"

    id = Column(String, primary_key=True)               # e.g. "STU-0042"
    user_id = Column(String, unique=True, nullable=False)
    name = Column(String, nullable=False)
    updated_at = Column(DateTime, server_default=func.now(), onupdate=func.now())


class Vehicle(Base):
    __tablename__ = "vehicles"

    id = Column(Integer, primary_key=True, autoincrement=True)
    registration_number = Column(String, unique=True, nullable=False)
    make = Column(String, nullable=False)
    model = Column(String, nullable=False)
    category_id = Column(Integer, ForeignKey("categories.id"), nullable=True)
    status = Column(SAEnum(VehicleStatus), default=VehicleStatus.AVAILABLE, nullable=False)
    is_active = Column(Boolean, default=True, nullable=False)
    under_maintenance = Column(Boolean, default=False, nullable=False)   # toggled by admins
    updated_at = Column(DateTime, server_default=func.now(), onupdate=func.now())

    category = relationship("Category")


# ── Bookings ─────────────────────────────────────────────────────────────────

class Lesson(Base):
    __tablename__ = "lessons"

    id = Column(String, primary_key=True, default=lambda: str(uuid.uuid4()))
    lesson_type = Column(SAEnum(LessonType), nullable=False)

    student_id = Column(String, ForeignKey("students.id"), nullable=True)   # null = theory group class
    instructor_id = Column(String, ForeignKey("instructors.id"), nullable=False)
    vehicle_id = Column(Integer, ForeignKey("vehicles.id"), nullable=True)
    category_id = Column(Integer, ForeignKey("categories.id"), nullable=False)

    lesson_date = Column(Date, nullable=False, index=True)
    start_time = Column(String, nullable=False)        # "10:00"
    end_time = Column(String, nullable=False)          # "11:00"
    duration_minutes = Column(Integer, nullable=False)

    status = Column(SAEnum(LessonStatus), default=LessonStatus.SCHEDULED, nullable=False)
    created_at = Column(DateTime, server_default=func.now())

    student = relationship("Student")
    instructor = relationship("Instructor")
    vehicle = relationship("Vehicle")
    category = relationship("Category")


# ── Ingestion tracking ───────────────────────────────────────────────────────

class SeedRun(Base):
    __tablename__ = "seed_runs"

    id = Column(Integer, primary_key=True, autoincrement=True)
    run_at = Column(DateTime, server_default=func.now())
    source_hash = Column(String, nullable=False)       # hash of seed files
    status = Column(String, default="success")
    diff_summary = Column(JSON, default=dict)          # what changed
