import re
from datetime import date
from typing import Optional

from pydantic import BaseModel, field_validator

from driveschool.models import LessonType

_HHMM = re.compile(r"([01]\d|2[0-3]):[0-5]\d")


class BookingCreate(BaseModel):
    lesson_type: LessonType
    instructor_id: Optional[str] = None     # user id; forced to the caller for instructors
    student_id: Optional[str] = None        # user id
    student_ids: Optional[list[str]] = None
    vehicle_id: Optional[int] = None
    lesson_date: date
    start_time: str
    end_time: str

    @field_validator("start_time", "end_time")
    @classmethod
    def valid_time_format(cls, v):
        if not _HHMM.fullmatch(v):
            raise ValueError(f"Bad time: {v!r}, expected zero-padded HH:MM")
        return v


class MaintenanceUpdate(BaseModel):
    under_maintenance: bool
