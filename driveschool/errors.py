"""
Error taxonomy for the scheduling engine.

Every rejection carries a machine-readable kind plus the request field that
caused it, so the API layer can map it to a status code without parsing text.
"""
import enum
from typing import Optional


class ErrorKind(str, enum.Enum):
    INVALID_TIME_RANGE = "INVALID_TIME_RANGE"
    INVALID_DATE_RANGE = "INVALID_DATE_RANGE"
    INSTRUCTOR_REQUIRED = "INSTRUCTOR_REQUIRED"
    STUDENT_REQUIRED = "STUDENT_REQUIRED"
    TOO_MANY_STUDENTS = "TOO_MANY_STUDENTS"
    DUPLICATE_STUDENT = "DUPLICATE_STUDENT"
    INSTRUCTOR_NOT_QUALIFIED = "INSTRUCTOR_NOT_QUALIFIED"

    INSTRUCTOR_NOT_FOUND = "INSTRUCTOR_NOT_FOUND"
    STUDENT_NOT_FOUND = "STUDENT_NOT_FOUND"
    VEHICLE_NOT_FOUND = "VEHICLE_NOT_FOUND"
    LESSON_NOT_FOUND = "LESSON_NOT_FOUND"

    RESOURCE_CONFLICT = "RESOURCE_CONFLICT"

    NO_CATEGORY_AVAILABLE = "NO_CATEGORY_AVAILABLE"


class ErrorCategory(str, enum.Enum):
    VALIDATION = "VALIDATION"
    NOT_FOUND = "NOT_FOUND"
    CONFLICT = "CONFLICT"
    CONFIGURATION = "CONFIGURATION"


_CATEGORIES = {
    ErrorKind.INVALID_TIME_RANGE: ErrorCategory.VALIDATION,
    ErrorKind.INVALID_DATE_RANGE: ErrorCategory.VALIDATION,
    ErrorKind.INSTRUCTOR_REQUIRED: ErrorCategory.VALIDATION,
    ErrorKind.STUDENT_REQUIRED: ErrorCategory.VALIDATION,
    ErrorKind.TOO_MANY_STUDENTS: ErrorCategory.VALIDATION,
    ErrorKind.DUPLICATE_STUDENT: ErrorCategory.VALIDATION,
    ErrorKind.INSTRUCTOR_NOT_QUALIFIED: ErrorCategory.VALIDATION,
    ErrorKind.INSTRUCTOR_NOT_FOUND: ErrorCategory.NOT_FOUND,
    ErrorKind.STUDENT_NOT_FOUND: ErrorCategory.NOT_FOUND,
    ErrorKind.VEHICLE_NOT_FOUND: ErrorCategory.NOT_FOUND,
    ErrorKind.LESSON_NOT_FOUND: ErrorCategory.NOT_FOUND,
    ErrorKind.RESOURCE_CONFLICT: ErrorCategory.CONFLICT,
    ErrorKind.NO_CATEGORY_AVAILABLE: ErrorCategory.CONFIGURATION,
}

HTTP_STATUS = {
    ErrorCategory.VALIDATION: 400,
    ErrorCategory.NOT_FOUND: 404,
    ErrorCategory.CONFLICT: 409,
    ErrorCategory.CONFIGURATION: 500,
}


class SchedulingError(Exception):
    """Raised when a booking or listing request cannot be honoured."""

    def __init__(self, kind: ErrorKind, message: str, field: Optional[str] = None):
        super().__init__(message)
        self.kind = kind
        self.message = message
        self.field = field

    @property
    def category(self) -> ErrorCategory:
        return _CATEGORIES[self.kind]

    @property
    def status_code(self) -> int:
        return HTTP_STATUS[self.category]

    def to_detail(self) -> dict:
        return {"code": self.kind.value, "message": self.message, "field": self.field}

    def __repr__(self) -> str:
        return f"SchedulingError({self.kind.value}, {self.message!r}, field={self.field!r})"
