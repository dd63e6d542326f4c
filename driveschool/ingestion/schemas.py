from pydantic import BaseModel, field_validator
from typing import Optional

from driveschool.models import VehicleStatus


class CategorySchema(BaseModel):
    name: str
    full_name: Optional[str] = None
    is_active: bool = True
    display_order: int = 0

    @field_validator("name")
    @classmethod
    def non_blank(cls, v):
        assert v.strip(), "Category name must not be blank"
        return v.strip()


class InstructorSchema(BaseModel):
    id: str
    user_id: str
    name: str
    categories: list[str] = []          # category names, in preference order


class StudentSchema(BaseModel):
    id: str
    user_id: str
    name: str


class VehicleSchema(BaseModel):
    registration_number: str
    make: str
    model: str
    category: Optional[str] = None      # category name
    status: VehicleStatus = VehicleStatus.AVAILABLE
    is_active: bool = True
    under_maintenance: bool = False
