# school_facilities/schemas.py
from __future__ import annotations

from datetime import date
from typing import Any, Optional, Type, TypeVar

import pydantic
from pydantic import BaseModel, Field, field_validator

from .errors import ValidationError
from .models import BuildingType, SensorType, UserRole

M = TypeVar("M", bound=BaseModel)


def parse_payload(model: Type[M], data: M | dict[str, Any]) -> M:
    """
    Accepts an already-built schema or a plain dict.
    pydantic failures surface as the core's ValidationError.
    """
    if isinstance(data, model):
        return data
    try:
        return model.model_validate(data)
    except pydantic.ValidationError as e:
        errors = [
            {"loc": ".".join(str(p) for p in err.get("loc", ())), "msg": err.get("msg")}
            for err in e.errors()
        ]
        raise ValidationError(f"invalid {model.__name__}", details={"errors": errors}) from e


def _strip_required(v: str) -> str:
    v = (v or "").strip()
    if not v:
        raise ValueError("must not be blank")
    return v


def _normalize_email(v: Optional[str]) -> Optional[str]:
    if v is None:
        return None
    v = v.strip().lower()
    if not v:
        return None
    if "@" not in v:
        raise ValueError("email must contain '@'")
    return v


# -------------------- Users --------------------

class UserCreate(BaseModel):
    username: str = Field(..., min_length=1, max_length=50)
    password: str = Field(..., min_length=8)
    role: UserRole
    email: Optional[str] = Field(default=None, max_length=100)
    phone_number: Optional[str] = Field(default=None, max_length=15)

    @field_validator("username")
    @classmethod
    def _username(cls, v: str) -> str:
        return _strip_required(v)

    @field_validator("email")
    @classmethod
    def _email(cls, v: Optional[str]) -> Optional[str]:
        return _normalize_email(v)


class UserContactUpdate(BaseModel):
    email: Optional[str] = Field(default=None, max_length=100)
    phone_number: Optional[str] = Field(default=None, max_length=15)

    @field_validator("email")
    @classmethod
    def _email(cls, v: Optional[str]) -> Optional[str]:
        return _normalize_email(v)


# -------------------- Schools / Buildings --------------------

class SchoolCreate(BaseModel):
    name: str = Field(..., min_length=1, max_length=100)
    address: str = Field(..., max_length=255)
    city: str = Field(..., max_length=100)
    state: str = Field(..., max_length=100)
    zip: str = Field(..., max_length=20)
    phone_number: str = Field(..., max_length=15)
    email: Optional[str] = Field(default=None, max_length=100)

    @field_validator("name")
    @classmethod
    def _name(cls, v: str) -> str:
        return _strip_required(v)

    @field_validator("email")
    @classmethod
    def _email(cls, v: Optional[str]) -> Optional[str]:
        return _normalize_email(v)


class BuildingCreate(BaseModel):
    school_id: Optional[str] = None
    name: str = Field(..., min_length=1, max_length=100)
    type: BuildingType
    square_footage: int = Field(..., gt=0)


# -------------------- Catalog --------------------

class ComponentCreate(BaseModel):
    name: str = Field(..., min_length=1, max_length=100)
    description: Optional[str] = None


class SensorCreate(BaseModel):
    name: str = Field(..., min_length=1, max_length=100)
    type: SensorType


# -------------------- Inspections --------------------

class InspectionReportCreate(BaseModel):
    building_id: str
    inspector_id: str
    component_id: Optional[str] = None
    report_date: Optional[date] = None
    condition: int = Field(..., ge=1, le=5, description="1 = worst, 5 = best")
    notes: Optional[str] = None


# -------------------- Maintenance --------------------

class MaintenanceRequestCreate(BaseModel):
    building_id: str
    component_id: str
    description: str = Field(..., min_length=1)
    priority: int = Field(..., ge=1, le=3, description="1 = most urgent")
    request_date: Optional[date] = None


class HistoryEntryCreate(BaseModel):
    technician_id: str
    description: str = Field(..., min_length=1)
    work_date: Optional[date] = None
