"""
Pydantic models for evacuation centers and resident registration.
"""

from pydantic import BaseModel, Field
from datetime import datetime
from typing import List, Optional

from flood_rescue.models.case import GeoPoint


class CenterCreate(BaseModel):
    name: str = Field(..., min_length=1, max_length=200)
    location: GeoPoint
    capacity: int = Field(100, ge=1, description="Rated capacity (soft limit)")
    contact: str = Field("", max_length=100)
    facilities: List[str] = Field(default_factory=list, description="Facility tags, e.g. อาหาร, ห้องน้ำ")


class ResidentRegister(BaseModel):
    name: str = Field(..., min_length=1, max_length=200)
    phone: str = Field(..., min_length=1, max_length=50)


class Resident(BaseModel):
    resident_id: str
    name: str
    phone: str
    registered_at: Optional[datetime] = None


class CenterResponse(BaseModel):
    id: str
    name: str = ""
    location: Optional[GeoPoint] = None
    capacity: int = 0
    current_people: int = 0
    contact: str = ""
    facilities: List[str] = Field(default_factory=list)
    residents: List[Resident] = Field(default_factory=list)
    created_at: Optional[datetime] = None
    available: int = Field(0, description="capacity - current_people (may be negative)")
    over_capacity: bool = False


class RegistrationResult(BaseModel):
    """
    Outcome of a registration. Exceeding capacity is a warning, not a rejection.
    """
    center_id: str
    resident: Resident
    current_people: int
    capacity: int
    over_capacity: bool
