"""
Pydantic models for flood emergency cases.
These models handle validation for case submission, triage results and responses.
"""

from pydantic import BaseModel, Field
from datetime import datetime
from typing import Any, Dict, List, Optional
from enum import Enum


class CaseStatus(str, Enum):
    """
    Case lifecycle:
    waiting → in_progress → completed
    (a recovery case ends by deletion instead of completion)
    """
    WAITING = "waiting"
    IN_PROGRESS = "in_progress"
    COMPLETED = "completed"


# Field names and status values written by the original web clients, which
# share the case collection with this service
LEGACY_FIELD_NAMES = {
    "imageUrl": "image_url",
    "peopleCount": "people_count",
    "waterLevel": "water_level",
    "reporterType": "reporter_type",
    "timestamp": "created_at",
}
LEGACY_STATUSES = {
    "inprogress": CaseStatus.IN_PROGRESS.value,
}


def normalize_status(status: Optional[str]) -> Optional[str]:
    return LEGACY_STATUSES.get(status, status)


def normalize_case(data: Dict[str, Any]) -> Dict[str, Any]:
    """
    Copy of a stored case with legacy field names and statuses mapped onto the
    current ones. Current names win when both are present.
    """
    case = dict(data)
    for legacy, current in LEGACY_FIELD_NAMES.items():
        if legacy in case:
            value = case.pop(legacy)
            if case.get(current) is None:
                case[current] = value
    if "status" in case:
        case["status"] = normalize_status(case["status"])
    return case


class Priority(str, Enum):
    LOW = "Low"
    MEDIUM = "Medium"
    HIGH = "High"


class TriageResult(BaseModel):
    """
    Structured risk record decoded from the model response.

    A response that does not fit this schema is rejected as a whole,
    never stored half-parsed.
    """
    risk_score: int = Field(..., ge=0, le=10, strict=True, description="0 = no risk, 10 = critical")
    priority: Priority
    summary: str = Field(..., min_length=1, max_length=300, description="Short localized summary")
    needs: List[str] = Field(..., description="Short need tags, e.g. เรือ, อาหาร, ยา")

    class Config:
        extra = "ignore"


class GeoPoint(BaseModel):
    lat: float = Field(..., ge=-90, le=90)
    lng: float = Field(..., ge=-180, le=180)


class Address(BaseModel):
    province: str = ""
    district: str = ""
    subdistrict: str = ""
    details: str = ""


class Assignment(BaseModel):
    officer_name: str
    officer_contact: str
    accepted_at: Optional[datetime] = None


class CaseCreate(BaseModel):
    """
    Model for creating a new case (reporting client POST).
    Triage and lifecycle fields are never accepted from the client.
    """
    name: str = Field(..., min_length=1, max_length=200, description="Reporter name")
    contact: str = Field(..., min_length=1, max_length=50, description="Reporter phone number")
    description: str = Field("", max_length=2000, description="Free-text description of the situation")
    image_url: Optional[str] = Field(None, description="Photo as data URL (data:image/jpeg;base64,...)")
    people_count: int = Field(1, ge=1, le=10000, description="Number of people affected")
    water_level: str = Field("", max_length=50, description="Water level category")
    reporter_type: str = Field("", max_length=50, description="Who is reporting")
    location: GeoPoint
    address: Address = Field(default_factory=Address)

    class Config:
        extra = "ignore"
        json_schema_extra = {
            "example": {
                "name": "สมชาย ใจดี",
                "contact": "0812345678",
                "description": "น้ำท่วมถึงเอว มีผู้สูงอายุ",
                "image_url": "data:image/jpeg;base64,/9j/4AAQSkZJRg...",
                "people_count": 3,
                "water_level": "เอว",
                "reporter_type": "ผู้ประสบภัย",
                "location": {"lat": 13.7563, "lng": 100.5018},
                "address": {
                    "province": "กรุงเทพมหานคร",
                    "district": "พระนคร",
                    "subdistrict": "พระบรมมหาราชวัง",
                    "details": "ซอยวัดโพธิ์",
                },
            }
        }


class AcceptRequest(BaseModel):
    officer_name: str = Field(..., min_length=1, max_length=200)
    officer_contact: str = Field(..., min_length=1, max_length=50)


class TransitionRequest(BaseModel):
    """Optional actor identity for complete/recovery transitions."""
    changed_by: Optional[str] = Field(None, max_length=200)
    note: Optional[str] = Field(None, max_length=500)


class CaseResponse(BaseModel):
    """
    Model for case responses (what the API returns).
    Photo is included as stored; clients decide whether to render it.
    """
    id: str = Field(..., description="Store document ID")
    name: str = ""
    contact: str = ""
    description: str = ""
    image_url: Optional[str] = None
    people_count: int = 1
    water_level: str = ""
    reporter_type: str = ""
    location: Optional[GeoPoint] = None
    address: Optional[Address] = None
    status: CaseStatus = CaseStatus.WAITING
    is_black_case: bool = False
    ai_analysis: Optional[Dict[str, Any]] = Field(None, description="Triage result, absent until analyzed")
    assigned_officer: Optional[Assignment] = None
    status_history: List[Dict[str, Any]] = Field(default_factory=list)
    created_at: Optional[datetime] = None
    allowed_actions: List[str] = Field(default_factory=list, description="Transitions valid right now")


class CaseStats(BaseModel):
    total: int = 0
    waiting: int = 0
    critical: int = 0
    in_progress: int = 0
    completed: int = 0
    recovery: int = 0
    untriaged: int = 0
