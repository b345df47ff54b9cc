"""
Case service - intake and read access for flood cases.

DESIGN NOTE:
- Reporter fields are written once at creation and never edited here
- Lifecycle fields start at status=waiting, is_black_case=false
- ai_analysis is never written from this path; only the triage analyzer owns it
"""

from datetime import datetime
from typing import Any, Dict, List, Optional
import logging

from pydantic import ValidationError

from flood_rescue.core.errors import CaseNotFound
from flood_rescue.models.case import CaseCreate, CaseResponse, CaseStats, CaseStatus, normalize_case
from flood_rescue.services.claim_coordinator import ClaimCoordinator
from flood_rescue.store.base import DocumentStore, SERVER_TIMESTAMP

logger = logging.getLogger(__name__)

DEFAULT_CRITICAL_RISK_SCORE = 8


def to_case_response(case_id: str, data: Dict[str, Any]) -> CaseResponse:
    data = normalize_case(data)
    return CaseResponse(
        id=case_id,
        name=data.get("name", ""),
        contact=data.get("contact", ""),
        description=data.get("description", ""),
        image_url=data.get("image_url"),
        people_count=data.get("people_count") or 1,
        water_level=data.get("water_level", ""),
        reporter_type=data.get("reporter_type", ""),
        location=data.get("location"),
        address=data.get("address"),
        status=data.get("status") or CaseStatus.WAITING.value,
        is_black_case=bool(data.get("is_black_case")),
        ai_analysis=data.get("ai_analysis"),
        assigned_officer=data.get("assigned_officer"),
        status_history=data.get("status_history") or [],
        created_at=data.get("created_at"),
        allowed_actions=ClaimCoordinator.allowed_actions(data),
    )


def _risk_score(data: Dict[str, Any]) -> int:
    analysis = data.get("ai_analysis") or {}
    score = analysis.get("risk_score")
    return score if isinstance(score, int) else 0


class CaseService:
    def __init__(self, store: DocumentStore, critical_risk_score: int = DEFAULT_CRITICAL_RISK_SCORE):
        self.store = store
        self.critical_risk_score = critical_risk_score

    def create_case(self, case: CaseCreate) -> CaseResponse:
        """
        Store a new case. The change feed picks it up for triage.

        Returns the created case with its store-assigned ID.
        """
        data = {
            "name": case.name,
            "contact": case.contact,
            "description": case.description,
            "image_url": case.image_url,
            "people_count": case.people_count,
            "water_level": case.water_level,
            "reporter_type": case.reporter_type,
            "location": case.location.model_dump(),
            "address": case.address.model_dump(),
            "status": CaseStatus.WAITING.value,
            "is_black_case": False,
            "status_history": [],
            "created_at": SERVER_TIMESTAMP,
        }
        case_id = self.store.create(data)
        logger.info(f"📝 Case created: {case_id} ({case.name}, {case.people_count} people)")
        return self.get_case(case_id)

    def get_case(self, case_id: str) -> CaseResponse:
        data = self.store.get(case_id)
        if data is None:
            raise CaseNotFound(case_id)
        return to_case_response(case_id, data)

    def list_cases(self, status: Optional[CaseStatus] = None) -> List[CaseResponse]:
        """
        All cases, open ones first, then by risk (highest first), then newest.
        """
        cases = []
        for case_id, data in self.store.list():
            data = normalize_case(data)
            if status and data.get("status") != status.value:
                continue
            cases.append((case_id, data))

        def sort_key(item):
            _, data = item
            done = data.get("status") == CaseStatus.COMPLETED.value
            created = data.get("created_at")
            created_ts = created.timestamp() if isinstance(created, datetime) else 0.0
            return (done, -_risk_score(data), -created_ts)

        cases.sort(key=sort_key)
        responses = []
        for case_id, data in cases:
            try:
                responses.append(to_case_response(case_id, data))
            except ValidationError as e:
                logger.warning(f"⚠️ Skipping malformed case {case_id}: {e.error_count()} invalid field(s)")
        return responses

    def get_stats(self) -> CaseStats:
        stats = CaseStats()
        for _, data in self.store.list():
            data = normalize_case(data)
            status = data.get("status")
            stats.total += 1
            if status == CaseStatus.WAITING.value:
                stats.waiting += 1
            elif status == CaseStatus.IN_PROGRESS.value:
                stats.in_progress += 1
            elif status == CaseStatus.COMPLETED.value:
                stats.completed += 1
            if data.get("is_black_case"):
                stats.recovery += 1
            if not data.get("ai_analysis"):
                stats.untriaged += 1
            if status != CaseStatus.COMPLETED.value and _risk_score(data) >= self.critical_risk_score:
                stats.critical += 1
        return stats
