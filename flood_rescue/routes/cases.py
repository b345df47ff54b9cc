"""
Case endpoints - citizen reporting and officer lifecycle actions.

Officers acting on stale data get 409 with the real current state; the client
should re-fetch the case rather than retry.
"""

from typing import List, Optional
import logging

from fastapi import APIRouter, Depends, Query, status

from flood_rescue.models.case import (
    AcceptRequest,
    CaseCreate,
    CaseResponse,
    CaseStats,
    CaseStatus,
    TransitionRequest,
)
from flood_rescue.routes.deps import get_case_service, get_claim_coordinator
from flood_rescue.services.case_service import CaseService, to_case_response
from flood_rescue.services.claim_coordinator import ClaimCoordinator

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/cases", tags=["Cases"])


@router.post("", response_model=CaseResponse, status_code=status.HTTP_201_CREATED)
def submit_case(case: CaseCreate, cases: CaseService = Depends(get_case_service)):
    """
    Submit a new flood emergency case.

    The case is stored as `waiting`; AI triage attaches `ai_analysis`
    asynchronously when the case carries a photo.
    """
    logger.info(f"📝 POST /cases - {case.name}, {case.people_count} people, water={case.water_level}")
    return cases.create_case(case)


@router.get("", response_model=List[CaseResponse])
def list_cases(
    status_filter: Optional[CaseStatus] = Query(None, alias="status", description="Filter by status"),
    cases: CaseService = Depends(get_case_service),
):
    return cases.list_cases(status_filter)


@router.get("/stats", response_model=CaseStats)
def case_stats(cases: CaseService = Depends(get_case_service)):
    """Counts for the war-room dashboard."""
    return cases.get_stats()


@router.get("/{case_id}", response_model=CaseResponse)
def get_case(case_id: str, cases: CaseService = Depends(get_case_service)):
    return cases.get_case(case_id)


@router.post("/{case_id}/accept", response_model=CaseResponse)
def accept_case(
    case_id: str,
    request: AcceptRequest,
    coordinator: ClaimCoordinator = Depends(get_claim_coordinator),
):
    """Claim a waiting case. 409 if another officer got there first."""
    updated = coordinator.accept(case_id, request.officer_name, request.officer_contact)
    return to_case_response(case_id, updated)


@router.post("/{case_id}/complete", response_model=CaseResponse)
def complete_case(
    case_id: str,
    request: Optional[TransitionRequest] = None,
    coordinator: ClaimCoordinator = Depends(get_claim_coordinator),
):
    request = request or TransitionRequest()
    updated = coordinator.complete(case_id, changed_by=request.changed_by or "officer", note=request.note)
    return to_case_response(case_id, updated)


@router.post("/{case_id}/recovery", response_model=CaseResponse)
def mark_recovery(
    case_id: str,
    request: Optional[TransitionRequest] = None,
    coordinator: ClaimCoordinator = Depends(get_claim_coordinator),
):
    """Flag an in-progress case for body recovery. Cannot be undone."""
    request = request or TransitionRequest()
    updated = coordinator.mark_recovery(case_id, changed_by=request.changed_by or "officer", note=request.note)
    return to_case_response(case_id, updated)


@router.post("/{case_id}/recovery/finish", status_code=status.HTTP_200_OK)
def finish_recovery(
    case_id: str,
    request: Optional[TransitionRequest] = None,
    coordinator: ClaimCoordinator = Depends(get_claim_coordinator),
):
    """Close a recovery case. The case document is deleted."""
    request = request or TransitionRequest()
    coordinator.finish_recovery(case_id, changed_by=request.changed_by or "officer")
    return {"id": case_id, "deleted": True}
