"""
Request-scoped access to the services wired by create_app().
"""

from fastapi import HTTPException, Request, status

from flood_rescue.services.capacity_ledger import CapacityLedger
from flood_rescue.services.case_service import CaseService
from flood_rescue.services.claim_coordinator import ClaimCoordinator


def _service(request: Request, name: str):
    service = getattr(request.app.state, name, None)
    if service is None:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Database not initialized. Please check Firebase configuration.",
        )
    return service


def get_case_service(request: Request) -> CaseService:
    return _service(request, "case_service")


def get_claim_coordinator(request: Request) -> ClaimCoordinator:
    return _service(request, "claim_coordinator")


def get_capacity_ledger(request: Request) -> CapacityLedger:
    return _service(request, "capacity_ledger")
