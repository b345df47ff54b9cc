"""
Evacuation center endpoints - shelter registry and resident registration.
"""

from typing import List
import logging

from fastapi import APIRouter, Depends, status

from flood_rescue.models.center import CenterCreate, CenterResponse, RegistrationResult, ResidentRegister
from flood_rescue.routes.deps import get_capacity_ledger
from flood_rescue.services.capacity_ledger import CapacityLedger

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/centers", tags=["Evacuation Centers"])


@router.post("", response_model=CenterResponse, status_code=status.HTTP_201_CREATED)
def create_center(center: CenterCreate, ledger: CapacityLedger = Depends(get_capacity_ledger)):
    return ledger.create_center(center)


@router.get("", response_model=List[CenterResponse])
def list_centers(ledger: CapacityLedger = Depends(get_capacity_ledger)):
    return ledger.list_centers()


@router.get("/{center_id}", response_model=CenterResponse)
def get_center(center_id: str, ledger: CapacityLedger = Depends(get_capacity_ledger)):
    return ledger.get_center(center_id)


@router.post("/{center_id}/residents", response_model=RegistrationResult, status_code=status.HTTP_201_CREATED)
def register_resident(
    center_id: str,
    resident: ResidentRegister,
    ledger: CapacityLedger = Depends(get_capacity_ledger),
):
    """
    Register a resident. Never refused for capacity; `over_capacity` in the
    response tells staff the shelter is past its rated size.
    """
    return ledger.register(center_id, resident.name, resident.phone)
