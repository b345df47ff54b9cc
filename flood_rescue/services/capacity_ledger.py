"""
Capacity Ledger - evacuation center occupancy.

Registration appends the resident and increments current_people in ONE
store write (ArrayUnion + Increment on Firestore), so concurrent
registrations are all counted. Capacity is a soft limit: a full shelter is
reported, never refused.
"""

from datetime import datetime, timezone
from typing import Any, Dict, List
import logging
import uuid

from flood_rescue.core.errors import CenterNotFound
from flood_rescue.models.center import CenterCreate, CenterResponse, RegistrationResult, Resident
from flood_rescue.store.base import ArrayAppend, DocumentNotFound, DocumentStore, Increment, SERVER_TIMESTAMP

logger = logging.getLogger(__name__)

DEFAULT_CAPACITY = 100


def to_center_response(center_id: str, data: Dict[str, Any]) -> CenterResponse:
    capacity = int(data.get("capacity") or 0)
    current = int(data.get("current_people") or 0)
    return CenterResponse(
        id=center_id,
        name=data.get("name", ""),
        location=data.get("location"),
        capacity=capacity,
        current_people=current,
        contact=data.get("contact", ""),
        facilities=data.get("facilities") or [],
        residents=data.get("residents") or [],
        created_at=data.get("created_at"),
        available=capacity - current,
        over_capacity=current > capacity,
    )


class CapacityLedger:
    def __init__(self, store: DocumentStore):
        self.store = store

    def create_center(self, center: CenterCreate) -> CenterResponse:
        data = {
            "name": center.name,
            "location": center.location.model_dump(),
            "capacity": center.capacity or DEFAULT_CAPACITY,
            "current_people": 0,
            "contact": center.contact,
            "facilities": [tag.strip() for tag in center.facilities if tag.strip()],
            "residents": [],
            "created_at": SERVER_TIMESTAMP,
        }
        center_id = self.store.create(data)
        logger.info(f"✅ Evacuation center created: {center.name} ({center_id}), capacity {data['capacity']}")
        return self.get_center(center_id)

    def get_center(self, center_id: str) -> CenterResponse:
        data = self.store.get(center_id)
        if data is None:
            raise CenterNotFound(center_id)
        return to_center_response(center_id, data)

    def list_centers(self) -> List[CenterResponse]:
        centers = [to_center_response(center_id, data) for center_id, data in self.store.list()]
        centers.sort(key=lambda c: c.name)
        return centers

    def register(self, center_id: str, name: str, phone: str) -> RegistrationResult:
        """
        Register a resident into a center.

        Raises:
            CenterNotFound: center does not exist
        """
        entry = {
            # Unique per registration so the array union never merges two people
            "resident_id": uuid.uuid4().hex,
            "name": name,
            "phone": phone,
            "registered_at": datetime.now(timezone.utc),
        }

        try:
            self.store.update(
                center_id,
                {
                    "residents": ArrayAppend([entry]),
                    "current_people": Increment(1),
                },
            )
        except DocumentNotFound as e:
            raise CenterNotFound(center_id) from e

        # Post-write read, only used for the soft capacity warning
        center = self.get_center(center_id)
        if center.over_capacity:
            logger.warning(
                f"⚠️ Center {center.name} ({center_id}) over capacity: "
                f"{center.current_people}/{center.capacity}"
            )
        else:
            logger.info(f"✅ Registered {name} at {center.name} ({center.current_people}/{center.capacity})")

        return RegistrationResult(
            center_id=center_id,
            resident=Resident(**entry),
            current_people=center.current_people,
            capacity=center.capacity,
            over_capacity=center.over_capacity,
        )
