"""
Claim Coordinator - officer-facing case state machine.

DESIGN PRINCIPLES:
- No skipping states, no backward transitions
- Recovery (black case) is an orthogonal flag, only settable while in_progress
- Every write is conditional on the source state, evaluated by the store at
  write time, so two officers racing on one case get one success and one
  definite conflict
- Invalid transitions are rejected with the real current state, never no-op'd
- Status changes are logged in status_history
"""

from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, List, Optional
import logging

from flood_rescue.core.errors import CaseNotFound, InvalidTransition, TransitionConflict
from flood_rescue.models.case import LEGACY_STATUSES, CaseStatus, normalize_status
from flood_rescue.store.base import (
    AnyOf,
    ArrayAppend,
    DocumentNotFound,
    DocumentStore,
    SERVER_TIMESTAMP,
    WriteConflict,
)

logger = logging.getLogger(__name__)

NOT_BLACK = AnyOf(False, None)
IN_PROGRESS_ANY = AnyOf(
    CaseStatus.IN_PROGRESS.value,
    *[legacy for legacy, current in LEGACY_STATUSES.items() if current == CaseStatus.IN_PROGRESS.value],
)


class CaseAction(str, Enum):
    ACCEPT = "accept"
    COMPLETE = "complete"
    MARK_RECOVERY = "mark_recovery"
    FINISH_RECOVERY = "finish_recovery"


def case_state(case: Dict[str, Any]):
    """(status, is_black_case) with legacy documents treated as not black."""
    return normalize_status(case.get("status")), bool(case.get("is_black_case"))


def create_status_history_entry(
    from_status: Optional[str],
    to_status: str,
    changed_by: str,
    note: Optional[str] = None,
) -> Dict[str, Any]:
    """
    Status history entry for the audit trail.

    Timestamps are client-side: server timestamps are not allowed inside
    array elements.
    """
    return {
        "from": from_status or "",
        "to": to_status,
        "changed_by": changed_by,
        "timestamp": datetime.now(timezone.utc),
        "note": note or "",
    }


class ClaimCoordinator:
    """
    Strict state machine for case transitions.

    Rules:
    - accept:          waiting → in_progress (records the officer)
    - complete:        in_progress, not black → completed
    - mark_recovery:   in_progress, not black → is_black_case = true
    - finish_recovery: black → document deleted
    """

    ALLOWED_TRANSITIONS: Dict[CaseStatus, List[CaseStatus]] = {
        CaseStatus.WAITING: [CaseStatus.IN_PROGRESS],
        CaseStatus.IN_PROGRESS: [CaseStatus.COMPLETED],
        CaseStatus.COMPLETED: [],  # Terminal state
    }

    # Status move each action needs to be legal. Recovery is only allowed while
    # the case could still be completed.
    ACTION_TARGETS: Dict[CaseAction, CaseStatus] = {
        CaseAction.ACCEPT: CaseStatus.IN_PROGRESS,
        CaseAction.COMPLETE: CaseStatus.COMPLETED,
        CaseAction.MARK_RECOVERY: CaseStatus.COMPLETED,
    }

    def __init__(self, store: DocumentStore):
        self.store = store

    @classmethod
    def is_valid_transition(cls, from_status: Optional[str], to_status: str) -> bool:
        try:
            from_enum = CaseStatus(from_status)
            to_enum = CaseStatus(to_status)
        except ValueError:
            return False
        return to_enum in cls.ALLOWED_TRANSITIONS.get(from_enum, [])

    @classmethod
    def rejection_reason(cls, action: CaseAction, case: Dict[str, Any]) -> Optional[str]:
        """Why `action` is not allowed on `case` right now, or None if it is."""
        status, is_black = case_state(case)

        if action == CaseAction.ACCEPT:
            if not cls.is_valid_transition(status, cls.ACTION_TARGETS[action].value):
                return "case is no longer waiting (already accepted or closed)"
            return None

        if action in (CaseAction.COMPLETE, CaseAction.MARK_RECOVERY):
            if is_black:
                return "case is a recovery case; finish recovery instead"
            if not cls.is_valid_transition(status, cls.ACTION_TARGETS[action].value):
                return "case must be in progress"
            return None

        if action == CaseAction.FINISH_RECOVERY:
            if not is_black:
                return "case is not marked for recovery"
            return None

        return f"unknown action {action}"

    @classmethod
    def allowed_actions(cls, case: Dict[str, Any]) -> List[str]:
        return [action.value for action in CaseAction if cls.rejection_reason(action, case) is None]

    # --- transitions -------------------------------------------------------

    def accept(self, case_id: str, officer_name: str, officer_contact: str) -> Dict[str, Any]:
        """
        Claim a waiting case for an officer.

        Raises:
            CaseNotFound, InvalidTransition, TransitionConflict
        """
        case = self._load_and_check(case_id, CaseAction.ACCEPT)
        from_status, _ = case_state(case)
        self._write(
            case_id,
            CaseAction.ACCEPT,
            {
                "status": CaseStatus.IN_PROGRESS.value,
                "assigned_officer": {
                    "officer_name": officer_name,
                    "officer_contact": officer_contact,
                    "accepted_at": datetime.now(timezone.utc),
                },
                "status_history": ArrayAppend([
                    create_status_history_entry(from_status, CaseStatus.IN_PROGRESS.value, officer_name, "accepted")
                ]),
                "updated_at": SERVER_TIMESTAMP,
            },
            expected={"status": CaseStatus.WAITING.value},
        )
        logger.info(f"✅ Officer {officer_name} accepted case {case_id}")
        return self._reload(case_id)

    def complete(self, case_id: str, changed_by: str = "officer", note: Optional[str] = None) -> Dict[str, Any]:
        case = self._load_and_check(case_id, CaseAction.COMPLETE)
        self._write(
            case_id,
            CaseAction.COMPLETE,
            {
                "status": CaseStatus.COMPLETED.value,
                "status_history": ArrayAppend([
                    create_status_history_entry(case_state(case)[0], CaseStatus.COMPLETED.value, changed_by, note)
                ]),
                "updated_at": SERVER_TIMESTAMP,
            },
            expected={"status": IN_PROGRESS_ANY, "is_black_case": NOT_BLACK},
        )
        logger.info(f"✅ Case {case_id} completed by {changed_by}")
        return self._reload(case_id)

    def mark_recovery(self, case_id: str, changed_by: str = "officer", note: Optional[str] = None) -> Dict[str, Any]:
        """Flag an in-progress case for body recovery. Irreversible."""
        case = self._load_and_check(case_id, CaseAction.MARK_RECOVERY)
        status, _ = case_state(case)
        self._write(
            case_id,
            CaseAction.MARK_RECOVERY,
            {
                "is_black_case": True,
                "status_history": ArrayAppend([
                    create_status_history_entry(status, status, changed_by, note or "marked for recovery")
                ]),
                "updated_at": SERVER_TIMESTAMP,
            },
            expected={"status": IN_PROGRESS_ANY, "is_black_case": NOT_BLACK},
        )
        logger.warning(f"⚫ Case {case_id} marked for recovery by {changed_by}")
        return self._reload(case_id)

    def finish_recovery(self, case_id: str, changed_by: str = "officer") -> None:
        """Close a recovery case by deleting it; it disappears from all feeds."""
        self._load_and_check(case_id, CaseAction.FINISH_RECOVERY)
        try:
            self.store.delete(case_id, expected={"is_black_case": True})
        except DocumentNotFound:
            raise TransitionConflict(case_id, CaseAction.FINISH_RECOVERY.value)
        except WriteConflict:
            raise TransitionConflict(case_id, CaseAction.FINISH_RECOVERY.value)
        logger.info(f"✅ Recovery case {case_id} closed and removed by {changed_by}")

    # --- helpers -----------------------------------------------------------

    def _load(self, case_id: str) -> Dict[str, Any]:
        case = self.store.get(case_id)
        if case is None:
            raise CaseNotFound(case_id)
        return case

    def _load_and_check(self, case_id: str, action: CaseAction) -> Dict[str, Any]:
        case = self._load(case_id)
        reason = self.rejection_reason(action, case)
        if reason:
            status, is_black = case_state(case)
            logger.info(f"Rejected {action.value} on case {case_id}: {reason}")
            raise InvalidTransition(case_id, action.value, status, is_black, reason)
        return case

    def _write(self, case_id: str, action: CaseAction, fields: Dict[str, Any], expected: Dict[str, Any]) -> None:
        try:
            self.store.update(case_id, fields, expected=expected)
        except WriteConflict as e:
            logger.warning(f"⚠️ Lost race on {action.value} for case {case_id}: stored {e.mismatched}")
            raise TransitionConflict(case_id, action.value) from e
        except DocumentNotFound as e:
            raise CaseNotFound(case_id) from e

    def _reload(self, case_id: str) -> Dict[str, Any]:
        case = self._load(case_id)
        case["id"] = case_id
        return case
