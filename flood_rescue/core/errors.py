"""
Domain errors for the incident lifecycle and triage engine.

Services raise these; the HTTP layer maps them to status codes in main.py.
"""

from typing import Optional


class FloodRescueError(Exception):
    """Base class for all domain errors."""


class CaseNotFound(FloodRescueError):
    def __init__(self, case_id: str):
        self.case_id = case_id
        super().__init__(f"Case {case_id} not found")


class CenterNotFound(FloodRescueError):
    def __init__(self, center_id: str):
        self.center_id = center_id
        super().__init__(f"Evacuation center {center_id} not found")


class InvalidTransition(FloodRescueError):
    """
    A transition was requested from a source state that does not allow it.

    Carries the state actually stored so the officer's client can re-render it
    instead of pretending the action succeeded.
    """

    def __init__(
        self,
        case_id: str,
        action: str,
        current_status: Optional[str],
        is_black_case: bool,
        reason: str,
    ):
        self.case_id = case_id
        self.action = action
        self.current_status = current_status
        self.is_black_case = is_black_case
        self.reason = reason
        super().__init__(
            f"Cannot {action} case {case_id}: {reason} "
            f"(status={current_status}, is_black_case={is_black_case})"
        )


class TransitionConflict(FloodRescueError):
    """
    The source state was valid when read but changed before the write landed.

    Typically another officer won the race. Callers must re-read, not retry.
    """

    def __init__(self, case_id: str, action: str):
        self.case_id = case_id
        self.action = action
        super().__init__(
            f"Case {case_id} was already handled by someone else; {action} not applied"
        )


class StoreUnavailable(FloodRescueError):
    """The document store could not be reached or rejected the call."""


class NoModelAvailable(FloodRescueError):
    """None of the configured model candidates answered the startup probe."""

    def __init__(self, candidates):
        self.candidates = list(candidates)
        super().__init__(f"No AI model available among candidates: {self.candidates}")


class ModelCallError(FloodRescueError):
    """A model probe or invocation failed (network, quota, timeout)."""
