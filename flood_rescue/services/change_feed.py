"""
Change-Feed Dispatcher

Subscribes to the case collection and hands newly added, untriaged cases to
the Triage Analyzer.

Eligibility (status == waiting AND no ai_analysis) is re-checked against the
authoritative document inside the worker, never against the event payload,
because the feed may redeliver stale snapshots. This is a best-effort guard:
two dispatchers can still both pass it, which is why the analyzer's write is
conditional.
"""

from concurrent.futures import Future, ThreadPoolExecutor
from typing import Any, Dict, Optional, Set
import logging
import threading

from flood_rescue.core.errors import StoreUnavailable
from flood_rescue.models.case import CaseStatus, normalize_status
from flood_rescue.services.triage_analyzer import TRIAGE_FIELD, TriageAnalyzer
from flood_rescue.store.base import ChangeType, DocumentStore, StoreEvent, Subscription

logger = logging.getLogger(__name__)


def is_eligible_for_triage(case: Optional[Dict[str, Any]]) -> bool:
    if not case:
        return False
    return normalize_status(case.get("status")) == CaseStatus.WAITING.value and not case.get(TRIAGE_FIELD)


class ChangeFeedDispatcher:
    def __init__(
        self,
        store: DocumentStore,
        analyzer: TriageAnalyzer,
        executor: Optional[ThreadPoolExecutor] = None,
        max_workers: int = 32,
    ):
        self.store = store
        self.analyzer = analyzer
        self._owns_executor = executor is None
        self.executor = executor or ThreadPoolExecutor(
            max_workers=max_workers, thread_name_prefix="triage"
        )
        self._subscription: Optional[Subscription] = None
        self._in_flight: Set[str] = set()
        self._in_flight_lock = threading.Lock()
        self.dispatched_count = 0

    def start(self) -> None:
        if self._subscription is not None:
            return
        self._subscription = self.store.subscribe(self.on_event)
        logger.info("👀 Dispatcher ready, waiting for new cases...")

    def stop(self, wait: bool = False) -> None:
        if self._subscription is not None:
            self._subscription.unsubscribe()
            self._subscription = None
        if self._owns_executor:
            self.executor.shutdown(wait=wait)

    def on_event(self, event: StoreEvent) -> Optional[Future]:
        """
        Subscription callback. Only ADDED events matter; work is handed to the
        pool so the delivery thread is never blocked by a model call.
        """
        if event.type != ChangeType.ADDED:
            return None
        # Cheap pre-filter on the snapshot; the real decision is made after re-reading
        if event.data and event.data.get(TRIAGE_FIELD):
            return None
        try:
            return self.executor.submit(self.dispatch, event.doc_id)
        except RuntimeError as e:
            # Executor already shut down
            logger.warning(f"Dropping event for {event.doc_id}: {e}")
            return None

    def dispatch(self, case_id: str) -> bool:
        """
        Re-read the case and run the analyzer if it is still eligible.

        Returns True when the analyzer was invoked. Never raises.
        """
        with self._in_flight_lock:
            if case_id in self._in_flight:
                logger.debug(f"Case {case_id} already being analyzed, ignoring redelivery")
                return False
            self._in_flight.add(case_id)

        try:
            try:
                case = self.store.get(case_id)
            except StoreUnavailable as e:
                logger.warning(f"⚠️ Could not read case {case_id}, waiting for redelivery: {e}")
                return False

            if case is None:
                logger.info(f"Case {case_id} no longer exists, skipping")
                return False
            if not is_eligible_for_triage(case):
                return False

            logger.info(f"🔔 New case: {case.get('name') or case_id}")
            with self._in_flight_lock:
                self.dispatched_count += 1
            self.analyzer.analyze(case_id, case)
            return True
        except Exception as e:
            logger.error(f"❌ Unexpected error dispatching case {case_id}: {e}", exc_info=True)
            return False
        finally:
            with self._in_flight_lock:
                self._in_flight.discard(case_id)
