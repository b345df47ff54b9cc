"""
Triage Worker - background lifecycle for automated triage.

Startup sequence (runs once, off the request path):
1. Probe model candidates and bind the first responder
2. Build the analyzer around that handle
3. Subscribe the dispatcher to the case change feed

If no model answers, triage halts but the process keeps serving HTTP.
"""

from enum import Enum
from typing import Any, Dict, Optional, Sequence
import logging
import threading

from flood_rescue.core.errors import NoModelAvailable
from flood_rescue.services.ai.base import GenerativeModelClient
from flood_rescue.services.ai.selector import ModelSelector
from flood_rescue.services.change_feed import ChangeFeedDispatcher
from flood_rescue.services.triage_analyzer import TriageAnalyzer
from flood_rescue.store.base import DocumentStore

logger = logging.getLogger(__name__)


class WorkerState(str, Enum):
    DISABLED = "disabled"
    STARTING = "starting"
    RUNNING = "running"
    MODEL_UNAVAILABLE = "model_unavailable"
    FAILED = "failed"
    STOPPED = "stopped"


class TriageWorker:
    def __init__(
        self,
        store: DocumentStore,
        client: GenerativeModelClient,
        candidates: Sequence[str],
        max_workers: int = 32,
    ):
        self.store = store
        self.selector = ModelSelector(client)
        self.candidates = list(candidates)
        self.max_workers = max_workers
        self.dispatcher: Optional[ChangeFeedDispatcher] = None
        self.state = WorkerState.STARTING
        self.error: Optional[str] = None
        self._thread: Optional[threading.Thread] = None
        self._lock = threading.Lock()

    def start(self) -> WorkerState:
        """Run the startup sequence on the calling thread."""
        logger.info("🚀 Starting AI triage worker...")
        try:
            handle = self.selector.select(self.candidates)
        except NoModelAvailable as e:
            self.error = str(e)
            self.state = WorkerState.MODEL_UNAVAILABLE
            return self.state

        with self._lock:
            if self.state == WorkerState.STOPPED:
                return self.state
            try:
                analyzer = TriageAnalyzer(self.store, handle)
                self.dispatcher = ChangeFeedDispatcher(self.store, analyzer, max_workers=self.max_workers)
                self.dispatcher.start()
            except Exception as e:
                logger.error(f"❌ Triage worker failed to start: {e}", exc_info=True)
                self.error = str(e)
                self.state = WorkerState.FAILED
                return self.state
            self.state = WorkerState.RUNNING
        return self.state

    def start_in_background(self) -> threading.Thread:
        """Probing can take seconds per candidate, so startup runs on its own thread."""
        self._thread = threading.Thread(target=self.start, name="triage-startup", daemon=True)
        self._thread.start()
        return self._thread

    def stop(self) -> None:
        with self._lock:
            if self.dispatcher is not None:
                self.dispatcher.stop()
                self.dispatcher = None
            self.state = WorkerState.STOPPED
        logger.info("Triage worker stopped")

    def status(self) -> Dict[str, Any]:
        handle = self.selector.handle
        return {
            "state": self.state.value,
            "model": handle.get_model_info() if handle else None,
            "failed_candidates": list(self.selector.failed_candidates),
            "dispatched": self.dispatcher.dispatched_count if self.dispatcher else 0,
            "error": self.error,
        }
