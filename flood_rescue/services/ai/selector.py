"""
Model Selector - picks the first responsive model at startup.

Candidates are probed in order; the first that answers is bound to a
ModelHandle and cached for the life of the selector. A model that starts
failing later is not replaced automatically: per-call failures are handled
by the analyzer.
"""

from typing import List, Optional, Sequence
import logging
import threading

from flood_rescue.core.errors import ModelCallError, NoModelAvailable
from flood_rescue.core.settings import Settings
from flood_rescue.services.ai.base import GenerativeModelClient, ModelHandle
from flood_rescue.services.ai.gemini_rest_provider import GeminiRestModelClient
from flood_rescue.services.ai.mock_provider import MockModelClient

logger = logging.getLogger(__name__)


class ModelSelector:
    def __init__(self, client: GenerativeModelClient):
        self.client = client
        self._handle: Optional[ModelHandle] = None
        self._lock = threading.Lock()
        self.failed_candidates: List[str] = []

    @property
    def handle(self) -> Optional[ModelHandle]:
        return self._handle

    def select(self, candidates: Sequence[str]) -> ModelHandle:
        """
        Return a handle to the first candidate whose probe succeeds.

        Once a handle is cached it is returned directly; no candidate is
        probed again.

        Raises:
            NoModelAvailable: every candidate failed (triage must halt)
        """
        with self._lock:
            if self._handle is not None:
                return self._handle

            logger.info(f"🔍 Probing {len(candidates)} model candidate(s) via {self.client.provider_name}")
            for model_id in candidates:
                try:
                    logger.info(f"   ...probing model: {model_id}")
                    self.client.probe(model_id)
                except ModelCallError as e:
                    logger.warning(f"   ⚠️ Model {model_id} unavailable, skipping: {e}")
                    self.failed_candidates.append(model_id)
                    continue

                self._handle = ModelHandle(self.client, model_id)
                logger.info(f"✅ Selected model: {model_id}")
                return self._handle

            logger.error("❌ No AI model answered the probe; triage is disabled for this process")
            raise NoModelAvailable(candidates)


def build_model_client(settings: Settings) -> GenerativeModelClient:
    """Choose the model backend from configuration."""
    provider = settings.AI_PROVIDER.lower()

    if not settings.AI_ENABLED or provider == "mock":
        logger.info("⚠️ AI disabled or mock provider requested, using rule-based triage")
        return MockModelClient()

    if provider == "gemini":
        from flood_rescue.services.ai.gemini_provider import GeminiModelClient
        return GeminiModelClient(settings.GEMINI_API_KEY, timeout_seconds=settings.AI_TIMEOUT_SECONDS)

    if provider == "gemini_rest":
        return GeminiRestModelClient(
            settings.GEMINI_API_KEY,
            timeout_seconds=settings.AI_TIMEOUT_SECONDS,
            base_url=settings.GEMINI_API_BASE_URL,
        )

    raise ValueError(f"Unknown AI_PROVIDER: {settings.AI_PROVIDER}")


def candidates_for(client: GenerativeModelClient, settings: Settings) -> List[str]:
    if isinstance(client, MockModelClient):
        return [MockModelClient.MODEL_ID]
    return settings.model_candidates
