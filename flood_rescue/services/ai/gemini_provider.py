"""
Gemini Model Client - Google Generative AI backend.

Requires GEMINI_API_KEY. Every call carries a bounded timeout; timeouts and
API errors surface as ModelCallError.
"""

from typing import Dict, Optional
import logging
import threading

import google.generativeai as genai

from flood_rescue.core.errors import ModelCallError
from flood_rescue.services.ai.base import GenerativeModelClient

logger = logging.getLogger(__name__)


class GeminiModelClient(GenerativeModelClient):
    """
    Google Gemini backend.

    GenerativeModel objects are cached per model ID; they are cheap wrappers
    around the shared, thread-safe transport configured by genai.configure().
    """

    provider_name = "gemini"
    PROBE_PROMPT = "Test Connection"

    def __init__(self, api_key: Optional[str], timeout_seconds: float = 30.0):
        if not api_key or not api_key.strip():
            raise ValueError("GEMINI_API_KEY is not configured")
        genai.configure(api_key=api_key)
        self.timeout_seconds = timeout_seconds
        self._models: Dict[str, "genai.GenerativeModel"] = {}
        self._lock = threading.Lock()
        logger.info("✅ Gemini model client initialized")

    def _model(self, model_id: str) -> "genai.GenerativeModel":
        with self._lock:
            model = self._models.get(model_id)
            if model is None:
                model = genai.GenerativeModel(model_id)
                self._models[model_id] = model
            return model

    def _generate(self, model_id: str, contents) -> str:
        try:
            response = self._model(model_id).generate_content(
                contents,
                request_options={"timeout": self.timeout_seconds},
            )
            text = response.text
        except Exception as e:
            # SDK raises a mix of google.api_core errors, ValueError (blocked
            # or empty candidates) and transport timeouts
            raise ModelCallError(f"Gemini call to {model_id} failed: {e}") from e

        if not text or not text.strip():
            raise ModelCallError(f"Gemini model {model_id} returned an empty response")
        return text

    def probe(self, model_id: str) -> None:
        self._generate(model_id, self.PROBE_PROMPT)

    def invoke(
        self,
        model_id: str,
        prompt: str,
        image_bytes: Optional[bytes] = None,
        mime_type: str = "image/jpeg",
    ) -> str:
        contents = [prompt]
        if image_bytes is not None:
            contents.append({"mime_type": mime_type, "data": image_bytes})
        return self._generate(model_id, contents)
