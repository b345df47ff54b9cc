"""
Gemini REST Model Client - calls the generateContent HTTP endpoint directly.

Used with AI_PROVIDER=gemini_rest, e.g. behind an egress proxy where the SDK's
gRPC transport is blocked. Same contract as the SDK client: bounded timeout,
every failure surfaces as ModelCallError.
"""

from typing import Any, Dict, List, Optional
import base64
import logging

import requests

from flood_rescue.core.errors import ModelCallError
from flood_rescue.services.ai.base import GenerativeModelClient

logger = logging.getLogger(__name__)

DEFAULT_API_BASE_URL = "https://generativelanguage.googleapis.com/v1beta"


class GeminiRestModelClient(GenerativeModelClient):
    provider_name = "gemini_rest"
    PROBE_PROMPT = "Test Connection"

    def __init__(
        self,
        api_key: Optional[str],
        timeout_seconds: float = 30.0,
        base_url: str = DEFAULT_API_BASE_URL,
        session: Optional[requests.Session] = None,
    ):
        if not api_key or not api_key.strip():
            raise ValueError("GEMINI_API_KEY is not configured")
        self.api_key = api_key
        self.timeout_seconds = timeout_seconds
        self.base_url = base_url.rstrip("/")
        self.session = session or requests.Session()
        logger.info(f"✅ Gemini REST model client initialized ({self.base_url})")

    def _url(self, model_id: str) -> str:
        return f"{self.base_url}/models/{model_id}:generateContent"

    def _post(self, model_id: str, parts: List[Dict[str, Any]]) -> str:
        payload = {"contents": [{"parts": parts}]}
        try:
            response = self.session.post(
                self._url(model_id),
                params={"key": self.api_key},
                json=payload,
                timeout=self.timeout_seconds,
            )
        except requests.RequestException as e:
            raise ModelCallError(f"Gemini REST call to {model_id} failed: {e}") from e

        if response.status_code != 200:
            raise ModelCallError(
                f"Gemini REST API returned status {response.status_code} for {model_id}: {response.text[:200]}"
            )

        try:
            data = response.json()
            text = data["candidates"][0]["content"]["parts"][0].get("text", "")
        except (ValueError, KeyError, IndexError, TypeError) as e:
            raise ModelCallError(f"Gemini REST response for {model_id} has no text: {e}") from e

        if not text or not text.strip():
            raise ModelCallError(f"Gemini model {model_id} returned an empty response")
        return text

    def probe(self, model_id: str) -> None:
        self._post(model_id, [{"text": self.PROBE_PROMPT}])

    def invoke(
        self,
        model_id: str,
        prompt: str,
        image_bytes: Optional[bytes] = None,
        mime_type: str = "image/jpeg",
    ) -> str:
        parts: List[Dict[str, Any]] = [{"text": prompt}]
        if image_bytes is not None:
            parts.append({
                "inline_data": {
                    "mime_type": mime_type,
                    "data": base64.b64encode(image_bytes).decode("ascii"),
                }
            })
        return self._post(model_id, parts)
