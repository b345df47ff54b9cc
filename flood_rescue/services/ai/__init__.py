"""
AI Plug-in Architecture for flood triage.

Model backends are swappable; the selector binds one model at startup.
"""

from flood_rescue.services.ai.base import GenerativeModelClient, ModelHandle
from flood_rescue.services.ai.gemini_rest_provider import GeminiRestModelClient
from flood_rescue.services.ai.mock_provider import MockModelClient
from flood_rescue.services.ai.selector import ModelSelector, build_model_client

__all__ = [
    "GeminiRestModelClient",
    "GenerativeModelClient",
    "MockModelClient",
    "ModelHandle",
    "ModelSelector",
    "build_model_client",
]
