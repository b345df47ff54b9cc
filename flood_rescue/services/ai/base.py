"""
Generative Model Client Base Interface.

Defines the contract for model backends used by triage.
A backend knows how to probe and invoke models by ID; a ModelHandle binds a
backend to the one model chosen at startup.
"""

from abc import ABC, abstractmethod
from typing import Dict, Optional
import logging

logger = logging.getLogger(__name__)


class GenerativeModelClient(ABC):
    """
    Abstract base class for generative model backends.

    Implementations raise ModelCallError on any failure (network, quota,
    timeout, empty response) and never return partial text.
    """

    provider_name: str = "unknown"

    @abstractmethod
    def probe(self, model_id: str) -> None:
        """
        Issue a minimal test invocation.

        Raises:
            ModelCallError: if the model does not answer
        """
        pass

    @abstractmethod
    def invoke(
        self,
        model_id: str,
        prompt: str,
        image_bytes: Optional[bytes] = None,
        mime_type: str = "image/jpeg",
    ) -> str:
        """
        Invoke the model with a text prompt and an optional image part.

        Returns:
            The raw text of the response

        Raises:
            ModelCallError: on failure or timeout
        """
        pass


class ModelHandle:
    """A backend bound to a single selected model."""

    def __init__(self, client: GenerativeModelClient, model_id: str):
        self.client = client
        self.model_id = model_id

    def generate(self, prompt: str, image_bytes: Optional[bytes] = None, mime_type: str = "image/jpeg") -> str:
        return self.client.invoke(self.model_id, prompt, image_bytes, mime_type)

    def get_model_info(self) -> Dict[str, str]:
        return {
            "provider": self.client.provider_name,
            "name": self.model_id,
        }

    def __repr__(self):
        return f"ModelHandle({self.client.provider_name}:{self.model_id})"
