import pytest

from flood_rescue.core.errors import NoModelAvailable
from flood_rescue.core.settings import Settings
from flood_rescue.services.ai.base import GenerativeModelClient
from flood_rescue.services.ai.mock_provider import MockModelClient
from flood_rescue.services.ai.selector import ModelSelector, build_model_client, candidates_for

from tests.conftest import FakeModelClient


def test_first_responsive_candidate_is_selected_and_cached():
    client = FakeModelClient(failing_models={"model-a"})
    selector = ModelSelector(client)

    handle = selector.select(["model-a", "model-b"])

    assert handle.model_id == "model-b"
    assert client.probed == ["model-a", "model-b"]
    assert selector.failed_candidates == ["model-a"]

    # Later calls reuse the handle without probing anything again
    assert selector.select(["model-a", "model-b"]) is handle
    handle.generate("prompt")
    assert client.probed == ["model-a", "model-b"]
    assert [call[0] for call in client.invocations] == ["model-b"]


def test_scan_stops_at_first_success():
    client = FakeModelClient()
    handle = ModelSelector(client).select(["model-a", "model-b", "model-c"])

    assert handle.model_id == "model-a"
    assert client.probed == ["model-a"]


def test_exhausted_candidates_raise_no_model_available():
    client = FakeModelClient(failing_models={"model-a", "model-b"})
    selector = ModelSelector(client)

    with pytest.raises(NoModelAvailable) as exc_info:
        selector.select(["model-a", "model-b"])

    assert exc_info.value.candidates == ["model-a", "model-b"]
    assert selector.handle is None


def test_mock_backend_when_ai_disabled():
    settings = Settings(AI_ENABLED=False, AI_PROVIDER="gemini")
    client = build_model_client(settings)

    assert isinstance(client, MockModelClient)
    assert candidates_for(client, settings) == [MockModelClient.MODEL_ID]


def test_gemini_backend_requires_api_key():
    with pytest.raises(ValueError):
        build_model_client(Settings(AI_PROVIDER="gemini", GEMINI_API_KEY=None))


def test_unknown_provider_is_rejected():
    with pytest.raises(ValueError):
        build_model_client(Settings(AI_PROVIDER="llama"))


def test_model_candidates_are_parsed_in_order():
    settings = Settings(MODEL_CANDIDATES=" gemini-flash-latest, gemini-2.5-pro ,,")
    assert settings.model_candidates == ["gemini-flash-latest", "gemini-2.5-pro"]


def test_minimal_backend_can_be_selected():
    class EchoClient(GenerativeModelClient):
        provider_name = "echo"

        def probe(self, model_id):
            pass

        def invoke(self, model_id, prompt, image_bytes=None, mime_type="image/jpeg"):
            return prompt

    handle = ModelSelector(EchoClient()).select(["echo-1"])

    assert handle.generate("ping") == "ping"
    assert handle.get_model_info() == {"provider": "echo", "name": "echo-1"}
