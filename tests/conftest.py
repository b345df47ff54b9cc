import base64
import json
import logging
import threading
from typing import List, Optional

import pytest

from flood_rescue.core.errors import ModelCallError
from flood_rescue.services.ai.base import GenerativeModelClient, ModelHandle
from flood_rescue.store.memory import MemoryCollection

logging.getLogger("flood_rescue").setLevel(logging.DEBUG)

JPEG_BYTES = b"\xff\xd8\xff\xe0fake-jpeg-payload"
PHOTO_DATA_URL = "data:image/jpeg;base64," + base64.b64encode(JPEG_BYTES).decode()

HIGH_RISK_RESPONSE = json.dumps(
    {"risk_score": 7, "priority": "High", "summary": "น้ำถึงเอว มีผู้สูงอายุ", "needs": ["เรือ", "ยา"]},
    ensure_ascii=False,
)


class FakeModelClient(GenerativeModelClient):
    """Scripted model backend that records every probe and invocation."""

    provider_name = "fake"

    def __init__(self, responses=None, failing_models=(), gate: Optional[threading.Event] = None):
        self.responses = list(responses or [HIGH_RISK_RESPONSE])
        self.failing_models = set(failing_models)
        self.gate = gate
        self.probed: List[str] = []
        self.invocations: List[tuple] = []
        self._lock = threading.Lock()

    def probe(self, model_id: str) -> None:
        with self._lock:
            self.probed.append(model_id)
        if model_id in self.failing_models:
            raise ModelCallError(f"{model_id} is down")

    def invoke(self, model_id, prompt, image_bytes=None, mime_type="image/jpeg"):
        with self._lock:
            index = len(self.invocations)
            self.invocations.append((model_id, prompt, image_bytes, mime_type))
            response = self.responses[min(index, len(self.responses) - 1)]
        if self.gate is not None:
            self.gate.wait(timeout=5)
        if isinstance(response, Exception):
            raise response
        return response


def make_case(store, **overrides) -> str:
    data = {
        "name": "สมชาย",
        "contact": "0812345678",
        "description": "น้ำท่วมถึงเอว มีผู้สูงอายุ",
        "image_url": PHOTO_DATA_URL,
        "people_count": 3,
        "water_level": "เอว",
        "reporter_type": "ผู้ประสบภัย",
        "location": {"lat": 13.75, "lng": 100.5},
        "address": {"province": "กรุงเทพมหานคร", "district": "", "subdistrict": "", "details": ""},
        "status": "waiting",
        "is_black_case": False,
    }
    data.update(overrides)
    return store.create(data)


@pytest.fixture
def cases_store():
    return MemoryCollection("requests")


@pytest.fixture
def centers_store():
    return MemoryCollection("evacuation_centers")


@pytest.fixture
def fake_client():
    return FakeModelClient()


@pytest.fixture
def handle(fake_client):
    return ModelHandle(fake_client, "gemini-test")
