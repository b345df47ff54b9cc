"""
Triage Analyzer

Scores a case from its photo and description with the selected model and
attaches the result to the case.

GUARANTEES:
- Writes ONLY the ai_analysis field
- NEVER touches status, assignment or the recovery flag
- One model call per analyze(); parse failures are not retried
- Never raises: every failure becomes a SkipReason
"""

from enum import Enum
from typing import Any, Dict, Optional, Tuple, Union
import base64
import binascii
import json
import logging
import re

from pydantic import ValidationError

from flood_rescue.core.errors import ModelCallError, StoreUnavailable
from flood_rescue.models.case import TriageResult, normalize_case
from flood_rescue.services.ai.base import ModelHandle
from flood_rescue.services.ai.prompts import build_triage_prompt
from flood_rescue.store.base import DocumentNotFound, DocumentStore, WriteConflict

logger = logging.getLogger(__name__)

TRIAGE_FIELD = "ai_analysis"
DEFAULT_IMAGE_MIME = "image/jpeg"

_CODE_FENCE_RE = re.compile(r"```(?:json|JSON)?")
_DATA_URL_RE = re.compile(r"^data:(?P<mime>[\w/+.-]+)?(?:;[\w=-]+)*;base64,(?P<data>.*)$", re.S)


class SkipReason(str, Enum):
    NO_PHOTO = "no_photo"
    INVALID_PHOTO = "invalid_photo"
    MODEL_ERROR = "model_error"
    MALFORMED_RESPONSE = "malformed_response"
    ALREADY_ANALYZED = "already_analyzed"
    CASE_GONE = "case_gone"
    STORE_ERROR = "store_error"


def decode_photo(image_url: str) -> Tuple[bytes, str]:
    """
    Decode a stored photo into (bytes, mime type).

    Accepts a data URL or a bare base64 payload.

    Raises:
        ValueError: payload is not valid base64 or is empty
    """
    mime_type = DEFAULT_IMAGE_MIME
    payload = image_url.strip()

    match = _DATA_URL_RE.match(payload)
    if match:
        mime_type = match.group("mime") or DEFAULT_IMAGE_MIME
        payload = match.group("data")

    try:
        image_bytes = base64.b64decode(payload, validate=True)
    except (binascii.Error, ValueError) as e:
        raise ValueError(f"photo is not valid base64: {e}") from e
    if not image_bytes:
        raise ValueError("photo is empty")
    return image_bytes, mime_type


def strip_code_fences(text: str) -> str:
    return _CODE_FENCE_RE.sub("", text).strip()


def parse_triage_response(text: str) -> TriageResult:
    """
    Strictly decode a model response.

    Raises:
        ValueError: not JSON, not an object, or not matching the schema
    """
    cleaned = strip_code_fences(text)
    try:
        payload = json.loads(cleaned)
    except json.JSONDecodeError as e:
        raise ValueError(f"response is not JSON: {e}") from e

    if not isinstance(payload, dict):
        raise ValueError(f"response is {type(payload).__name__}, expected an object")

    try:
        return TriageResult.model_validate(payload)
    except ValidationError as e:
        raise ValueError(f"response does not match triage schema: {e.errors()}") from e


class TriageAnalyzer:
    """
    Attaches risk data to one case.

    The analyzer is not idempotent on its own; the dispatcher's eligibility
    guard decides whether a case reaches it. The final write is conditional on
    ai_analysis still being absent, so a lost dispatch race costs one extra
    model call but never a second write.
    """

    def __init__(self, store: DocumentStore, handle: ModelHandle):
        self.store = store
        self.handle = handle

    def analyze(self, case_id: str, case: Dict[str, Any]) -> Union[TriageResult, SkipReason]:
        case = normalize_case(case)
        label = case.get("name") or case_id

        # 1. PHOTO IS REQUIRED
        image_url = case.get("image_url")
        if not image_url:
            logger.info(f"   ⚠️ Case {case_id} ({label}) has no photo, skipping")
            return SkipReason.NO_PHOTO

        try:
            image_bytes, mime_type = decode_photo(image_url)
        except ValueError as e:
            logger.warning(f"   ⚠️ Case {case_id} photo unreadable, skipping: {e}")
            return SkipReason.INVALID_PHOTO

        # 2. PROMPT + 3. MODEL CALL
        prompt = build_triage_prompt(case.get("description", ""))
        logger.info(f"   ...analyzing case {case_id} ({label}) with {self.handle.model_id}")
        try:
            response_text = self.handle.generate(prompt, image_bytes, mime_type)
        except ModelCallError as e:
            logger.error(f"❌ Model call failed for case {case_id}: {e}")
            return SkipReason.MODEL_ERROR

        # 4. STRICT DECODE
        try:
            result = parse_triage_response(response_text)
        except ValueError as e:
            logger.error(f"❌ Malformed model response for case {case_id}: {e}")
            return SkipReason.MALFORMED_RESPONSE

        # 5. WRITE ONLY THE TRIAGE FIELD
        try:
            self.store.update(
                case_id,
                {TRIAGE_FIELD: result.model_dump(mode="json")},
                expected={TRIAGE_FIELD: None},
            )
        except WriteConflict:
            logger.info(f"   Case {case_id} was analyzed concurrently, keeping the existing result")
            return SkipReason.ALREADY_ANALYZED
        except DocumentNotFound:
            logger.info(f"   Case {case_id} was removed during analysis")
            return SkipReason.CASE_GONE
        except StoreUnavailable as e:
            logger.error(f"❌ Could not store triage result for case {case_id}: {e}")
            return SkipReason.STORE_ERROR

        logger.info(f"✅ Triage done for {case_id}: risk {result.risk_score}/10 {result.priority.value} ({result.summary})")
        return result
