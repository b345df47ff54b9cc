"""
Mock Model Client - Fallback backend when AI is disabled.

Provides rule-based flood triage without external AI calls.
Always available and never fails; the image part is ignored.
"""

from typing import List, Optional
import json
import logging

from flood_rescue.services.ai.base import GenerativeModelClient
from flood_rescue.services.ai.prompts import extract_description

logger = logging.getLogger(__name__)


# (keywords, base risk) checked from deepest water level down
WATER_LEVEL_RULES = [
    (["มิดหัว", "หลังคา", "roof", "over head"], 9),
    (["ถึงอก", "ระดับอก", "ถึงคอ", "chest", "neck"], 7),
    (["เอว", "waist"], 5),
    (["เข่า", "knee"], 3),
    (["ข้อเท้า", "ankle"], 2),
]
VULNERABLE_KEYWORDS = [
    "ผู้สูงอายุ", "คนแก่", "คุณยาย", "คุณตา", "เด็ก", "ทารก", "ผู้ป่วย", "ติดเตียง",
    "ตั้งครรภ์", "คนพิการ", "elderly", "child", "baby", "patient", "bedridden", "pregnant",
]
URGENT_KEYWORDS = ["ด่วน", "ติดอยู่", "ช่วยด้วย", "urgent", "trapped", "help"]
NEED_RULES = [
    (["ต้องการยา", "ขาดยา", "ผู้ป่วย", "ติดเตียง", "medicine", "patient"], "ยา"),
    (["อาหาร", "หิว", "food", "hungry"], "อาหาร"),
    (["น้ำดื่ม", "drinking water"], "น้ำดื่ม"),
    (["ไฟฟ้า", "ไฟดับ", "power"], "ไฟฉาย"),
]
DEFAULT_RISK = 3


class MockModelClient(GenerativeModelClient):
    """
    Keyword-rule triage backend.

    This is the backend when:
    - AI is disabled in config
    - AI_PROVIDER=mock for local development
    """

    provider_name = "mock"
    MODEL_ID = "mock-rules-v1"

    def __init__(self):
        logger.info(f"✅ Mock model client initialized: {self.MODEL_ID}")

    def probe(self, model_id: str) -> None:
        return None

    def invoke(
        self,
        model_id: str,
        prompt: str,
        image_bytes: Optional[bytes] = None,
        mime_type: str = "image/jpeg",
    ) -> str:
        description = extract_description(prompt)
        text = description.lower()

        # 1. BASE RISK FROM WATER LEVEL
        risk = DEFAULT_RISK
        for keywords, level_risk in WATER_LEVEL_RULES:
            if any(word in text for word in keywords):
                risk = level_risk
                break

        # 2. ADJUST FOR PEOPLE AT RISK
        if any(word in text for word in VULNERABLE_KEYWORDS):
            risk += 2
        if any(word in text for word in URGENT_KEYWORDS):
            risk += 1
        risk = max(0, min(10, risk))

        if risk >= 7:
            priority = "High"
        elif risk >= 4:
            priority = "Medium"
        else:
            priority = "Low"

        # 3. NEEDS
        needs: List[str] = []
        if risk >= 5:
            needs.append("เรือ")
        for keywords, need in NEED_RULES:
            if any(word in text for word in keywords) and need not in needs:
                needs.append(need)
        if not needs:
            needs.append("อาหาร")

        # 4. SUMMARY
        summary = description.strip() or "ไม่มีรายละเอียด"
        if len(summary) > 60:
            summary = summary[:57] + "..."

        return json.dumps(
            {"risk_score": risk, "priority": priority, "summary": summary, "needs": needs},
            ensure_ascii=False,
        )
