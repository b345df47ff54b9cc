"""
Triage prompt template.

The prompt is written in Thai for the rescue team's audience and asks for a
bare JSON object. Summary and needs come back localized.
"""

import re

TRIAGE_PROMPT_TEMPLATE = """คุณคือเจ้าหน้าที่กู้ภัย AI
ดูรูปภาพและข้อมูล: "{description}"

ประเมินความเสี่ยงและตอบเป็น JSON เท่านั้น (ห้ามมี markdown):
{{
  "risk_score": (จำนวนเต็ม 0-10, 10 คือวิกฤตที่สุด),
  "priority": ("High" หรือ "Medium" หรือ "Low"),
  "summary": (สรุปสั้นๆ ภาษาไทย ไม่เกิน 10 คำ),
  "needs": [(อาเรย์สิ่งที่คาดว่าต้องการ เช่น เรือ, อาหาร, ยา)]
}}"""

_DESCRIPTION_RE = re.compile(r'ดูรูปภาพและข้อมูล: "(.*?)"\n', re.S)


def build_triage_prompt(description: str) -> str:
    # Quotes would break the delimiter the model (and extract_description) rely on
    cleaned = (description or "").replace('"', "'").strip()
    return TRIAGE_PROMPT_TEMPLATE.format(description=cleaned)


def extract_description(prompt: str) -> str:
    """Recover the reporter description from a built triage prompt."""
    match = _DESCRIPTION_RE.search(prompt)
    return match.group(1) if match else ""
