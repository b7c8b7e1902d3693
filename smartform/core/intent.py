"""
Keyword-based intent pre-filter.

Decides locally, without calling the LLM, whether a message asks to
borrow equipment. Both a request verb and an equipment noun must appear.
"""

import re

THAI_REQUEST_KEYWORDS = (
    "ขอยืม",
    "ต้องการยืม",
    "ยืม",
    "ขอ",
    "ต้องการ",
    "จอง",
    "ขอจอง",
    "ใช้",
    "ต้องการใช้",
    "ขอใช้",
)

ENGLISH_REQUEST_KEYWORDS = (
    "borrow",
    "want to borrow",
    "need",
    "request",
    "book",
    "reserve",
    "use",
    "want to use",
    "need to use",
    "can i",
    "could i",
    "may i",
)

EQUIPMENT_KEYWORDS = (
    "โน้ตบุ๊ก",
    "โน้ตบุ๊ค",
    "แล็ปท็อป",
    "คอมพิวเตอร์",
    "notebook",
    "laptop",
    "computer",
    "โปรเจคเตอร์",
    "โปรเจ็คเตอร์",
    "เครื่องฉาย",
    "projector",
    "หับ",
    "ฮับ",
    "hub",
    "เราท์เตอร์",
    "router",
    "เมาส์",
    "mouse",
    "จอ",
    "มอนิเตอร์",
    "monitor",
    "screen",
    "dock",
    "hdd",
    "hdmi",
)


# English verbs must start a word ("use" must not match "mouse")
_ENGLISH_REQUEST_PATTERN = re.compile(
    r"\b(?:" + "|".join(re.escape(k) for k in ENGLISH_REQUEST_KEYWORDS) + r")",
    re.IGNORECASE,
)


def has_request_keyword(text: str) -> bool:
    """True if the text contains any request verb (Thai or English)."""
    return any(k in text for k in THAI_REQUEST_KEYWORDS) or bool(
        _ENGLISH_REQUEST_PATTERN.search(text)
    )


def has_equipment_keyword(text: str) -> bool:
    """True if the text mentions any known equipment noun."""
    lowered = text.lower()
    return any(k.lower() in lowered for k in EQUIPMENT_KEYWORDS)


def is_equipment_request(text: str) -> bool:
    """Classify a message as an equipment-borrowing request.

    Args:
        text: The raw user message.

    Returns:
        True iff the message contains at least one request keyword AND at
        least one equipment keyword.
    """
    if not text:
        return False
    return has_request_keyword(text) and has_equipment_keyword(text)
