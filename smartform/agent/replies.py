"""
Static assistant replies.

The responder is a pure function of (is_request, missing fields, locale):
no state beyond what the form and message history already hold. Anything
that needs the LLM (general chat) lives in the graph nodes.
"""

import re
from typing import Any, Sequence

from smartform.core.actions import (
    build_action_for_field,
    build_completion_action,
    build_message_action,
)
from smartform.core.language import Locale
from smartform.core.schema import FormSchema

WELCOME_MESSAGES = {
    Locale.TH: "สวัสดีครับ ระบบช่วยกรอกแบบฟอร์มอัตโนมัติ โปรดแจ้งความประสงค์ของท่านได้เลยครับ",
    Locale.EN: "Hello! This is the automatic form-filling assistant. Please tell me what you need.",
}

REVIEW_MESSAGES = {
    Locale.TH: "ข้อมูลในแบบฟอร์มครบถ้วนแล้วครับ กรุณาตรวจสอบความถูกต้องอีกครั้งก่อนส่งคำขอ",
    Locale.EN: "Form has been updated successfully. Please review and submit your request.",
}

HELP_HINTS = {
    Locale.TH: (
        "ได้เลยครับ ท่านสามารถบอกผมได้เลยว่าต้องการยืมอุปกรณ์อะไร เมื่อไหร่ และใช้ทำอะไร "
        "เช่น 'ขอยืมโน้ตบุ๊ควันจันทร์หน้าสำหรับทำงาน'"
    ),
    Locale.EN: (
        "Of course! You can simply tell me what equipment you need, when you need it, "
        "and what it's for. For example: 'I need to borrow a laptop next Monday for work'."
    ),
}

ERROR_MESSAGES = {
    "timeout": {
        Locale.TH: "คำขอหมดเวลา กรุณาลองใหม่อีกครั้ง",
        Locale.EN: "The request timed out. Please try again.",
    },
    "missing_credential": {
        Locale.TH: "ยังไม่ได้ตั้งค่า API key สำหรับระบบ กรุณาตั้งค่าก่อนใช้งาน",
        Locale.EN: "No API key is configured. Please set one up before continuing.",
    },
    "missing_credential_production": {
        Locale.TH: "ระบบยังไม่พร้อมใช้งาน กรุณาติดต่อผู้ดูแลระบบ",
        Locale.EN: "The assistant is not available. Please contact the administrator.",
    },
    "upstream": {
        Locale.TH: "ขออภัย เกิดข้อผิดพลาดในการประมวลผล กรุณาลองใหม่อีกครั้ง",
        Locale.EN: "Sorry, there was an error processing your request. Please try again.",
    },
    "cancelled": {
        Locale.TH: "ยกเลิกคำขอแล้ว",
        Locale.EN: "The request was cancelled.",
    },
}

# (pattern, reply) checked in order; first match wins
_CANNED_REPLIES: dict[Locale, list[tuple[re.Pattern, str]]] = {
    Locale.TH: [
        (
            re.compile("ขอบคุณ|ขอบใจ"),
            "ยินดีครับ หากต้องการความช่วยเหลือเพิ่มเติม สามารถสอบถามได้เสมอครับ",
        ),
        (
            re.compile("สวัสดี|หวัดดี"),
            "สวัสดีครับ ผมพร้อมช่วยท่านกรอกแบบฟอร์มขอยืมครุภัณฑ์คอมพิวเตอร์ครับ "
            "กรุณาบอกความต้องการของท่าน",
        ),
        (re.compile("ช่วย|ไม่รู้"), HELP_HINTS[Locale.TH]),
    ],
    Locale.EN: [
        (
            re.compile(r"\bthank(s| you)?\b", re.IGNORECASE),
            "You're welcome! Feel free to ask if you need any further assistance.",
        ),
        (
            re.compile(r"\b(hello|hi|hey)\b", re.IGNORECASE),
            "Hello! I'm ready to help you fill out the computer equipment borrowing form. "
            "Please tell me what you need.",
        ),
        (re.compile(r"\bhelp\b", re.IGNORECASE), HELP_HINTS[Locale.EN]),
    ],
}


def welcome_message(locale: Locale = Locale.TH) -> str:
    return WELCOME_MESSAGES[Locale(locale)]


def build_welcome_action(locale: Locale = Locale.TH) -> dict:
    return build_message_action(welcome_message(locale), Locale(locale))


def canned_reply(text: str, locale: Locale) -> str | None:
    """Return a canned greeting/thanks/help reply, or None if nothing matches."""
    for pattern, reply in _CANNED_REPLIES[Locale(locale)]:
        if pattern.search(text or ""):
            return reply
    return None


def help_hint(locale: Locale) -> str:
    return HELP_HINTS[Locale(locale)]


def error_message(kind: str, locale: Locale) -> str:
    """Locale-appropriate text for an error kind; unknown kinds read as generic."""
    messages = ERROR_MESSAGES.get(kind, ERROR_MESSAGES["upstream"])
    return messages[Locale(locale)]


def compose_reply(
    is_request: bool,
    missing_fields: Sequence[str],
    locale: Locale,
    schema: FormSchema,
    form: dict[str, Any] | None = None,
    general_text: str | None = None,
) -> dict:
    """Choose the reply action for a turn.

    Args:
        is_request: Whether the message was classified as an equipment request.
        missing_fields: Missing required fields, most important first.
        locale: Reply locale.
        schema: The form schema (question texts, field types).
        form: Current form, attached to the completion action.
        general_text: Reply for non-request turns. Falls back to the help hint.

    Returns:
        An action dict: MESSAGE for non-requests, ASK_* for the first missing
        field, otherwise FORM_COMPLETE.
    """
    locale = Locale(locale)

    if not is_request:
        return build_message_action(general_text or help_hint(locale), locale)

    if missing_fields:
        field_id = missing_fields[0]
        field = schema.get_field(field_id)
        if field is None:
            raise ValueError(f"Unknown field in missing list: '{field_id}'")
        question = schema.question_for(field_id, locale)
        return build_action_for_field(field, question, locale)

    return build_completion_action(REVIEW_MESSAGES[locale], locale, form or {})

