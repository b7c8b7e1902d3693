"""
System prompt builders for the SmartForm assistant.

Two prompts:
1. **Extraction**: tells the model to turn one utterance into the flat
   JSON extraction schema, resolving relative dates against a literal
   anchor datetime.
2. **General chat**: a short, polite persona for messages that are not
   equipment requests.

Both are pure template fills. For a fixed locale and anchor the output is
byte-identical; worked examples and reference dates are computed from the
anchor rather than generated.
"""

import json
from datetime import date, datetime, timedelta

from dateutil.relativedelta import FR, MO, SA, SU, TH, TU, WE, relativedelta

from smartform.core.extraction import EquipmentType
from smartform.core.language import Locale

# Every key of the extraction schema, in prompt order, with its null default
EXTRACTION_TEMPLATE: dict[str, object] = {
    "employee_id": None,
    "full_name": None,
    "position": None,
    "department": None,
    "division": None,
    "unit": None,
    "phone": None,
    "email": None,
    "doc_ref_no": None,
    "doc_date": None,
    "subject": None,
    "equipment_type": None,
    "quantity": None,
    "purpose": None,
    "start_datetime": None,
    "end_datetime": None,
    "install_location": None,
    "default_software": None,
    "extra_software_choice": None,
    "extra_software_name": None,
    "coordinator": None,
    "coordinator_phone": None,
    "receiver": None,
    "receive_datetime": None,
    "remark": None,
    "attachment": None,
}

_WEEKDAYS = (MO, TU, WE, TH, FR, SA, SU)

_WEEKDAY_NAMES = {
    Locale.EN: ("Monday", "Tuesday", "Wednesday", "Thursday", "Friday", "Saturday", "Sunday"),
    Locale.TH: ("จันทร์", "อังคาร", "พุธ", "พฤหัสบดี", "ศุกร์", "เสาร์", "อาทิตย์"),
}

_THAI_MONTHS = (
    "มกราคม",
    "กุมภาพันธ์",
    "มีนาคม",
    "เมษายน",
    "พฤษภาคม",
    "มิถุนายน",
    "กรกฎาคม",
    "สิงหาคม",
    "กันยายน",
    "ตุลาคม",
    "พฤศจิกายน",
    "ธันวาคม",
)

_THAI_EQUIPMENT_HINTS = (
    ("โน้ตบุ๊ก/แล็ปท็อป/คอมพิวเตอร์", EquipmentType.NOTEBOOK),
    ("โปรเจคเตอร์/เครื่องฉาย", EquipmentType.PROJECTOR),
    ("หับ/ฮับ", EquipmentType.HUB),
    ("เราท์เตอร์", EquipmentType.ROUTER),
    ("เมาส์", EquipmentType.MOUSE),
    ("จอ/มอนิเตอร์", EquipmentType.MONITOR),
    ("ด็อก/dock", EquipmentType.DOCK),
    ("ฮาร์ดดิสก์ภายนอก", EquipmentType.EXTERNAL_HDD),
    ("สาย HDMI/ตัวแปลง HDMI", EquipmentType.HDMI_ADAPTER),
    ("อื่นๆ", EquipmentType.OTHER),
)


# ---------------------------------------------------------------------------
# Reference dates
# ---------------------------------------------------------------------------


def next_weekday(today: date, weekday: int) -> date:
    """First date strictly after `today` falling on `weekday` (0 = Monday)."""
    return today + relativedelta(days=+1, weekday=_WEEKDAYS[weekday](+1))


def _fmt_date(value: date) -> str:
    return value.isoformat()


def _fmt_dt(value: date, hour: int, minute: int = 0) -> str:
    return f"{value.isoformat()}T{hour:02d}:{minute:02d}"


def _describe_today(anchor: datetime, locale: Locale) -> str:
    weekday = _WEEKDAY_NAMES[locale][anchor.weekday()]
    if locale == Locale.TH:
        month = _THAI_MONTHS[anchor.month - 1]
        return f"วัน{weekday}ที่ {anchor.day} {month} {anchor.year} เวลา {anchor:%H:%M} น."
    return f"{weekday}, {anchor:%d %B %Y}, {anchor:%H:%M}"


def _reference_dates(anchor: datetime, locale: Locale) -> list[str]:
    today = anchor.date()
    tomorrow = today + timedelta(days=1)
    names = _WEEKDAY_NAMES[locale]

    if locale == Locale.TH:
        lines = [
            f"- วันนี้ = {_fmt_date(today)} (วัน{names[today.weekday()]})",
            f"- พรุ่งนี้ = {_fmt_date(tomorrow)} (วัน{names[tomorrow.weekday()]})",
        ]
        for weekday in range(7):
            lines.append(f"- {names[weekday]}หน้า = {_fmt_date(next_weekday(today, weekday))}")
        return lines

    lines = [
        f"- today = {_fmt_date(today)} ({names[today.weekday()]})",
        f"- tomorrow = {_fmt_date(tomorrow)} ({names[tomorrow.weekday()]})",
    ]
    for weekday in range(7):
        lines.append(f"- next {names[weekday]} = {_fmt_date(next_weekday(today, weekday))}")
    return lines


# ---------------------------------------------------------------------------
# Worked examples
# ---------------------------------------------------------------------------


def _example(**values: object) -> str:
    payload = dict(EXTRACTION_TEMPLATE)
    payload.update(values)
    return json.dumps(payload, ensure_ascii=False, indent=2)


def _worked_examples(anchor: datetime) -> list[tuple[str, str]]:
    today = anchor.date()
    friday = next_weekday(today, 4)
    tomorrow = today + timedelta(days=1)

    return [
        (
            "ขอยืมโปรเจคเตอร์วันศุกร์หน้า เวลา 13:00-15:00 ที่ห้องประชุมชั้น 2",
            _example(
                equipment_type=EquipmentType.PROJECTOR.value,
                start_datetime=_fmt_dt(friday, 13),
                end_datetime=_fmt_dt(friday, 15),
                install_location="ห้องประชุมชั้น 2",
            ),
        ),
        (
            "I need 2 notebooks tomorrow from 9am until noon for a training "
            "session in room 301. Coordinator is Somchai, 081-234-5678.",
            _example(
                equipment_type=EquipmentType.NOTEBOOK.value,
                quantity="2",
                purpose="training session",
                start_datetime=_fmt_dt(tomorrow, 9),
                end_datetime=_fmt_dt(tomorrow, 12),
                install_location="room 301",
                coordinator="Somchai",
                coordinator_phone="081-234-5678",
            ),
        ),
    ]


# ---------------------------------------------------------------------------
# Extraction prompt
# ---------------------------------------------------------------------------


def build_extraction_prompt(locale: Locale, anchor: datetime) -> str:
    """Build the system prompt for one extraction call.

    Args:
        locale: Language of the instructions.
        anchor: The "current datetime" the model must resolve relative
            expressions against. Embedded literally.

    Returns:
        The system prompt text. Identical inputs give identical output.
    """
    locale = Locale(locale)
    anchor_literal = anchor.isoformat()
    schema_json = json.dumps(EXTRACTION_TEMPLATE, ensure_ascii=False, indent=2)
    equipment_values = ", ".join(f'"{t.value}"' for t in EquipmentType)
    reference_dates = "\n".join(_reference_dates(anchor, locale))
    examples = _worked_examples(anchor)

    if locale == Locale.TH:
        equipment_lines = "\n".join(
            f"- {hint} → \"{etype.value}\"" for hint, etype in _THAI_EQUIPMENT_HINTS
        )
        example_blocks = "\n\n".join(
            f"Input: \"{utterance}\"\nOutput:\n{output}" for utterance, output in examples
        )
        return f"""คุณคือผู้ช่วย AI (Smart Form Assistant) ที่สกัดข้อมูลจากข้อความของผู้ใช้ เพื่อกรอก "แบบฟอร์มขอยืมครุภัณฑ์คอมพิวเตอร์" โดยอัตโนมัติ

**CURRENT_DATETIME:** {anchor_literal}
วันนี้คือ: {_describe_today(anchor, locale)}
ใช้ CURRENT_DATETIME นี้เป็นจุดอ้างอิงเพียงจุดเดียวในการคำนวณวันและเวลาแบบสัมพัทธ์ เช่น "พรุ่งนี้", "ศุกร์หน้า", "บ่ายโมงถึงบ่ายสาม"

**วันอ้างอิง:**
{reference_dates}

**รูปแบบวันเวลา:**
- start_datetime, end_datetime, receive_datetime ใช้รูปแบบ "YYYY-MM-DDTHH:MM" ตามเวลาท้องถิ่น ไม่ต้องใส่ timezone
- "13:00-15:00" → start: "...T13:00", end: "...T15:00"
- "9 โมงเช้าถึงเที่ยง" → start: "...T09:00", end: "...T12:00"
- "บ่ายโมงถึงบ่ายสาม" → start: "...T13:00", end: "...T15:00"
- ถ้าระบุวันที่สิ้นสุดไม่ได้ ให้ใช้วันเดียวกับวันเริ่มต้นเมื่อระบุเวลาสิ้นสุดไว้

**ประเภทอุปกรณ์ (equipment_type) ต้องเป็นค่าใดค่าหนึ่งต่อไปนี้:** {equipment_values}
{equipment_lines}

**โครงสร้าง JSON ที่ต้องตอบ:**
{schema_json}

**กฎสำคัญ:**
- ทุกฟิลด์ที่ผู้ใช้ไม่ได้กล่าวถึง ต้องเป็น null ห้ามเดาหรือเติมค่าเอง
- quantity เป็นข้อความตัวเลข เช่น "2"
- default_software เป็น true เฉพาะเมื่อผู้ใช้ขอโปรแกรมพื้นฐาน มิฉะนั้นเป็น null
- extra_software_choice เป็น "yes" เฉพาะเมื่อผู้ใช้ขอโปรแกรมเพิ่มเติม มิฉะนั้นเป็น null

🛑 CRITICAL: ตอบเป็น JSON object ล้วนๆ เท่านั้น ห้ามมี markdown ห้ามมีคำอธิบาย

**ตัวอย่าง:**
{example_blocks}"""

    example_blocks = "\n\n".join(
        f"Input: \"{utterance}\"\nOutput:\n{output}" for utterance, output in examples
    )
    return f"""You are an AI assistant (Smart Form Assistant) that extracts information from the user's message to fill in a "Computer Equipment Borrowing Form" automatically.

**CURRENT_DATETIME:** {anchor_literal}
Today is: {_describe_today(anchor, locale)}
Use this CURRENT_DATETIME as the only reference point when resolving relative expressions such as "tomorrow", "next Friday" or "1pm to 3pm".

**Reference dates:**
{reference_dates}

**Datetime format:**
- start_datetime, end_datetime and receive_datetime use "YYYY-MM-DDTHH:MM" in local time, without a timezone offset.
- "13:00-15:00" → start: "...T13:00", end: "...T15:00"
- "1pm to 3pm" → start: "...T13:00", end: "...T15:00"
- "9am until noon" → start: "...T09:00", end: "...T12:00"
- If only an end time is given, the end date is the same as the start date.

**equipment_type must be one of:** {equipment_values}

**JSON structure to return:**
{schema_json}

**Rules:**
- Every field the user did not mention MUST be null. Never guess or invent values.
- quantity is a numeric string such as "2".
- default_software is true only if the user asks for the basic software package, otherwise null.
- extra_software_choice is "yes" only if the user asks for additional software, otherwise null.

🛑 CRITICAL: Respond ONLY with a raw JSON object. No markdown, no explanation.

**Examples:**
{example_blocks}"""


# ---------------------------------------------------------------------------
# General chat prompt
# ---------------------------------------------------------------------------


def build_general_chat_prompt(locale: Locale) -> str:
    """Build the system prompt for replies to non-request messages."""
    if Locale(locale) == Locale.TH:
        return (
            "คุณเป็นผู้ช่วยกรอกแบบฟอร์มยืมอุปกรณ์คอมพิวเตอร์ของ"
            "คณะแพทยศาสตร์ศิริราชพยาบาล มหาวิทยาลัยมหิดล\n\n"
            "กรุณาตอบด้วยภาษาไทยในลักษณะสุภาพและเป็นทางการ ไม่ใช้อีโมจิ\n"
            "ตอบอย่างสุภาพและเป็นประโยชน์ สั้นกระชับ และไม่ต้องถามคำถามต่อ"
        )
    return (
        "You are a Smart Form Assistant for computer equipment borrowing at "
        "Faculty of Medicine Siriraj Hospital, Mahidol University.\n\n"
        "Please respond in English with a professional, formal tone without emojis.\n"
        "Respond politely, helpfully and briefly. Do not ask follow-up questions."
    )
