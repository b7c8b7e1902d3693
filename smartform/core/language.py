"""
Locale detection for user messages.

Counts Thai-script characters against runs of Latin letters and picks
whichever is larger. Ties (including empty input) resolve to Thai, the
base locale of the form.
"""

import re
from enum import Enum


class Locale(str, Enum):
    """Locales the assistant can reply in."""

    TH = "th"
    EN = "en"


BASE_LOCALE = Locale.TH

_THAI_CHAR = re.compile(r"[\u0E00-\u0E7F]")
_LATIN_WORD = re.compile(r"[a-zA-Z]+")


def detect_language(text: str) -> Locale:
    """Classify a text fragment as Thai or English.

    Args:
        text: Any user-provided text, possibly empty.

    Returns:
        Locale.TH if Thai characters outnumber Latin words, Locale.EN if
        Latin words outnumber Thai characters, BASE_LOCALE on a tie.
    """
    if not text:
        return BASE_LOCALE

    thai_chars = len(_THAI_CHAR.findall(text))
    latin_words = len(_LATIN_WORD.findall(text))

    if latin_words > thai_chars:
        return Locale.EN
    if thai_chars > latin_words:
        return Locale.TH
    return BASE_LOCALE


def other_locale(locale: Locale) -> Locale:
    """Return the locale that is not `locale`."""
    return Locale.EN if locale == Locale.TH else Locale.TH
