"""Canonicalization of dates, times and money amounts.

Structured fields only ever carry canonical strings: dates as
``YYYY-MM-DD``, times as 24-hour ``HH:MM`` and amounts as plain digits.
Anything that does not parse becomes ``None``.
"""

import re
from datetime import datetime
from typing import Any, Optional

_ISO_DATE = re.compile(r"^(\d{4})-(\d{2})-(\d{2})")
_ORDINAL_SUFFIX = re.compile(r"(\d)(st|nd|rd|th)\b", re.IGNORECASE)
_TIME = re.compile(
    r"^\s*(\d{1,2})(?:[:.](\d{2}))?\s*([ap])\.?\s*m?\.?\s*$", re.IGNORECASE
)
_TIME_24H = re.compile(r"^\s*(\d{1,2})[:.](\d{2})(?::\d{2})?\s*$")
_AMOUNT = re.compile(r"\d[\d,]*(?:\.\d+)?")

DATE_FORMATS = (
    "%Y-%m-%d",
    "%Y/%m/%d",
    "%B %d %Y",
    "%B %d, %Y",
    "%b %d %Y",
    "%b %d, %Y",
    "%d %B %Y",
    "%d %b %Y",
    "%A, %B %d, %Y",
    "%a, %b %d, %Y",
    "%m/%d/%Y",
    "%m-%d-%Y",
    "%m/%d/%y",
)


def normalize_date(value: Any) -> Optional[str]:
    """Return ``value`` as ``YYYY-MM-DD`` or None when it cannot be parsed."""
    if value is None or isinstance(value, bool):
        return None
    text = str(value).strip()
    if not text:
        return None

    iso = _ISO_DATE.match(text)
    if iso:
        try:
            return datetime(
                int(iso.group(1)), int(iso.group(2)), int(iso.group(3))
            ).strftime("%Y-%m-%d")
        except ValueError:
            return None

    text = _ORDINAL_SUFFIX.sub(r"\1", text)
    text = re.sub(r"\s+", " ", text.replace(".", ""))
    for fmt in DATE_FORMATS:
        try:
            return datetime.strptime(text, fmt).strftime("%Y-%m-%d")
        except ValueError:
            continue
    return None


def normalize_time(value: Any) -> Optional[str]:
    """Return ``value`` as 24-hour ``HH:MM``.

    Accepts ``9:30 PM``, ``9pm``, ``9.30 p.m.`` and ``21:30``.
    """
    if value is None or isinstance(value, bool):
        return None
    text = str(value).strip()
    if not text:
        return None

    match = _TIME.match(text)
    if match:
        hour = int(match.group(1))
        minute = int(match.group(2) or 0)
        if not 1 <= hour <= 12 or minute > 59:
            return None
        if match.group(3).lower() == "p" and hour != 12:
            hour += 12
        elif match.group(3).lower() == "a" and hour == 12:
            hour = 0
        return f"{hour:02d}:{minute:02d}"

    match = _TIME_24H.match(text)
    if match:
        hour, minute = int(match.group(1)), int(match.group(2))
        if hour > 23 or minute > 59:
            return None
        return f"{hour:02d}:{minute:02d}"
    return None


def normalize_amount(value: Any) -> Optional[str]:
    """Reduce a money value to plain digits (``$5,000`` -> ``5000``).

    Cents are kept only when non-zero. Text without any number yields None.
    """
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        text = f"{value}"
    else:
        text = str(value)
    match = _AMOUNT.search(text)
    if not match:
        return None
    digits = match.group(0).replace(",", "")
    if "." in digits:
        whole, cents = digits.split(".", 1)
        if not cents.strip("0"):
            return whole
        return f"{whole}.{cents}"
    return digits
