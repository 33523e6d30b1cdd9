"""Deterministic pattern extractor (extraction mode ``rule_based``).

Used when the caller asks for a rule-based pass: no network, no model,
just regular expressions over the text. Confidences are capped well
below what the backend usually reports so rule-based candidates land in
review unless the threshold is lowered on purpose.
"""

import re
from typing import List, Optional

import structlog

from booking_intake.models.candidate import (
    Candidate,
    ContactEntry,
    CoreFields,
    DealFields,
    FieldValue,
    VenueFields,
)
from booking_intake.models.import_job import ExtractionMode
from booking_intake.services.structured_extractor import StructuringResult
from booking_intake.utils.dates import normalize_amount, normalize_date, normalize_time

logger = structlog.get_logger()

DATE_CONFIDENCE = 0.6
TIME_CONFIDENCE = 0.5
AMOUNT_CONFIDENCE = 0.5
VENUE_CONFIDENCE = 0.4
TITLE_CONFIDENCE = 0.4
CONTACT_CONFIDENCE = 0.5

_MONTH = (
    r"(?:Jan(?:uary)?|Feb(?:ruary)?|Mar(?:ch)?|Apr(?:il)?|May|June?|July?|"
    r"Aug(?:ust)?|Sep(?:t(?:ember)?)?|Oct(?:ober)?|Nov(?:ember)?|Dec(?:ember)?)"
)
DATE_PATTERNS = (
    re.compile(r"\b\d{4}-\d{2}-\d{2}\b"),
    re.compile(rf"\b{_MONTH}\.?\s+\d{{1,2}}(?:st|nd|rd|th)?,?\s+\d{{4}}\b", re.I),
    re.compile(rf"\b\d{{1,2}}(?:st|nd|rd|th)?\s+{_MONTH}\.?,?\s+\d{{4}}\b", re.I),
    re.compile(r"\b\d{1,2}/\d{1,2}/\d{4}\b"),
)
EUROPEAN_DATE = re.compile(r"\b(\d{1,2})\.(\d{1,2})\.(\d{4})\b")

_TIME = r"(\d{1,2}(?:[:.]\d{2})?\s*[ap]\.?\s*m\.?|\d{1,2}:\d{2})"
TIME_PATTERNS = {
    "door_time": re.compile(rf"\bdoors?(?:\s+open)?\s*(?:at|@|:|-)?\s*{_TIME}", re.I),
    "show_time": re.compile(
        rf"\b(?:show|set|start)(?:\s*time)?\s*(?:at|@|:|-)?\s*{_TIME}", re.I
    ),
    "soundcheck_time": re.compile(
        rf"\bsound\s*check\s*(?:at|@|:|-)?\s*{_TIME}", re.I
    ),
    "setup_time": re.compile(
        rf"\b(?:load[\s-]*in|set[\s-]*up)\s*(?:at|@|:|-)?\s*{_TIME}", re.I
    ),
}

_AMOUNT = r"[$€£]?\s*(\d[\d,]*(?:\.\d{2})?)\s*(?:k\b)?"
FEE_PATTERN = re.compile(rf"\b(?:fee|offer|payment)\b\s*(?:of|is|:|-)?\s*{_AMOUNT}", re.I)
GUARANTEE_PATTERN = re.compile(rf"\bguarantee\b\s*(?:of|is|:|-)?\s*{_AMOUNT}", re.I)
CURRENCY_SYMBOLS = {"$": "USD", "€": "EUR", "£": "GBP"}

VENUE_PATTERN = re.compile(
    r"\b(?i:at|@)\s+((?:[Tt]he\s+)?[A-Z][\w'&.-]*(?:\s+(?:[A-Z][\w'&.-]*|of|the|and|&))*)"
)
CITY_STATE_PATTERN = re.compile(r"\b([A-Z][a-z]+(?:\s[A-Z][a-z]+)*),\s*([A-Z]{2})\b")
SUBJECT_PATTERN = re.compile(r"^\s*subject:\s*(.+)$", re.I | re.M)
EMAIL_PATTERN = re.compile(r"[\w.+-]+@[\w-]+(?:\.[\w-]+)+")
PHONE_PATTERN = re.compile(r"(?<!\w)\+?\d[\d\s().-]{7,}\d")
ISO_LIKE = re.compile(r"\d{4}-\d{2}-\d{2}")


def _fv(value: Optional[str], confidence: float) -> FieldValue:
    if value is None:
        return FieldValue()
    return FieldValue(value=value, confidence=confidence)


class RuleBasedExtractor:
    """Regex extraction of dates, times, money, venue and contacts."""

    def extract(self, text: str) -> StructuringResult:
        candidate = Candidate(
            core=CoreFields(
                title=_fv(self._find_title(text), TITLE_CONFIDENCE),
                date=_fv(self._find_date(text), DATE_CONFIDENCE),
                **{
                    name: _fv(self._find_time(pattern, text), TIME_CONFIDENCE)
                    for name, pattern in TIME_PATTERNS.items()
                },
            ),
            venue=self._find_venue(text),
            deal=DealFields(
                fee=_fv(self._find_amount(FEE_PATTERN, text), AMOUNT_CONFIDENCE),
                guarantee=_fv(self._find_amount(GUARANTEE_PATTERN, text), AMOUNT_CONFIDENCE),
                currency=_fv(self._find_currency(text), AMOUNT_CONFIDENCE),
            ),
            contacts=self._find_contacts(text),
        ).refresh_confidence()

        logger.info(
            "rule_based_extraction_completed",
            populated=sum(1 for _, fv in candidate.iter_fields() if not fv.is_empty),
            confidence=candidate.confidence,
        )
        return StructuringResult(candidates=[candidate], mode=ExtractionMode.RULE_BASED)

    def _find_title(self, text: str) -> Optional[str]:
        match = SUBJECT_PATTERN.search(text)
        if not match:
            return None
        title = re.sub(r"^(?:re|fwd?|fw)\s*:\s*", "", match.group(1).strip(), flags=re.I)
        return title or None

    def _find_date(self, text: str) -> Optional[str]:
        for pattern in DATE_PATTERNS:
            for match in pattern.finditer(text):
                value = normalize_date(match.group(0))
                if value:
                    return value
        match = EUROPEAN_DATE.search(text)
        if match:
            day, month, year = match.groups()
            return normalize_date(f"{year}-{int(month):02d}-{int(day):02d}")
        return None

    def _find_time(self, pattern: re.Pattern, text: str) -> Optional[str]:
        match = pattern.search(text)
        return normalize_time(match.group(1)) if match else None

    def _find_amount(self, pattern: re.Pattern, text: str) -> Optional[str]:
        match = pattern.search(text)
        if not match:
            return None
        amount = normalize_amount(match.group(1))
        if amount and match.group(0).rstrip().lower().endswith("k"):
            amount = str(int(float(amount) * 1000))
        return amount

    def _find_currency(self, text: str) -> Optional[str]:
        for pattern in (FEE_PATTERN, GUARANTEE_PATTERN):
            match = pattern.search(text)
            if match:
                for symbol, code in CURRENCY_SYMBOLS.items():
                    if symbol in match.group(0):
                        return code
        return None

    def _find_venue(self, text: str) -> VenueFields:
        venue = VenueFields()
        match = VENUE_PATTERN.search(text)
        if match:
            name = re.sub(r"\s+(?:of|the|and|&)$", "", match.group(1).strip())
            venue.name = _fv(name, VENUE_CONFIDENCE)
        city_match = CITY_STATE_PATTERN.search(text)
        if city_match:
            venue.city = _fv(city_match.group(1), VENUE_CONFIDENCE)
            venue.state = _fv(city_match.group(2), VENUE_CONFIDENCE)
        return venue

    def _find_contacts(self, text: str) -> List[ContactEntry]:
        emails = list(dict.fromkeys(EMAIL_PATTERN.findall(text)))
        phones = [
            p.strip()
            for p in PHONE_PATTERN.findall(text)
            if 10 <= sum(c.isdigit() for c in p) <= 15 and not ISO_LIKE.fullmatch(p.strip())
        ]
        contacts = [
            ContactEntry(email=_fv(email, CONTACT_CONFIDENCE)) for email in emails
        ]
        if phones:
            if contacts:
                contacts[0].phone = _fv(phones[0], CONTACT_CONFIDENCE)
            else:
                contacts.append(ContactEntry(phone=_fv(phones[0], CONTACT_CONFIDENCE)))
        return contacts
