"""Structured candidate models.

A Candidate is one proposed show booking derived from a document. Every
field is wrapped in a FieldValue so reviewers can tell an extracted
value from a guess. Values are canonical strings (dates ``YYYY-MM-DD``,
times ``HH:MM``, amounts as plain digits).
"""

import math
import uuid
from typing import Any, ClassVar, Dict, Iterator, List, Optional, Tuple

from pydantic import BaseModel, ConfigDict, Field, field_validator

CORE_FIELDS = (
    "title",
    "artist",
    "date",
    "show_time",
    "door_time",
    "soundcheck_time",
    "setup_time",
)
VENUE_FIELDS = (
    "name",
    "address",
    "city",
    "state",
    "zip",
    "country",
    "capacity",
    "phone",
    "email",
    "website",
)
DEAL_FIELDS = ("fee", "guarantee", "currency", "deal_type")
CONTACT_FIELDS = ("name", "email", "phone", "role", "company")


def clamp_confidence(value: Any) -> float:
    """Coerce a backend-reported confidence into [0, 1].

    Non-numeric, NaN and out-of-range values become 0.0.
    """
    if isinstance(value, bool) or value is None:
        return 0.0
    try:
        number = float(value)
    except (TypeError, ValueError):
        return 0.0
    if math.isnan(number) or number < 0.0 or number > 1.0:
        return 0.0
    return number


class FieldValue(BaseModel):
    """A value paired with its extraction confidence"""

    value: Optional[str] = None
    confidence: float = Field(default=0.0, ge=0.0, le=1.0)

    @field_validator("confidence", mode="before")
    @classmethod
    def clamp(cls, v: Any) -> float:
        return clamp_confidence(v)

    @property
    def is_empty(self) -> bool:
        return self.value is None


class FieldGroup(BaseModel):
    """Base for groups of FieldValues addressed by field name"""

    FIELD_NAMES: ClassVar[Tuple[str, ...]] = ()

    def items(self) -> Iterator[Tuple[str, FieldValue]]:
        for name in self.FIELD_NAMES:
            yield name, getattr(self, name)

    def populated(self) -> Dict[str, FieldValue]:
        return {name: fv for name, fv in self.items() if not fv.is_empty}

    @property
    def is_empty(self) -> bool:
        return not self.populated()


class CoreFields(FieldGroup):
    FIELD_NAMES = CORE_FIELDS

    title: FieldValue = Field(default_factory=FieldValue)
    artist: FieldValue = Field(default_factory=FieldValue)
    date: FieldValue = Field(default_factory=FieldValue)
    show_time: FieldValue = Field(default_factory=FieldValue)
    door_time: FieldValue = Field(default_factory=FieldValue)
    soundcheck_time: FieldValue = Field(default_factory=FieldValue)
    setup_time: FieldValue = Field(default_factory=FieldValue)


class VenueFields(FieldGroup):
    FIELD_NAMES = VENUE_FIELDS

    name: FieldValue = Field(default_factory=FieldValue)
    address: FieldValue = Field(default_factory=FieldValue)
    city: FieldValue = Field(default_factory=FieldValue)
    state: FieldValue = Field(default_factory=FieldValue)
    zip: FieldValue = Field(default_factory=FieldValue)
    country: FieldValue = Field(default_factory=FieldValue)
    capacity: FieldValue = Field(default_factory=FieldValue)
    phone: FieldValue = Field(default_factory=FieldValue)
    email: FieldValue = Field(default_factory=FieldValue)
    website: FieldValue = Field(default_factory=FieldValue)


class DealFields(FieldGroup):
    FIELD_NAMES = DEAL_FIELDS

    fee: FieldValue = Field(default_factory=FieldValue)
    guarantee: FieldValue = Field(default_factory=FieldValue)
    currency: FieldValue = Field(default_factory=FieldValue)
    deal_type: FieldValue = Field(default_factory=FieldValue)


class ContactEntry(FieldGroup):
    FIELD_NAMES = CONTACT_FIELDS

    name: FieldValue = Field(default_factory=FieldValue)
    email: FieldValue = Field(default_factory=FieldValue)
    phone: FieldValue = Field(default_factory=FieldValue)
    role: FieldValue = Field(default_factory=FieldValue)
    company: FieldValue = Field(default_factory=FieldValue)


class ExistingRecord(BaseModel):
    """One already-persisted show, as supplied by the caller for comparison"""

    id: str
    title: Optional[str] = None
    date: Optional[str] = None
    venue_name: Optional[str] = None
    city: Optional[str] = None

    model_config = ConfigDict(frozen=True)


class DuplicateMatch(BaseModel):
    """Scored reference from a candidate to a suspected existing record"""

    existing_record_id: str
    score: float = Field(ge=0.0, le=1.0)
    matched_fields: List[str] = Field(default_factory=list)

    model_config = ConfigDict(frozen=True)


class Candidate(BaseModel):
    """One proposed show-booking record.

    ``confidence`` is an aggregate that never overstates certainty: it is
    the lowest confidence among populated fields, and 0 when a required
    field (date, plus a title or artist) is missing.
    """

    candidate_id: str = Field(default_factory=lambda: uuid.uuid4().hex)
    core: CoreFields = Field(default_factory=CoreFields)
    venue: VenueFields = Field(default_factory=VenueFields)
    deal: DealFields = Field(default_factory=DealFields)
    contacts: List[ContactEntry] = Field(default_factory=list)
    confidence: float = Field(default=0.0, ge=0.0, le=1.0)
    duplicates: List[DuplicateMatch] = Field(default_factory=list)

    @classmethod
    def empty(cls) -> "Candidate":
        """A zero-confidence candidate with no populated fields."""
        return cls()

    @property
    def is_empty(self) -> bool:
        return (
            self.core.is_empty
            and self.venue.is_empty
            and self.deal.is_empty
            and all(contact.is_empty for contact in self.contacts)
        )

    def iter_fields(self) -> Iterator[Tuple[str, FieldValue]]:
        """Yield ``(field_path, FieldValue)`` for every field, contacts included."""
        for group_name in ("core", "venue", "deal"):
            group: FieldGroup = getattr(self, group_name)
            for name, fv in group.items():
                yield f"{group_name}.{name}", fv
        for index, contact in enumerate(self.contacts):
            for name, fv in contact.items():
                yield f"contacts[{index}].{name}", fv

    def compute_confidence(self) -> float:
        """Aggregate field confidences without overstating certainty."""
        core = self.core
        if core.date.is_empty or (core.title.is_empty and core.artist.is_empty):
            return 0.0
        scores = [fv.confidence for _, fv in self.iter_fields() if not fv.is_empty]
        return min(scores) if scores else 0.0

    def refresh_confidence(self) -> "Candidate":
        self.confidence = self.compute_confidence()
        return self

    def confidence_map(self, prefix: str = "") -> Dict[str, float]:
        return {f"{prefix}{path}": fv.confidence for path, fv in self.iter_fields()}
