"""Structured extraction: normalized text to typed show-booking candidates.

Three independent field-group calls (show, venue, contacts) run in
parallel against the backend and are merged by group name, so their
completion order never changes the result. Every failure mode
(no credentials, timeout, non-JSON output, wrong shape) degrades the
group to an empty zero-confidence result and is reported as an issue.
"""

import asyncio
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, List, Optional, Tuple

import structlog

from booking_intake.models.candidate import (
    Candidate,
    ContactEntry,
    CoreFields,
    DealFields,
    FieldValue,
    VenueFields,
)
from booking_intake.models.config import StructuringSettings
from booking_intake.models.import_job import ErrorKind, ExtractionMode
from booking_intake.observability.metrics import STRUCTURING_DEGRADED
from booking_intake.services.llm.exceptions import LLMProviderError
from booking_intake.services.llm.prompt_builder import FieldGroupName, PromptBuilder
from booking_intake.services.llm.response_parser import (
    Decoded,
    DecodeResult,
    Degraded,
    ResponseParser,
)
from booking_intake.services.llm.service import LLMService
from booking_intake.utils.cancellation import CancellationToken, guarded
from booking_intake.utils.dates import normalize_amount, normalize_date, normalize_time
from booking_intake.utils.exceptions import (
    BackendUnavailableError,
    CancellationRequestedError,
)
from booking_intake.utils.text import normalize_key, split_text_into_word_batches

logger = structlog.get_logger()


def _clean_string(value: Any) -> Optional[str]:
    if value is None or isinstance(value, (bool, dict, list)):
        return None
    text = str(value).strip()
    if not text or text.lower() in ("null", "none", "n/a", "unknown"):
        return None
    return text


def _clean_integer(value: Any) -> Optional[str]:
    amount = normalize_amount(value)
    if amount is None:
        return None
    return amount.split(".", 1)[0]


NORMALIZERS: Dict[str, Callable[[Any], Optional[str]]] = {
    "date": normalize_date,
    "show_time": normalize_time,
    "door_time": normalize_time,
    "soundcheck_time": normalize_time,
    "setup_time": normalize_time,
    "fee": normalize_amount,
    "guarantee": normalize_amount,
    "capacity": _clean_integer,
}


@dataclass
class ExtractionIssue:
    """Non-fatal problem met while structuring one field group"""

    group: str
    kind: ErrorKind
    message: str


@dataclass
class ShowEntry:
    core: CoreFields = field(default_factory=CoreFields)
    deal: DealFields = field(default_factory=DealFields)
    venue_name: FieldValue = field(default_factory=FieldValue)
    city: FieldValue = field(default_factory=FieldValue)

    @property
    def is_empty(self) -> bool:
        return (
            self.core.is_empty
            and self.deal.is_empty
            and self.venue_name.is_empty
            and self.city.is_empty
        )


@dataclass
class ShowFieldsResult:
    shows: List[ShowEntry] = field(default_factory=lambda: [ShowEntry()])
    confidence: float = 0.0
    issue: Optional[ExtractionIssue] = None


@dataclass
class VenueFieldsResult:
    venue: VenueFields = field(default_factory=VenueFields)
    confidence: float = 0.0
    issue: Optional[ExtractionIssue] = None


@dataclass
class ContactFieldsResult:
    contacts: List[ContactEntry] = field(default_factory=list)
    confidence: float = 0.0
    issue: Optional[ExtractionIssue] = None


@dataclass
class StructuringResult:
    candidates: List[Candidate]
    issues: List[ExtractionIssue] = field(default_factory=list)
    mode: ExtractionMode = ExtractionMode.AI_ASSISTED


class StructuredExtractor:
    """Turns free text into Candidates via the LLM backend.

    The backend is injected at construction time. ``llm_service=None``
    (or a service without credentials) is a valid configuration: every
    call then returns zero-confidence empty results.
    """

    def __init__(
        self,
        llm_service: Optional[LLMService] = None,
        settings: Optional[StructuringSettings] = None,
        prompt_builder: Optional[PromptBuilder] = None,
        parser: Optional[ResponseParser] = None,
    ):
        self.llm_service = llm_service
        self.settings = settings or StructuringSettings()
        self.prompt_builder = prompt_builder or PromptBuilder()
        self.parser = parser or ResponseParser()

    async def extract_candidates(
        self,
        text: str,
        enhanced: bool = False,
        cancel_token: Optional[CancellationToken] = None,
    ) -> List[Candidate]:
        result = await self.structure(text, enhanced, cancel_token)
        return result.candidates

    async def structure(
        self,
        text: str,
        enhanced: bool = False,
        cancel_token: Optional[CancellationToken] = None,
    ) -> StructuringResult:
        """Run all field groups over every chunk of ``text`` and merge.

        Raises:
            CancellationRequestedError: Only when the token fires
        """
        chunks = split_text_into_word_batches(
            text, self.settings.max_chunk_words, self.settings.min_chunk_words
        )

        show_results: List[ShowFieldsResult] = []
        venue_results: List[VenueFieldsResult] = []
        contact_results: List[ContactFieldsResult] = []
        for chunk in chunks:
            shows, venue, contacts = await asyncio.gather(
                self.extract_show_fields(chunk, enhanced, cancel_token),
                self.extract_venue_fields(chunk, enhanced, cancel_token),
                self.extract_contact_fields(chunk, enhanced, cancel_token),
            )
            show_results.append(shows)
            venue_results.append(venue)
            contact_results.append(contacts)

        issues = [
            r.issue
            for r in (*show_results, *venue_results, *contact_results)
            if r.issue is not None
        ]
        candidates = self._assemble(
            self._merge_shows(show_results),
            self._pick_venue(venue_results),
            self._merge_contacts(contact_results),
        )

        logger.info(
            "structuring_completed",
            chunks=len(chunks),
            candidates=len(candidates),
            issues=len(issues),
            enhanced=enhanced,
        )
        mode = ExtractionMode.AI_ENHANCED if enhanced else ExtractionMode.AI_ASSISTED
        return StructuringResult(candidates=candidates, issues=issues, mode=mode)

    async def extract_show_fields(
        self,
        text: str,
        enhanced: bool = False,
        cancel_token: Optional[CancellationToken] = None,
    ) -> ShowFieldsResult:
        outcome = await self._call_backend(FieldGroupName.SHOW, text, enhanced, cancel_token)
        if isinstance(outcome, Degraded):
            return ShowFieldsResult(issue=self._issue(FieldGroupName.SHOW, outcome))

        raw_shows = outcome.payload.get("shows")
        if isinstance(raw_shows, list):
            entries = [item for item in raw_shows if isinstance(item, dict)]
        elif isinstance(raw_shows, dict):
            entries = [raw_shows]
        else:
            entries = [outcome.payload]

        confidence = self._group_confidence(outcome, entries)
        shows = [self._build_show(entry, confidence, outcome.field_confidences) for entry in entries]
        shows = [show for show in shows if not show.is_empty] or [ShowEntry()]
        if all(show.is_empty for show in shows):
            confidence = 0.0
        return ShowFieldsResult(shows=shows, confidence=confidence)

    async def extract_venue_fields(
        self,
        text: str,
        enhanced: bool = False,
        cancel_token: Optional[CancellationToken] = None,
    ) -> VenueFieldsResult:
        outcome = await self._call_backend(FieldGroupName.VENUE, text, enhanced, cancel_token)
        if isinstance(outcome, Degraded):
            return VenueFieldsResult(issue=self._issue(FieldGroupName.VENUE, outcome))

        payload = outcome.payload
        if isinstance(payload.get("venue"), dict):
            payload = payload["venue"]
        confidence = self._group_confidence(outcome, [payload])
        venue = VenueFields(
            **{
                name: self._field_value(name, payload.get(name), confidence, outcome.field_confidences)
                for name in VenueFields.FIELD_NAMES
            }
        )
        return VenueFieldsResult(
            venue=venue, confidence=0.0 if venue.is_empty else confidence
        )

    async def extract_contact_fields(
        self,
        text: str,
        enhanced: bool = False,
        cancel_token: Optional[CancellationToken] = None,
    ) -> ContactFieldsResult:
        outcome = await self._call_backend(FieldGroupName.CONTACTS, text, enhanced, cancel_token)
        if isinstance(outcome, Degraded):
            return ContactFieldsResult(issue=self._issue(FieldGroupName.CONTACTS, outcome))

        raw_contacts = outcome.payload.get("contacts")
        if isinstance(raw_contacts, list):
            entries = [item for item in raw_contacts if isinstance(item, dict)]
        elif "contacts" not in outcome.payload:
            entries = [outcome.payload]
        else:
            entries = []

        confidence = self._group_confidence(outcome, entries)
        contacts = []
        for entry in entries:
            contact = ContactEntry(
                **{
                    name: self._field_value(name, entry.get(name), confidence, {})
                    for name in ContactEntry.FIELD_NAMES
                }
            )
            if not contact.is_empty:
                contacts.append(contact)
        return ContactFieldsResult(
            contacts=contacts, confidence=confidence if contacts else 0.0
        )

    async def _call_backend(
        self,
        group: FieldGroupName,
        text: str,
        enhanced: bool,
        cancel_token: Optional[CancellationToken],
    ) -> DecodeResult:
        if self.llm_service is None or not self.llm_service.is_available:
            return Degraded(ErrorKind.BACKEND_UNAVAILABLE, "No LLM credentials configured")

        system, prompt = self.prompt_builder.build(group, text, enhanced=enhanced)
        timeout = self.settings.backend_timeout_seconds
        try:
            response = await guarded(
                asyncio.wait_for(
                    self.llm_service.generate(prompt, system=system, prefer_fallback=enhanced),
                    timeout=timeout,
                ),
                cancel_token,
            )
        except CancellationRequestedError:
            raise
        except asyncio.TimeoutError:
            return Degraded(ErrorKind.TIMEOUT, f"Backend call timed out after {timeout:g}s")
        except (BackendUnavailableError, LLMProviderError) as e:
            return Degraded(ErrorKind.BACKEND_UNAVAILABLE, str(e))
        except Exception as e:
            logger.exception("backend_call_crashed", group=group.value)
            return Degraded(ErrorKind.BACKEND_UNAVAILABLE, f"Backend call failed: {e}")

        return self.parser.decode(response.content)

    def _issue(self, group: FieldGroupName, degraded: Degraded) -> ExtractionIssue:
        STRUCTURING_DEGRADED.labels(group=group.value, kind=degraded.kind.value).inc()
        logger.warning(
            "field_group_degraded",
            group=group.value,
            kind=degraded.kind.value,
            reason=degraded.reason,
        )
        return ExtractionIssue(group=group.value, kind=degraded.kind, message=degraded.reason)

    def _group_confidence(self, outcome: Decoded, entries: List[Dict[str, Any]]) -> float:
        if outcome.confidence is not None:
            return outcome.confidence
        has_data = any(
            _clean_string(value) is not None for entry in entries for value in entry.values()
        )
        return self.settings.default_field_confidence if has_data else 0.0

    def _field_value(
        self,
        name: str,
        raw: Any,
        confidence: float,
        field_confidences: Dict[str, float],
    ) -> FieldValue:
        normalizer = NORMALIZERS.get(name)
        if normalizer is None:
            value = _clean_string(raw)
        elif isinstance(raw, (dict, list)):
            value = None
        else:
            value = normalizer(raw)
        if value is None:
            return FieldValue()
        return FieldValue(value=value, confidence=field_confidences.get(name, confidence))

    def _build_show(
        self,
        entry: Dict[str, Any],
        confidence: float,
        field_confidences: Dict[str, float],
    ) -> ShowEntry:
        def fv(name: str, key: Optional[str] = None) -> FieldValue:
            return self._field_value(name, entry.get(key or name), confidence, field_confidences)

        return ShowEntry(
            core=CoreFields(**{name: fv(name) for name in CoreFields.FIELD_NAMES}),
            deal=DealFields(**{name: fv(name) for name in DealFields.FIELD_NAMES}),
            venue_name=fv("venue_name"),
            city=fv("city"),
        )

    def _merge_shows(self, results: List[ShowFieldsResult]) -> List[ShowEntry]:
        merged: List[ShowEntry] = []
        seen: set = set()
        for result in results:
            for show in result.shows:
                if show.is_empty:
                    continue
                identity = (
                    show.core.date.value,
                    normalize_key(show.core.title.value or show.core.artist.value or ""),
                )
                if identity[0] and identity[1]:
                    if identity in seen:
                        continue
                    seen.add(identity)
                merged.append(show)
        return merged

    def _pick_venue(self, results: List[VenueFieldsResult]) -> VenueFields:
        best: Optional[VenueFieldsResult] = None
        for result in results:
            if result.venue.is_empty:
                continue
            if best is None or result.confidence > best.confidence:
                best = result
        return best.venue if best else VenueFields()

    def _merge_contacts(self, results: List[ContactFieldsResult]) -> List[ContactEntry]:
        merged: List[ContactEntry] = []
        seen: set = set()
        for result in results:
            for contact in result.contacts:
                key = (contact.email.value or "").lower() or normalize_key(contact.name.value or "")
                if key and key in seen:
                    continue
                if key:
                    seen.add(key)
                merged.append(contact)
        return merged

    def _venue_for_show(self, show: ShowEntry, venue: VenueFields) -> VenueFields:
        if venue.is_empty or (
            not show.venue_name.is_empty
            and normalize_key(show.venue_name.value or "") != normalize_key(venue.name.value or "")
        ):
            return VenueFields(
                name=show.venue_name.model_copy(), city=show.city.model_copy()
            )
        resolved = venue.model_copy(deep=True)
        if resolved.city.is_empty and not show.city.is_empty:
            resolved.city = show.city.model_copy()
        return resolved

    def _assemble(
        self,
        shows: List[ShowEntry],
        venue: VenueFields,
        contacts: List[ContactEntry],
    ) -> List[Candidate]:
        if not shows:
            shows = [ShowEntry()]
        candidates = []
        for show in shows:
            candidate = Candidate(
                core=show.core.model_copy(deep=True),
                venue=self._venue_for_show(show, venue),
                deal=show.deal.model_copy(deep=True),
                contacts=[contact.model_copy(deep=True) for contact in contacts],
            )
            candidates.append(candidate.refresh_confidence())
        return candidates
