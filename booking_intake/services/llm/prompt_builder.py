"""Prompt construction for the three field groups.

Each group (show, venue, contacts) gets a fixed-schema instruction that
enumerates every target field and its expected shape. The enhanced
variant, used by ``improve``, adds stricter reading instructions.
"""

import json
from enum import Enum
from typing import Dict, Tuple

import structlog

logger = structlog.get_logger()


class FieldGroupName(str, Enum):
    SHOW = "show"
    VENUE = "venue"
    CONTACTS = "contacts"


SHOW_SCHEMA: Dict[str, str] = {
    "title": "string | null - show or event title",
    "artist": "string | null - performing artist or act",
    "date": "string | null - show date as YYYY-MM-DD",
    "show_time": "string | null - set or show start time, e.g. 21:00",
    "door_time": "string | null - doors time",
    "soundcheck_time": "string | null - soundcheck time",
    "setup_time": "string | null - load-in / setup time",
    "venue_name": "string | null - venue for this date",
    "city": "string | null - city for this date",
    "fee": "string | null - artist fee amount, digits only",
    "guarantee": "string | null - guarantee amount, digits only",
    "currency": "string | null - ISO currency code",
    "deal_type": "string | null - flat, versus, door split, ...",
}

VENUE_SCHEMA: Dict[str, str] = {
    "name": "string | null",
    "address": "string | null - street address",
    "city": "string | null",
    "state": "string | null - state or region",
    "zip": "string | null - postal code",
    "country": "string | null",
    "capacity": "integer | null",
    "phone": "string | null",
    "email": "string | null",
    "website": "string | null",
}

CONTACT_SCHEMA: Dict[str, str] = {
    "name": "string | null",
    "email": "string | null",
    "phone": "string | null",
    "role": "string | null - promoter, production, hospitality, ...",
    "company": "string | null",
}

SYSTEM_PROMPT = (
    "You extract show-booking data from documents and emails for a touring "
    "artist's team. You answer with a single JSON document and nothing else."
)

ENHANCED_INSTRUCTIONS = """
**Second pass:**
An earlier extraction of this document was judged incomplete. Read every
line again, including signatures, tables and quoted replies. Prefer values
stated explicitly over inferred ones, resolve relative dates against any
year mentioned in the document, and report per-field confidence in
"confidence_by_field".
"""


class PromptBuilder:
    """Builds (system, prompt) pairs for one field group."""

    def build(
        self, group: FieldGroupName, text: str, enhanced: bool = False
    ) -> Tuple[str, str]:
        """
        Args:
            group: Field group to extract
            text: Normalized document text
            enhanced: Use the stronger second-pass instructions

        Returns:
            ``(system_prompt, user_prompt)``
        """
        if group == FieldGroupName.SHOW:
            schema = {
                "shows": [SHOW_SCHEMA],
                "confidence": "number 0-1 for the whole answer",
                "confidence_by_field": {"<field>": "number 0-1 (optional)"},
            }
            task = (
                "List every show date described in the document. A routing "
                "sheet or tour itinerary yields one entry per date."
            )
        elif group == FieldGroupName.VENUE:
            schema = dict(VENUE_SCHEMA)
            schema["confidence"] = "number 0-1 for the whole answer"
            schema["confidence_by_field"] = {"<field>": "number 0-1 (optional)"}
            task = "Describe the main venue the document is about."
        else:
            schema = {
                "contacts": [CONTACT_SCHEMA],
                "confidence": "number 0-1 for the whole answer",
            }
            task = "List the people to contact about this booking."

        prompt = self._build_prompt_template(
            task=task,
            schema_json=json.dumps(schema, indent=2),
            text=text,
            enhanced=enhanced,
        )

        logger.debug(
            "prompt_built",
            group=group.value,
            enhanced=enhanced,
            prompt_length=len(prompt),
        )
        return SYSTEM_PROMPT, prompt

    def _build_prompt_template(
        self, task: str, schema_json: str, text: str, enhanced: bool
    ) -> str:
        extra = ENHANCED_INSTRUCTIONS if enhanced else ""
        return f"""{task}

**Output schema:**
{schema_json}

**Instructions:**
1. Use only information present in the document
2. Use null for any field the document does not state; never guess
3. Dates must be YYYY-MM-DD; times 24-hour HH:MM; amounts digits only
4. "confidence" is your certainty in the whole answer, between 0 and 1
{extra}
**Document:**
{text}

Return ONLY valid JSON matching the output schema."""
