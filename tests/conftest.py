"""Shared test fixtures: a scripted stand-in for the LLM service."""

import asyncio
import json
from typing import Any, Dict, List, Optional, Union

import pytest
import structlog

from booking_intake.services.llm.prompt_builder import FieldGroupName
from booking_intake.services.llm.providers.base import LLMResponse

GROUP_MARKERS = {
    "List every show date": FieldGroupName.SHOW,
    "Describe the main venue": FieldGroupName.VENUE,
    "List the people to contact": FieldGroupName.CONTACTS,
}

Scripted = Union[str, Dict[str, Any], List[Any], Exception, None]


def group_of(prompt: str) -> FieldGroupName:
    for marker, group in GROUP_MARKERS.items():
        if prompt.startswith(marker):
            return group
    raise AssertionError(f"unrecognized prompt: {prompt[:60]}")


class FakeLLMService:
    """Answers each field group with a scripted payload.

    A dict/list is sent as JSON, a str verbatim, an Exception is raised.
    ``delay`` makes every call sleep first (for timeout tests).
    """

    def __init__(
        self,
        show: Scripted = None,
        venue: Scripted = None,
        contacts: Scripted = None,
        delay: float = 0.0,
        available: bool = True,
    ):
        self.scripts: Dict[FieldGroupName, Scripted] = {
            FieldGroupName.SHOW: show if show is not None else {"shows": [], "confidence": 0.0},
            FieldGroupName.VENUE: venue if venue is not None else {"confidence": 0.0},
            FieldGroupName.CONTACTS: contacts
            if contacts is not None
            else {"contacts": [], "confidence": 0.0},
        }
        self.delay = delay
        self.is_available = available
        self.calls: List[Dict[str, Any]] = []

    async def generate(
        self, prompt: str, system: Optional[str] = None, prefer_fallback: bool = False
    ) -> LLMResponse:
        group = group_of(prompt)
        self.calls.append(
            {"group": group, "prompt": prompt, "prefer_fallback": prefer_fallback}
        )
        if self.delay:
            await asyncio.sleep(self.delay)

        script = self.scripts[group]
        if isinstance(script, Exception):
            raise script
        content = script if isinstance(script, str) else json.dumps(script)
        return LLMResponse(
            content=content,
            input_tokens=10,
            output_tokens=10,
            model="fake-model",
            provider="fake",
            latency_ms=1.0,
        )

    def groups_called(self) -> List[FieldGroupName]:
        return [call["group"] for call in self.calls]


SUMMER_TOUR_SHOW = {
    "shows": [
        {
            "title": "Summer Tour",
            "artist": "The Wanderers",
            "date": "June 1, 2025",
            "show_time": "9pm",
            "door_time": "8:00 PM",
            "venue_name": "Mohawk",
            "city": "Austin",
            "fee": "$5,000",
            "currency": "USD",
        }
    ],
    "confidence": 0.9,
}

MOHAWK_VENUE = {
    "name": "Mohawk",
    "address": "912 Red River St",
    "city": "Austin",
    "state": "TX",
    "capacity": "1,000",
    "confidence": 0.85,
}

PROMOTER_CONTACTS = {
    "contacts": [
        {"name": "Dana Reyes", "email": "dana@promo.example", "role": "promoter"}
    ],
    "confidence": 0.8,
}


@pytest.fixture
def healthy_llm() -> FakeLLMService:
    return FakeLLMService(
        show=SUMMER_TOUR_SHOW, venue=MOHAWK_VENUE, contacts=PROMOTER_CONTACTS
    )


@pytest.fixture(autouse=True)
def reset_structlog():
    """CLI commands reconfigure logging onto the runner's streams."""
    yield
    structlog.reset_defaults()
