"""Validated decode step for backend output.

Backend output is loosely shaped: sometimes fenced, sometimes an array
where an object was requested, sometimes prose around the JSON. The
decoder never raises; it returns ``Decoded`` or ``Degraded``.

1. strict JSON decode of the (unfenced) content
2. fall back to the outermost ``{...}`` / ``[...]`` span in the content
3. normalize shape: unwrap arrays to their first element
4. emit Degraded only if normalization also fails
"""

import json
import re
from dataclasses import dataclass, field
from typing import Any, Dict, Optional, Union

import structlog

from booking_intake.models.candidate import clamp_confidence
from booking_intake.models.import_job import ErrorKind
from booking_intake.utils.exceptions import JSONParseError

logger = structlog.get_logger()

_OBJECT_SPAN = re.compile(r"\{[\s\S]*\}")
_ARRAY_SPAN = re.compile(r"\[[\s\S]*\]")
FIELD_CONFIDENCE_KEYS = ("confidence_by_field", "_confidence", "field_confidence")


@dataclass(frozen=True)
class Decoded:
    """Successfully decoded payload.

    ``confidence`` is None when the backend did not report one.
    """

    payload: Dict[str, Any]
    confidence: Optional[float] = None
    field_confidences: Dict[str, float] = field(default_factory=dict)


@dataclass(frozen=True)
class Degraded:
    """Why a field group produced no usable data"""

    kind: ErrorKind
    reason: str


DecodeResult = Union[Decoded, Degraded]


class ResponseParser:
    """Decodes raw backend text into a normalized JSON object."""

    def decode(self, content: Optional[str]) -> DecodeResult:
        """
        Args:
            content: Raw text returned by the backend

        Returns:
            Decoded or Degraded, never raises
        """
        if content is None or not content.strip():
            return Degraded(ErrorKind.MALFORMED_MODEL_OUTPUT, "Empty model output")

        try:
            data = self._parse_json(self._clean_json_content(content))
        except JSONParseError as e:
            logger.warning("model_output_not_json", error=str(e)[:200])
            return Degraded(ErrorKind.MALFORMED_MODEL_OUTPUT, str(e)[:300])

        payload = self._normalize_shape(data)
        if isinstance(payload, Degraded):
            logger.warning("model_output_wrong_shape", reason=payload.reason)
            return payload

        raw_confidence = payload.pop("confidence", None)
        confidence = None if raw_confidence is None else clamp_confidence(raw_confidence)

        field_confidences: Dict[str, float] = {}
        for key in FIELD_CONFIDENCE_KEYS:
            mapping = payload.pop(key, None)
            if isinstance(mapping, dict):
                for name, value in mapping.items():
                    field_confidences[str(name)] = clamp_confidence(value)

        return Decoded(
            payload=payload,
            confidence=confidence,
            field_confidences=field_confidences,
        )

    def _clean_json_content(self, content: str) -> str:
        """Remove code block markers."""
        content = content.strip()

        if content.startswith("```json"):
            content = content[7:]
        elif content.startswith("```"):
            content = content[3:]

        if content.endswith("```"):
            content = content[:-3]

        return content.strip()

    def _parse_json(self, content: str) -> Any:
        """
        Raises:
            JSONParseError: If neither the content nor an embedded
                object/array span is valid JSON
        """
        try:
            return json.loads(content)
        except json.JSONDecodeError as e:
            first_error = e

        for pattern in (_OBJECT_SPAN, _ARRAY_SPAN):
            match = pattern.search(content)
            if not match:
                continue
            try:
                return json.loads(match.group(0))
            except json.JSONDecodeError:
                continue

        raise JSONParseError(
            f"Invalid JSON in model output: {first_error}. Content: {content[:200]}"
        )

    def _normalize_shape(self, data: Any) -> Union[Dict[str, Any], Degraded]:
        # an array where an object was requested: first element, or nothing
        if isinstance(data, list):
            if not data:
                return {"confidence": 0.0}
            data = data[0]

        if isinstance(data, dict):
            return dict(data)

        return Degraded(
            ErrorKind.MALFORMED_MODEL_OUTPUT,
            f"Expected a JSON object, got {type(data).__name__}",
        )
