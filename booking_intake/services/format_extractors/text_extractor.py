"""Plain-text strategy (txt, md, csv, json, html, xml and forwarded email)."""

import time
from typing import Optional

import structlog

from booking_intake.models.extraction import DocumentFormat, ExtractionResult
from booking_intake.services.format_extractors.base import FormatStrategy
from booking_intake.utils.cancellation import CancellationToken

logger = structlog.get_logger()


class TextExtractor(FormatStrategy):
    """Decodes bytes as UTF-8; nothing else."""

    @property
    def format(self) -> DocumentFormat:
        return DocumentFormat.TEXT

    def validate_setup(self) -> bool:
        return True

    async def extract(
        self, content: bytes, cancel_token: Optional[CancellationToken] = None
    ) -> ExtractionResult:
        start_time = time.time()
        try:
            # utf-8-sig drops a leading BOM
            text = content.decode("utf-8-sig")
        except UnicodeDecodeError as e:
            logger.warning("text_decode_failed", error=str(e), size_bytes=len(content))
            return self.failure(
                f"Failed to decode text as UTF-8: {e}", start_time, backend="utf-8"
            )
        return self.build_result(text, start_time, backend="utf-8")
