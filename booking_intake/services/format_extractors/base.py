"""Abstract base class for format extraction strategies.

Every strategy turns raw bytes of one format into an ExtractionResult.
Strategies must not raise: failures are returned as ``error`` with
empty text. The only exception allowed through is cancellation.
"""

import time
from abc import ABC, abstractmethod
from typing import Optional

import structlog

from booking_intake.models.config import ExtractionSettings
from booking_intake.models.extraction import DocumentFormat, ExtractionResult
from booking_intake.utils.cancellation import CancellationToken
from booking_intake.utils.text import count_words

logger = structlog.get_logger()


def is_low_text_document(
    word_count: int,
    page_count: Optional[int],
    min_words: int = 200,
    min_words_per_page: float = 30.0,
) -> bool:
    """Heuristic for "probably a scan with no text layer".

    Zero words is always low-text. Otherwise a document is low-text when
    it has fewer than ``min_words`` words or fewer than
    ``min_words_per_page`` words per page. Without a page count the word
    count itself is the density.
    """
    if word_count <= 0:
        return True
    density = word_count / page_count if page_count else float(word_count)
    return word_count < min_words or density < min_words_per_page


class FormatStrategy(ABC):
    """
    Base class for one document format.

    Concrete strategies implement:
    - extract(): bytes -> ExtractionResult
    - validate_setup(): whether the backing library is importable
    - format property
    """

    def __init__(self, settings: Optional[ExtractionSettings] = None):
        self.settings = settings or ExtractionSettings()

    @property
    @abstractmethod
    def format(self) -> DocumentFormat:
        raise NotImplementedError("Subclasses must implement format property")

    @abstractmethod
    def validate_setup(self) -> bool:
        raise NotImplementedError("Subclasses must implement validate_setup()")

    @abstractmethod
    async def extract(
        self, content: bytes, cancel_token: Optional[CancellationToken] = None
    ) -> ExtractionResult:
        """
        Extract text from ``content``.

        Raises:
            Should NOT raise exceptions - catch and return error in result.
            CancellationRequestedError is the one exception let through.
        """
        raise NotImplementedError("Subclasses must implement extract()")

    def is_low_text(self, word_count: int, page_count: Optional[int]) -> bool:
        return is_low_text_document(
            word_count,
            page_count,
            self.settings.low_text_min_words,
            self.settings.low_text_min_words_per_page,
        )

    def build_result(
        self,
        text: str,
        start_time: float,
        page_count: Optional[int] = None,
        backend: Optional[str] = None,
        apply_low_text: bool = True,
    ) -> ExtractionResult:
        words = count_words(text)
        return ExtractionResult(
            text=text,
            page_count=page_count,
            word_count=words,
            is_low_text=self.is_low_text(words, page_count) if apply_low_text else False,
            format=self.format,
            backend=backend,
            duration_seconds=time.time() - start_time,
        )

    def failure(
        self, error: str, start_time: float, backend: Optional[str] = None
    ) -> ExtractionResult:
        return ExtractionResult(
            text="",
            word_count=0,
            is_low_text=False,
            error=error,
            format=self.format,
            backend=backend,
            duration_seconds=time.time() - start_time,
        )
