"""Format extraction data models.

ExtractionResult is produced once per input document by the format
extractor and never modified afterwards.
"""

from enum import Enum
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field


class DocumentFormat(str, Enum):
    """Formats the format extractor can dispatch to"""

    TEXT = "text"
    PDF = "pdf"
    DOCX = "docx"
    IMAGE = "image"


class DocumentType(str, Enum):
    """Coarse document category inferred from the file name"""

    CONTRACT = "contract"
    RIDER = "rider"
    VISA = "visa"
    BOARDING_PASS = "boarding_pass"
    OTHER = "other"


class ExtractionResult(BaseModel):
    """Raw text extracted from one document plus quality signals.

    Failures never raise: ``error`` is populated and ``text`` is empty.
    ``is_low_text`` flags digital formats whose word density suggests a
    scanned page with no text layer; it is always False for OCR output.
    """

    text: str = Field(default="", description="Extracted text")
    page_count: Optional[int] = Field(
        default=None, ge=0, description="Pages (PDF only)"
    )
    word_count: Optional[int] = Field(
        default=None, ge=0, description="Whitespace-separated words in text"
    )
    is_low_text: bool = Field(
        default=False, description="Likely scanned / image-only document"
    )
    error: Optional[str] = Field(default=None, description="Failure description")
    format: Optional[DocumentFormat] = Field(
        default=None, description="Format the input was dispatched to"
    )
    backend: Optional[str] = Field(
        default=None, description="Library that produced the text"
    )
    duration_seconds: float = Field(default=0.0, ge=0.0)

    model_config = ConfigDict(frozen=True)

    @property
    def success(self) -> bool:
        return self.error is None

    @property
    def is_unusable(self) -> bool:
        """True when there is an error and no text at all to work with."""
        return self.error is not None and not self.text.strip()
