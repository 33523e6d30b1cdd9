"""Format extraction: bytes of PDF, DOCX, text or images to plain text."""

from booking_intake.services.format_extractors.base import (
    FormatStrategy,
    is_low_text_document,
)
from booking_intake.services.format_extractors.docx_extractor import DocxExtractor
from booking_intake.services.format_extractors.formats import (
    categorize_document,
    resolve_format,
)
from booking_intake.services.format_extractors.image_extractor import ImageExtractor
from booking_intake.services.format_extractors.pdf_extractor import PDFExtractor
from booking_intake.services.format_extractors.service import FormatExtractor
from booking_intake.services.format_extractors.text_extractor import TextExtractor

__all__ = [
    "FormatExtractor",
    "FormatStrategy",
    "TextExtractor",
    "PDFExtractor",
    "DocxExtractor",
    "ImageExtractor",
    "is_low_text_document",
    "resolve_format",
    "categorize_document",
]
