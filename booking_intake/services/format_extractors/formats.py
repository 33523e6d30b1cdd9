"""Format resolution and document categorization."""

import re
from pathlib import PurePath
from typing import Optional, Tuple

from booking_intake.models.extraction import DocumentFormat, DocumentType

TEXT_EXTENSIONS = frozenset({"txt", "md", "csv", "json", "html", "htm", "xml", "eml"})
# legacy binary .doc is not an OOXML package and python-docx cannot open it
DOCX_EXTENSIONS = frozenset({"docx"})
IMAGE_EXTENSIONS = frozenset({"jpg", "jpeg", "png", "bmp", "webp", "tif", "tiff"})

TEXT_MIME_TYPES = frozenset(
    {"application/json", "application/xml", "application/xhtml+xml", "message/rfc822"}
)
DOCX_MIME_TYPES = frozenset(
    {"application/vnd.openxmlformats-officedocument.wordprocessingml.document"}
)

_CATEGORY_PATTERNS = (
    (DocumentType.BOARDING_PASS, re.compile(r"boarding|flight|itinerary", re.I)),
    (DocumentType.VISA, re.compile(r"visa|work[\s_-]*permit", re.I)),
    (DocumentType.RIDER, re.compile(r"rider|hospitality|tech[\s_-]*spec", re.I)),
    (DocumentType.CONTRACT, re.compile(r"contract|agreement|offer|deal[\s_-]*memo", re.I)),
)


def file_extension(file_name: str) -> str:
    return PurePath(file_name or "").suffix.lower().lstrip(".")


def format_from_mime(mime_type: Optional[str]) -> Optional[DocumentFormat]:
    if not mime_type:
        return None
    mime = mime_type.split(";", 1)[0].strip().lower()
    if mime == "application/pdf":
        return DocumentFormat.PDF
    if mime in DOCX_MIME_TYPES:
        return DocumentFormat.DOCX
    if mime.startswith("image/"):
        return DocumentFormat.IMAGE
    if mime.startswith("text/") or mime in TEXT_MIME_TYPES:
        return DocumentFormat.TEXT
    return None


def format_from_extension(extension: str) -> Optional[DocumentFormat]:
    if extension == "pdf":
        return DocumentFormat.PDF
    if extension in DOCX_EXTENSIONS:
        return DocumentFormat.DOCX
    if extension in IMAGE_EXTENSIONS:
        return DocumentFormat.IMAGE
    if extension in TEXT_EXTENSIONS:
        return DocumentFormat.TEXT
    return None


def resolve_format(
    file_name: str, mime_type: Optional[str] = None
) -> Tuple[Optional[DocumentFormat], str]:
    """Pick the format for an input; a recognized MIME type wins over the extension.

    Returns:
        ``(format, label)`` where ``format`` is None when nothing matched
        and ``label`` names the extension or MIME type for error messages.
    """
    extension = file_extension(file_name)
    label = extension or (mime_type or "").strip() or "unknown"

    by_mime = format_from_mime(mime_type)
    if by_mime is not None:
        return by_mime, label
    return format_from_extension(extension), label


def categorize_document(file_name: str) -> DocumentType:
    """Coarse category from keywords in the file name."""
    stem = PurePath(file_name or "").stem
    for category, pattern in _CATEGORY_PATTERNS:
        if pattern.search(stem):
            return category
    return DocumentType.OTHER
