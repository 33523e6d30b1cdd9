"""PDF text-layer strategy.

Text is read with PyMuPDF (``pymupdf``) and, when that backend fails, with
pdfplumber. No OCR is attempted for PDFs: an image-only PDF comes back
flagged ``is_low_text`` with a logged hint.
"""

import asyncio
import io
import time
from abc import ABC, abstractmethod
from typing import Dict, List, Optional, Tuple

import structlog

from booking_intake.models.config import ExtractionSettings
from booking_intake.models.extraction import DocumentFormat, ExtractionResult
from booking_intake.services.format_extractors.base import FormatStrategy
from booking_intake.utils.cancellation import CancellationToken, guarded
from booking_intake.utils.exceptions import CancellationRequestedError

logger = structlog.get_logger()


def table_to_text(rows: List[List[Optional[str]]]) -> str:
    """Render a table as pipe-separated lines, one row per line."""
    lines = []
    for row in rows:
        cells = [str(c).replace("\n", " ").strip() if c is not None else "" for c in row]
        if any(cells):
            lines.append(" | ".join(cells))
    return "\n".join(lines)


class PDFBackend(ABC):
    """One library able to read a PDF text layer."""

    @property
    @abstractmethod
    def name(self) -> str:
        raise NotImplementedError("Subclasses must implement name property")

    @abstractmethod
    def validate_setup(self) -> bool:
        raise NotImplementedError("Subclasses must implement validate_setup()")

    @abstractmethod
    def read(self, content: bytes) -> Tuple[str, int]:
        """Return ``(text, page_count)``. Blocking; may raise."""
        raise NotImplementedError("Subclasses must implement read()")


class PyMuPDFBackend(PDFBackend):
    @property
    def name(self) -> str:
        return "pymupdf"

    def validate_setup(self) -> bool:
        try:
            import pymupdf  # noqa: F401

            return True
        except ImportError:
            logger.warning("pymupdf_not_installed")
            return False

    def read(self, content: bytes) -> Tuple[str, int]:
        import pymupdf

        with pymupdf.open(stream=content, filetype="pdf") as doc:
            pages = [page.get_text("text") for page in doc]
            return "\n".join(pages), len(pages)


class PDFPlumberBackend(PDFBackend):
    @property
    def name(self) -> str:
        return "pdfplumber"

    def validate_setup(self) -> bool:
        try:
            import pdfplumber  # noqa: F401

            return True
        except ImportError:
            logger.warning("pdfplumber_not_installed")
            return False

    def read(self, content: bytes) -> Tuple[str, int]:
        import pdfplumber

        parts: List[str] = []
        with pdfplumber.open(io.BytesIO(content)) as pdf:
            for page in pdf.pages:
                text = page.extract_text()
                if text:
                    parts.append(text)
                for table in page.extract_tables() or []:
                    rendered = table_to_text(table)
                    if rendered:
                        parts.append(rendered)
            return "\n".join(parts), len(pdf.pages)


AVAILABLE_BACKENDS = {
    "pymupdf": PyMuPDFBackend,
    "pdfplumber": PDFPlumberBackend,
}


class PDFExtractor(FormatStrategy):
    """Reads the PDF text layer through a fallback chain of backends."""

    def __init__(self, settings: Optional[ExtractionSettings] = None):
        super().__init__(settings)
        self.backends: Dict[str, PDFBackend] = {}
        for name in self.settings.pdf_backends:
            backend = AVAILABLE_BACKENDS[name]()
            if backend.validate_setup():
                self.backends[name] = backend
            else:
                logger.warning("pdf_backend_unavailable", backend=name)

    @property
    def format(self) -> DocumentFormat:
        return DocumentFormat.PDF

    def validate_setup(self) -> bool:
        return bool(self.backends)

    async def extract(
        self, content: bytes, cancel_token: Optional[CancellationToken] = None
    ) -> ExtractionResult:
        start_time = time.time()
        if not self.backends:
            return self.failure(
                "No PDF backend installed (pymupdf or pdfplumber)", start_time
            )

        errors: List[str] = []
        for name, backend in self.backends.items():
            try:
                text, page_count = await guarded(
                    asyncio.to_thread(backend.read, content), cancel_token
                )
            except CancellationRequestedError:
                raise
            except Exception as e:
                logger.error("pdf_backend_failed", backend=name, error=str(e))
                errors.append(f"{name}: {e}")
                continue

            result = self.build_result(
                text, start_time, page_count=page_count, backend=name
            )
            if result.is_low_text:
                logger.warning(
                    "pdf_low_text_detected",
                    backend=name,
                    word_count=result.word_count,
                    page_count=page_count,
                    hint="PDF may be scanned; OCR is not applied to PDFs",
                )
            return result

        return self.failure(
            "PDF extraction failed: " + "; ".join(errors), start_time
        )
