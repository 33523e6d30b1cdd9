"""DOCX strategy using python-docx."""

import asyncio
import io
import time
from typing import List, Optional

import structlog

from booking_intake.models.extraction import DocumentFormat, ExtractionResult
from booking_intake.services.format_extractors.base import FormatStrategy
from booking_intake.services.format_extractors.pdf_extractor import table_to_text
from booking_intake.utils.cancellation import CancellationToken, guarded
from booking_intake.utils.exceptions import CancellationRequestedError

logger = structlog.get_logger()


def read_docx(content: bytes) -> str:
    """Paragraph text followed by table rows. Blocking; may raise."""
    from docx import Document as load_docx

    document = load_docx(io.BytesIO(content))
    parts: List[str] = [p.text for p in document.paragraphs if p.text.strip()]
    for table in document.tables:
        rows = [[cell.text for cell in row.cells] for row in table.rows]
        rendered = table_to_text(rows)
        if rendered:
            parts.append(rendered)
    return "\n".join(parts)


class DocxExtractor(FormatStrategy):
    @property
    def format(self) -> DocumentFormat:
        return DocumentFormat.DOCX

    def validate_setup(self) -> bool:
        try:
            import docx  # noqa: F401

            return True
        except ImportError:
            logger.warning("python_docx_not_installed")
            return False

    async def extract(
        self, content: bytes, cancel_token: Optional[CancellationToken] = None
    ) -> ExtractionResult:
        start_time = time.time()
        if not self.validate_setup():
            return self.failure("python-docx not installed", start_time)

        try:
            text = await guarded(asyncio.to_thread(read_docx, content), cancel_token)
        except CancellationRequestedError:
            raise
        except Exception as e:
            logger.error("docx_extraction_failed", error=str(e))
            return self.failure(
                f"DOCX extraction failed: {e}", start_time, backend="python-docx"
            )

        # no page count: word count is compared against the word floor only
        return self.build_result(text, start_time, backend="python-docx")
