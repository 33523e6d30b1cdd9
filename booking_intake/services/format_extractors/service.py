"""Format-dispatching extraction service.

FormatExtractor is a total function over its input: whatever the bytes,
``extract`` returns an ExtractionResult. Only cancellation propagates.
"""

import time
from typing import Dict, Optional

import structlog

from booking_intake.models.config import ExtractionSettings
from booking_intake.models.extraction import DocumentFormat, ExtractionResult
from booking_intake.observability.metrics import FORMAT_EXTRACTIONS, LOW_TEXT_DOCUMENTS
from booking_intake.services.format_extractors.base import FormatStrategy
from booking_intake.services.format_extractors.docx_extractor import DocxExtractor
from booking_intake.services.format_extractors.formats import resolve_format
from booking_intake.services.format_extractors.image_extractor import ImageExtractor
from booking_intake.services.format_extractors.pdf_extractor import PDFExtractor
from booking_intake.services.format_extractors.text_extractor import TextExtractor
from booking_intake.utils.cancellation import CancellationToken
from booking_intake.utils.exceptions import (
    CancellationRequestedError,
    FileSizeError,
    UnsupportedFormatError,
)

logger = structlog.get_logger()


class FormatExtractor:
    """
    Dispatches raw bytes to the strategy for their format.

    - MIME type takes precedence over the file extension
    - Unrecognized inputs yield ``Unsupported format: <ext-or-mime>``
    - Empty input yields empty text, no error
    """

    def __init__(
        self,
        settings: Optional[ExtractionSettings] = None,
        strategies: Optional[Dict[DocumentFormat, FormatStrategy]] = None,
    ):
        self.settings = settings or ExtractionSettings()
        self.strategies: Dict[DocumentFormat, FormatStrategy] = strategies or {
            DocumentFormat.TEXT: TextExtractor(self.settings),
            DocumentFormat.PDF: PDFExtractor(self.settings),
            DocumentFormat.DOCX: DocxExtractor(self.settings),
            DocumentFormat.IMAGE: ImageExtractor(self.settings),
        }

    async def extract(
        self,
        content: bytes,
        file_name: str,
        mime_type: Optional[str] = None,
        cancel_token: Optional[CancellationToken] = None,
    ) -> ExtractionResult:
        """
        Extract text from one document.

        Args:
            content: Raw file bytes
            file_name: Declared file name (used for the extension)
            mime_type: Declared MIME type, if any
            cancel_token: Optional token for abandoning OCR/parsing

        Returns:
            ExtractionResult; failures are in ``error`` with empty text

        Raises:
            CancellationRequestedError: Only when the token fires
        """
        start_time = time.time()
        doc_format, label = resolve_format(file_name, mime_type)
        format_label = doc_format.value if doc_format else "unknown"

        try:
            result = await self._dispatch(content, doc_format, label, cancel_token)
        except CancellationRequestedError:
            raise
        except (UnsupportedFormatError, FileSizeError) as e:
            result = ExtractionResult(
                error=str(e),
                word_count=0,
                format=doc_format,
                duration_seconds=time.time() - start_time,
            )
        except Exception as e:
            # strategies should not raise; anything that does is still captured
            logger.exception("format_extraction_crashed", file_name=file_name)
            result = ExtractionResult(
                error=f"Extraction failed: {e}",
                word_count=0,
                format=doc_format,
                duration_seconds=time.time() - start_time,
            )

        status = "success" if result.success else "failed"
        FORMAT_EXTRACTIONS.labels(format=format_label, status=status).inc()
        if result.is_low_text:
            LOW_TEXT_DOCUMENTS.labels(format=format_label).inc()

        log = logger.warning if result.error else logger.info
        log(
            "format_extraction_completed",
            file_name=file_name,
            mime_type=mime_type,
            format=format_label,
            backend=result.backend,
            word_count=result.word_count,
            page_count=result.page_count,
            is_low_text=result.is_low_text,
            error=result.error,
        )
        return result

    async def _dispatch(
        self,
        content: bytes,
        doc_format: Optional[DocumentFormat],
        label: str,
        cancel_token: Optional[CancellationToken],
    ) -> ExtractionResult:
        if doc_format is None or doc_format not in self.strategies:
            raise UnsupportedFormatError(label)

        max_bytes = self.settings.max_file_size_mb * 1024 * 1024
        if len(content) > max_bytes:
            raise FileSizeError(
                f"File is {len(content)} bytes; limit is "
                f"{self.settings.max_file_size_mb} MB"
            )

        strategy = self.strategies[doc_format]
        if not content:
            return strategy.build_result(
                "",
                time.time(),
                page_count=0 if doc_format == DocumentFormat.PDF else None,
                apply_low_text=doc_format != DocumentFormat.IMAGE,
            )

        return await strategy.extract(content, cancel_token)
