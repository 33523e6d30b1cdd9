"""Extraction phase - raw bytes to normalized text."""

from booking_intake.models.extraction import ExtractionResult
from booking_intake.models.import_job import (
    ErrorKind,
    ImportJobStatus,
    SourceFileMetadata,
)
from booking_intake.orchestration.phases.base import JobPhase
from booking_intake.services.format_extractors import categorize_document
from booking_intake.utils.text import normalize_text

RETAINED_TEXT_NAME = "retained-text.txt"


class ExtractionPhase(JobPhase[ExtractionResult]):
    """Extraction phase.

    Responsibilities:
    - Run the format extractor over the source bytes
    - Record raw and normalized text plus source file metadata
    - Record extraction errors; fatal only when no text came back

    When a retry is issued without the source bytes, the text kept from
    the previous attempt is re-extracted as plain text.
    """

    @property
    def name(self) -> str:
        return "extraction"

    @property
    def status(self) -> ImportJobStatus:
        return ImportJobStatus.EXTRACTING

    async def execute(self) -> ExtractionResult:
        context = self.context
        job = context.job

        if context.content is not None:
            result = await context.format_extractor.extract(
                context.content,
                context.file_name or "",
                context.mime_type,
                context.cancel_token,
            )
            job.source_file_metadata = SourceFileMetadata(
                file_name=context.file_name or "",
                mime_type=context.mime_type,
                size_bytes=len(context.content),
                format=result.format,
                document_type=categorize_document(context.file_name or ""),
                page_count=result.page_count,
                word_count=result.word_count,
                is_low_text=result.is_low_text,
            )
        elif job.raw_text:
            result = await context.format_extractor.extract(
                job.raw_text.encode("utf-8"),
                RETAINED_TEXT_NAME,
                "text/plain",
                context.cancel_token,
            )
            if job.source_file_metadata is not None:
                job.source_file_metadata.word_count = result.word_count
        else:
            result = ExtractionResult(
                error="Source content is not available for re-extraction",
                word_count=0,
            )

        job.raw_text = result.text
        job.normalized_text = normalize_text(result.text)
        context.extraction = result

        if result.error:
            kind = (
                ErrorKind.UNSUPPORTED_FORMAT
                if result.error.startswith("Unsupported format")
                else ErrorKind.EXTRACTION_FAILURE
            )
            context.add_error(self.name, kind, result.error, fatal=result.is_unusable)
        elif result.is_low_text:
            self.logger.warning(
                "low_text_document",
                word_count=result.word_count,
                page_count=result.page_count,
                hint="Likely a scanned document; upload an image of the pages for OCR",
            )

        return result
