"""Exception hierarchy for the booking intake pipeline.

The extraction components never let these escape their own boundary;
they are raised internally and converted into result values (see
``ExtractionResult.error`` and ``Degraded``). Only the job runner and
the CLI see them as real exceptions.

All exceptions inherit from IntakeError so a caller can catch every
pipeline-related error in a single except block when needed.
"""

from typing import Dict, Optional


class IntakeError(Exception):
    """Base exception for all intake pipeline errors

    ```python
    try:
        job = await runner.retry(job, existing_records)
    except IntakeError as e:
        logger.error("retry_rejected", error=str(e))
    ```
    """

    pass


class UnsupportedFormatError(IntakeError):
    """Neither the MIME type nor the file extension names a supported format"""

    def __init__(self, label: str):
        self.label = label
        super().__init__(f"Unsupported format: {label}")


class ExtractionFailure(IntakeError):
    """A format-specific library threw or produced unusable output

    Raised when:
    - Bytes are not valid UTF-8 for a text document
    - The PDF/DOCX container cannot be opened
    - OCR dependencies are missing or the image cannot be decoded
    """

    pass


class FileSizeError(ExtractionFailure):
    """Input is larger than the configured max_file_size_mb"""

    pass


class BackendUnavailableError(IntakeError):
    """Structured-extraction backend has no credentials or cannot be reached"""

    pass


class MalformedModelOutputError(IntakeError):
    """Backend answered but the output could not be decoded into the schema"""

    pass


class JSONParseError(MalformedModelOutputError):
    """Backend output contained no parseable JSON document"""

    pass


class CancellationRequestedError(IntakeError):
    """The owning job was abandoned while work was in flight"""

    def __init__(self, message: str = "Import job cancelled"):
        super().__init__(message)


class InvalidTransitionError(IntakeError):
    """A lifecycle operation is not allowed from the job's current status"""

    def __init__(self, current: str, target: str, operation: Optional[str] = None):
        self.current = current
        self.target = target
        self.operation = operation
        label = f"{operation}: " if operation else ""
        super().__init__(f"{label}cannot move job from '{current}' to '{target}'")


class JobNotFoundError(IntakeError):
    """No persisted job exists for the requested id"""

    pass


class AllProvidersFailedError(BackendUnavailableError):
    """Every configured LLM provider failed for one request

    Attributes:
        provider_errors: Dict mapping provider name to its error
    """

    def __init__(self, provider_errors: Dict[str, Exception]):
        self.provider_errors = provider_errors
        details = ", ".join(f"{name}: {err}" for name, err in provider_errors.items())
        super().__init__(f"All LLM providers failed: {details}")
