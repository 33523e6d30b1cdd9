"""Image OCR strategy (Pillow + pytesseract).

OCR is CPU-bound and runs in a worker thread. Its output is never
subjected to the low-text heuristic: a single flyer line is a valid
result.
"""

import asyncio
import io
import time
from typing import Optional

import structlog

from booking_intake.models.extraction import DocumentFormat, ExtractionResult
from booking_intake.services.format_extractors.base import FormatStrategy
from booking_intake.utils.cancellation import CancellationToken, guarded
from booking_intake.utils.exceptions import CancellationRequestedError

logger = structlog.get_logger()


def run_ocr(content: bytes, language: str) -> str:
    """OCR the whole image. Blocking; may raise."""
    from PIL import Image
    import pytesseract

    with Image.open(io.BytesIO(content)) as image:
        if image.mode not in ("RGB", "L"):
            image = image.convert("RGB")
        return (pytesseract.image_to_string(image, lang=language) or "").strip()


class ImageExtractor(FormatStrategy):
    @property
    def format(self) -> DocumentFormat:
        return DocumentFormat.IMAGE

    def validate_setup(self) -> bool:
        try:
            import PIL  # noqa: F401
            import pytesseract  # noqa: F401

            return True
        except ImportError:
            logger.warning("ocr_dependencies_missing")
            return False

    async def extract(
        self, content: bytes, cancel_token: Optional[CancellationToken] = None
    ) -> ExtractionResult:
        start_time = time.time()
        if not self.validate_setup():
            return self.failure(
                "OCR dependencies (Pillow + pytesseract) are not installed",
                start_time,
            )

        try:
            text = await guarded(
                asyncio.to_thread(run_ocr, content, self.settings.ocr_language),
                cancel_token,
            )
        except CancellationRequestedError:
            raise
        except Exception as e:
            logger.error("ocr_failed", error=str(e), size_bytes=len(content))
            return self.failure(f"OCR failed: {e}", start_time, backend="tesseract")

        return self.build_result(
            text, start_time, backend="tesseract", apply_low_text=False
        )
