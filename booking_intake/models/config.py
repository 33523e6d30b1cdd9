"""Application configuration models.

``IntakeConfig()`` is fully usable with defaults; a YAML file loaded by
ConfigManager only overrides what it names.
"""

from typing import List, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

from booking_intake.models.import_job import ExtractionMode
from booking_intake.models.llm import LLMConfig

PDFBackendName = Literal["pymupdf", "pdfplumber"]


class ExtractionSettings(BaseModel):
    """Format extraction and low-text heuristic settings"""

    low_text_min_words: int = Field(
        default=200, ge=0, description="Below this many words a document is low-text"
    )
    low_text_min_words_per_page: float = Field(
        default=30.0, ge=0.0, description="Minimum word density per page"
    )
    pdf_backends: List[PDFBackendName] = Field(
        default_factory=lambda: ["pymupdf", "pdfplumber"],
        min_length=1,
        description="PDF text-layer backends, tried in order",
    )
    ocr_language: str = Field(default="eng", description="Tesseract language code")
    max_file_size_mb: int = Field(default=25, gt=0, le=500)


class StructuringSettings(BaseModel):
    """Structured extraction settings"""

    backend_timeout_seconds: float = Field(
        default=45.0, gt=0.0, le=300.0, description="Per-call backend timeout"
    )
    max_chunk_words: int = Field(default=4000, ge=100, le=100000)
    min_chunk_words: int = Field(default=400, ge=0)
    default_field_confidence: float = Field(
        default=0.8,
        ge=0.0,
        le=1.0,
        description="Used when the backend returns data without any confidence",
    )

    @model_validator(mode="after")
    def validate_chunk_bounds(self) -> "StructuringSettings":
        if self.min_chunk_words >= self.max_chunk_words:
            raise ValueError("min_chunk_words must be smaller than max_chunk_words")
        return self


class ScoringSettings(BaseModel):
    """Duplicate scoring weights and thresholds

    Weights are normalized by their sum. ``date_weight`` only joins the
    sum when both sides carry a date: an exact match adds it in full, a
    mismatch adds nothing and multiplies the score by
    ``date_mismatch_factor``. A missing date leaves it out entirely.
    """

    threshold: float = Field(default=0.5, ge=0.0, le=1.0)
    title_weight: float = Field(default=0.55, ge=0.0)
    venue_weight: float = Field(default=0.30, ge=0.0)
    city_weight: float = Field(default=0.15, ge=0.0)
    date_weight: float = Field(
        default=0.6, ge=0.0, description="Largest single weight; an exact date match"
    )
    date_mismatch_factor: float = Field(default=0.2, ge=0.0, le=1.0)
    substring_similarity: float = Field(
        default=0.75, ge=0.0, le=1.0, description="Credit for a substring title match"
    )
    fuzzy_title_floor: float = Field(
        default=0.85,
        ge=0.0,
        le=1.0,
        description="Minimum SequenceMatcher ratio that counts as a title match",
    )

    model_config = ConfigDict(protected_namespaces=())

    @model_validator(mode="after")
    def validate_weights(self) -> "ScoringSettings":
        if self.title_weight + self.venue_weight + self.city_weight <= 0:
            raise ValueError("at least one scoring weight must be positive")
        return self


class JobSettings(BaseModel):
    review_confidence_threshold: float = Field(default=0.6, ge=0.0, le=1.0)
    store_dir: str = Field(default="data/imports")
    default_extraction_mode: ExtractionMode = ExtractionMode.AI_ASSISTED

    @field_validator("default_extraction_mode")
    @classmethod
    def validate_mode(cls, v: ExtractionMode) -> ExtractionMode:
        if v == ExtractionMode.AI_ENHANCED:
            raise ValueError("ai_enhanced is reserved for the improve operation")
        return v


class LoggingSettings(BaseModel):
    level: Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"] = "INFO"
    json_output: bool = True


class IntakeConfig(BaseModel):
    """Top-level configuration"""

    extraction: ExtractionSettings = Field(default_factory=ExtractionSettings)
    structuring: StructuringSettings = Field(default_factory=StructuringSettings)
    scoring: ScoringSettings = Field(default_factory=ScoringSettings)
    jobs: JobSettings = Field(default_factory=JobSettings)
    llm: Optional[LLMConfig] = Field(
        default=None, description="Backend config; None means no credentials"
    )
    logging: LoggingSettings = Field(default_factory=LoggingSettings)

    model_config = ConfigDict(
        json_schema_extra={
            "example": {
                "extraction": {"low_text_min_words": 200},
                "structuring": {"backend_timeout_seconds": 45},
                "scoring": {"threshold": 0.5},
                "jobs": {"review_confidence_threshold": 0.6},
                "llm": {
                    "provider": "google",
                    "model": "gemini-2.0-flash",
                    "api_key": "${GEMINI_API_KEY}",
                },
            }
        }
    )
