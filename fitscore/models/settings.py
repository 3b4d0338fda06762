"""
Runtime settings for the scoring pipeline
"""
import os
from typing import Any, Dict, Optional

from dotenv import load_dotenv
from pydantic import BaseModel, ConfigDict, Field
from pydantic import ValidationError as PydanticValidationError

from fitscore.models.models import SCORING_RESPONSE_SCHEMA
from fitscore.utils.exceptions import ConfigurationError


class StageSettings(BaseModel):
    """Per-stage generation configuration"""
    max_tokens: int = Field(default=1024, ge=1, description="Maximum tokens to generate")
    temperature: float = Field(default=0.4, ge=0.0, le=2.0, description="Sampling temperature")
    response_schema: Optional[Dict[str, Any]] = Field(default=None, description="JSON schema the output must follow")


class GenerationSettings(BaseModel):
    """Text-generation service configuration"""
    model_config = ConfigDict(protected_namespaces=())

    model_name: str = Field(default="llama3.1:8b", description="LLM model name")
    base_url: str = Field(default="http://localhost:11434", description="Ollama base URL")
    timeout: float = Field(default=120.0, gt=0, description="Per-call timeout in seconds")
    jd_summary: StageSettings = Field(default_factory=lambda: StageSettings(max_tokens=1024, temperature=0.4))
    profile_summary: StageSettings = Field(default_factory=lambda: StageSettings(max_tokens=1024, temperature=0.4))
    scoring: StageSettings = Field(default_factory=lambda: StageSettings(
        max_tokens=2048, temperature=0.2, response_schema=SCORING_RESPONSE_SCHEMA
    ))


class ExtractionSettings(BaseModel):
    """Text extraction and retry configuration"""
    max_attempts: int = Field(default=3, ge=1, le=10, description="Total extraction attempts for transient failures")
    base_delay: float = Field(default=1.0, ge=0.0, le=60.0, description="Linear backoff unit in seconds")
    min_chars: int = Field(default=10, ge=1, description="Minimum characters after whitespace normalization")
    upload_dir: str = Field(default="./data/uploads", description="Root directory for uploaded documents")


class ScoringSettings(BaseModel):
    """Complete settings for one service instance"""
    generation: GenerationSettings = Field(default_factory=GenerationSettings)
    extraction: ExtractionSettings = Field(default_factory=ExtractionSettings)
    prompt_max_chars: int = Field(default=4000, ge=100, description="Input text truncation length for prompts")
    history_page_size: int = Field(default=10, ge=1, le=100, description="Number of results returned by history")
    cleanup_delay_seconds: float = Field(default=5.0, ge=0.0, description="Delay before deleting temporary documents")
    mongo_details: str = Field(default="mongodb://localhost:27017", description="MongoDB connection string")
    db_name: str = Field(default="fitscore_db", description="MongoDB database name")


def _env(name: str, default, cast):
    raw = os.getenv(name)
    if raw is None or raw == "":
        return default
    try:
        return cast(raw)
    except ValueError as e:
        raise ConfigurationError(f"Invalid value for {name}", config_key=name, config_value=raw, cause=e)


def load_settings() -> ScoringSettings:
    """Build settings from environment variables (and a .env file when present)"""
    load_dotenv()

    try:
        generation = GenerationSettings(
            model_name=_env("LLM_MODEL", "llama3.1:8b", str),
            base_url=_env("OLLAMA_BASE_URL", "http://localhost:11434", str),
            timeout=_env("GENERATION_TIMEOUT", 120.0, float),
        )
        extraction = ExtractionSettings(
            max_attempts=_env("EXTRACTION_MAX_ATTEMPTS", 3, int),
            base_delay=_env("EXTRACTION_BASE_DELAY", 1.0, float),
            min_chars=_env("EXTRACTION_MIN_CHARS", 10, int),
            upload_dir=_env("UPLOAD_DIR", "./data/uploads", str),
        )
        return ScoringSettings(
            generation=generation,
            extraction=extraction,
            prompt_max_chars=_env("PROMPT_MAX_CHARS", 4000, int),
            history_page_size=_env("HISTORY_PAGE_SIZE", 10, int),
            cleanup_delay_seconds=_env("CLEANUP_DELAY_SECONDS", 5.0, float),
            mongo_details=_env("MONGO_DETAILS", "mongodb://localhost:27017", str),
            db_name=_env("DB_NAME", "fitscore_db", str),
        )
    except PydanticValidationError as e:
        raise ConfigurationError("Invalid scoring settings", details={"errors": str(e)}, cause=e)
