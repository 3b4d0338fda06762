import pytest

from fitscore.models.settings import load_settings
from fitscore.utils.exceptions import (
    ConfigurationError,
    ExceptionContext,
    ExtractionError,
    ExtractionErrorKind,
    GenerationError,
    GenerationErrorKind,
    MissingCandidateDocument,
    PersistenceError,
    ValidationError,
    map_to_http_exception,
)
from fitscore.utils.retry import retry_async

ENV_KEYS = [
    "OLLAMA_BASE_URL", "LLM_MODEL", "GENERATION_TIMEOUT", "EXTRACTION_MAX_ATTEMPTS",
    "EXTRACTION_BASE_DELAY", "EXTRACTION_MIN_CHARS", "PROMPT_MAX_CHARS", "HISTORY_PAGE_SIZE",
    "CLEANUP_DELAY_SECONDS", "UPLOAD_DIR", "MONGO_DETAILS", "DB_NAME",
]


@pytest.fixture
def clean_env(monkeypatch):
    for key in ENV_KEYS:
        monkeypatch.delenv(key, raising=False)
    return monkeypatch


class TestLoadSettings:

    def test_defaults(self, clean_env):
        settings = load_settings()

        assert settings.generation.model_name == "llama3.1:8b"
        assert settings.generation.timeout == 120.0
        assert settings.generation.scoring.temperature == 0.2
        assert settings.generation.scoring.response_schema is not None
        assert settings.generation.jd_summary.temperature == 0.4
        assert settings.generation.jd_summary.response_schema is None
        assert settings.extraction.max_attempts == 3
        assert settings.extraction.min_chars == 10
        assert settings.prompt_max_chars == 4000
        assert settings.history_page_size == 10
        assert settings.cleanup_delay_seconds == 5.0

    def test_environment_overrides(self, clean_env):
        clean_env.setenv("LLM_MODEL", "mistral")
        clean_env.setenv("EXTRACTION_MAX_ATTEMPTS", "5")
        clean_env.setenv("HISTORY_PAGE_SIZE", "20")

        settings = load_settings()

        assert settings.generation.model_name == "mistral"
        assert settings.extraction.max_attempts == 5
        assert settings.history_page_size == 20

    def test_non_numeric_value(self, clean_env):
        clean_env.setenv("GENERATION_TIMEOUT", "soon")

        with pytest.raises(ConfigurationError) as exc_info:
            load_settings()
        assert exc_info.value.details["config_key"] == "GENERATION_TIMEOUT"

    def test_out_of_range_value(self, clean_env):
        clean_env.setenv("EXTRACTION_MAX_ATTEMPTS", "0")

        with pytest.raises(ConfigurationError):
            load_settings()


class TestExceptions:

    @pytest.mark.parametrize("exc,status", [
        (ValidationError("bad", field="profileId"), 400),
        (MissingCandidateDocument(tried=[]), 400),
        (ExtractionError("gone", kind=ExtractionErrorKind.NOT_FOUND), 400),
        (GenerationError("down", kind=GenerationErrorKind.UNAVAILABLE, stage="scoring"), 500),
        (PersistenceError("db"), 500),
        (ConfigurationError("cfg"), 500),
    ])
    def test_status_mapping(self, exc, status):
        http_exc = map_to_http_exception(exc)
        assert http_exc.status_code == status
        assert http_exc.detail["error"]["error_code"] == exc.error_code

    def test_exception_context_wraps_foreign_errors(self):
        with pytest.raises(PersistenceError) as exc_info:
            with ExceptionContext("insert", collection="score_analyses"):
                raise RuntimeError("boom")

        assert exc_info.value.details == {"collection": "score_analyses"}
        assert isinstance(exc_info.value.cause, RuntimeError)

    def test_exception_context_keeps_custom_errors(self):
        with pytest.raises(ValidationError):
            with ExceptionContext("validate"):
                raise ValidationError("bad")


class TestRetryAsync:

    @pytest.mark.asyncio
    async def test_returns_first_success(self):
        calls = []

        async def func():
            calls.append(1)
            return "ok"

        assert await retry_async(func, sleep=_no_sleep) == "ok"
        assert len(calls) == 1

    @pytest.mark.asyncio
    async def test_on_exhausted_builds_final_error(self):
        async def func():
            raise OSError("down")

        def exhausted(e, attempts):
            return RuntimeError(f"gave up after {attempts}")

        with pytest.raises(RuntimeError, match="gave up after 2"):
            await retry_async(func, max_attempts=2, exceptions=(OSError,), on_exhausted=exhausted, sleep=_no_sleep)

    @pytest.mark.asyncio
    async def test_uncaught_exception_types_propagate(self):
        async def func():
            raise KeyError("x")

        with pytest.raises(KeyError):
            await retry_async(func, exceptions=(OSError,), sleep=_no_sleep)


async def _no_sleep(delay):
    return None
