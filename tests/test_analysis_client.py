import time
from unittest.mock import MagicMock, patch

import pytest
import requests

from fitscore.models.models import SCORING_RESPONSE_SCHEMA, Stage
from fitscore.models.settings import GenerationSettings, StageSettings
from fitscore.services.analysis_client import AnalysisClient, OllamaGenerationService
from fitscore.utils.exceptions import GenerationError, GenerationErrorKind

from conftest import FakeGenerationService


def _http_error(status):
    resp = requests.Response()
    resp.status_code = status
    return requests.HTTPError(f"{status} error", response=resp)


class SlowService:
    def generate(self, prompt, stage_settings):
        time.sleep(0.5)
        return "too late"


class TestAnalysisClient:
    """Test cases for stage invocation and error mapping"""

    @pytest.mark.asyncio
    async def test_invoke_returns_stage_result(self):
        service = FakeGenerationService(responses=["summary text"])
        client = AnalysisClient(service, timeout=5)
        stage_settings = StageSettings(max_tokens=256, temperature=0.4)

        result = await client.invoke(Stage.JD_SUMMARY, "prompt", stage_settings)

        assert result.stage == Stage.JD_SUMMARY
        assert result.raw_text == "summary text"
        assert service.calls == [("prompt", stage_settings)]

    @pytest.mark.asyncio
    @pytest.mark.parametrize("error,kind", [
        (requests.ConnectionError("refused"), GenerationErrorKind.UNAVAILABLE),
        (requests.Timeout("read timed out"), GenerationErrorKind.TIMEOUT),
        (_http_error(429), GenerationErrorKind.RATE_LIMITED),
        (_http_error(503), GenerationErrorKind.UNAVAILABLE),
        (_http_error(400), GenerationErrorKind.UNKNOWN),
        (ValueError("bad json"), GenerationErrorKind.UNKNOWN),
    ])
    async def test_service_errors_are_mapped(self, error, kind):
        client = AnalysisClient(FakeGenerationService(responses=["unused"], error=error, fail_on=1), timeout=5)

        with pytest.raises(GenerationError) as exc_info:
            await client.invoke(Stage.SCORING, "prompt", StageSettings())

        assert exc_info.value.kind == kind
        assert exc_info.value.details["stage"] == "scoring"

    @pytest.mark.asyncio
    async def test_timeout(self):
        client = AnalysisClient(SlowService(), timeout=0.05)

        with pytest.raises(GenerationError) as exc_info:
            await client.invoke(Stage.PROFILE_SUMMARY, "prompt", StageSettings())

        assert exc_info.value.kind == GenerationErrorKind.TIMEOUT


class TestOllamaGenerationService:

    @patch("fitscore.services.analysis_client.requests.post")
    def test_generate_payload(self, mock_post):
        mock_post.return_value = MagicMock(json=MagicMock(return_value={"response": "ok"}))
        service = OllamaGenerationService(GenerationSettings(model_name="llama3.1:8b", base_url="http://ollama:11434/"))

        out = service.generate("hello", StageSettings(max_tokens=2048, temperature=0.2,
                                                       response_schema=SCORING_RESPONSE_SCHEMA))

        assert out == "ok"
        url = mock_post.call_args.args[0]
        payload = mock_post.call_args.kwargs["json"]
        assert url == "http://ollama:11434/api/generate"
        assert payload["stream"] is False
        assert payload["options"] == {"temperature": 0.2, "num_predict": 2048}
        assert payload["format"] == SCORING_RESPONSE_SCHEMA

    @patch("fitscore.services.analysis_client.requests.post")
    def test_summary_stage_has_no_format(self, mock_post):
        mock_post.return_value = MagicMock(json=MagicMock(return_value={"response": None}))

        out = OllamaGenerationService().generate("hello", StageSettings())

        assert out == ""
        assert "format" not in mock_post.call_args.kwargs["json"]

    @patch("fitscore.services.analysis_client.requests.post")
    def test_http_error_propagates(self, mock_post):
        mock_post.return_value = MagicMock(raise_for_status=MagicMock(side_effect=_http_error(500)))

        with pytest.raises(requests.HTTPError):
            OllamaGenerationService().generate("hello", StageSettings())
