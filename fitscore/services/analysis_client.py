"""
Client for the external text-generation service (Ollama)
"""
import asyncio

import requests

from fitscore.models.models import AnalysisStageResult, Stage
from fitscore.models.settings import GenerationSettings, StageSettings
from fitscore.utils.exceptions import GenerationError, GenerationErrorKind
from fitscore.utils.logging_config import get_logger

logger = get_logger(__name__)


class OllamaGenerationService:
    """Blocking wrapper around ``POST {base_url}/api/generate``"""

    def __init__(self, settings: GenerationSettings = None):
        self.settings = settings or GenerationSettings()

    def generate(self, prompt: str, stage_settings: StageSettings) -> str:
        payload = {
            "model": self.settings.model_name,
            "prompt": prompt,
            "options": {
                "temperature": stage_settings.temperature,
                "num_predict": stage_settings.max_tokens,
            },
            "stream": False,
        }
        if stage_settings.response_schema:
            payload["format"] = stage_settings.response_schema

        resp = requests.post(
            f"{self.settings.base_url.rstrip('/')}/api/generate",
            json=payload,
            timeout=self.settings.timeout,
        )
        resp.raise_for_status()
        return resp.json().get("response", "") or ""


def _classify(e: Exception):
    """Map a generation failure to (kind, status_code)"""
    if isinstance(e, requests.Timeout):
        return GenerationErrorKind.TIMEOUT, None
    if isinstance(e, requests.ConnectionError):
        return GenerationErrorKind.UNAVAILABLE, None
    if isinstance(e, requests.HTTPError) and e.response is not None:
        status = e.response.status_code
        if status == 429:
            return GenerationErrorKind.RATE_LIMITED, status
        if status >= 500:
            return GenerationErrorKind.UNAVAILABLE, status
        return GenerationErrorKind.UNKNOWN, status
    return GenerationErrorKind.UNKNOWN, None


class AnalysisClient:
    """
    Runs one generation call per analysis stage.

    The blocking service call runs in the default executor and is bounded by
    ``timeout``. Every failure surfaces as ``GenerationError``; there is no retry.
    """

    def __init__(self, service, timeout: float = 120.0):
        self.service = service
        self.timeout = timeout

    async def invoke(self, stage: Stage, prompt: str, stage_settings: StageSettings) -> AnalysisStageResult:
        loop = asyncio.get_running_loop()
        logger.debug(f"Invoking {stage.value} stage ({len(prompt)} prompt characters)")

        try:
            raw = await asyncio.wait_for(
                loop.run_in_executor(None, self.service.generate, prompt, stage_settings),
                timeout=self.timeout,
            )
        except asyncio.TimeoutError as e:
            logger.error(f"{stage.value} stage timed out after {self.timeout}s")
            raise GenerationError(
                f"Text generation timed out after {self.timeout}s",
                kind=GenerationErrorKind.TIMEOUT,
                stage=stage.value,
                cause=e,
            )
        except GenerationError:
            raise
        except Exception as e:
            kind, status_code = _classify(e)
            logger.error(f"{stage.value} stage failed ({kind.value}): {e}")
            raise GenerationError(
                f"Text generation failed: {e}",
                kind=kind,
                stage=stage.value,
                status_code=status_code,
                cause=e,
            )

        if not isinstance(raw, str):
            raw = "" if raw is None else str(raw)
        return AnalysisStageResult(stage=stage, raw_text=raw)
