"""
Text extraction for job descriptions and candidate documents
"""
import asyncio

import requests

from fitscore.helpers.parsing import clean_text, document_to_text
from fitscore.models.models import DocumentRef, ExtractedText
from fitscore.models.settings import ExtractionSettings
from fitscore.utils.exceptions import ExtractionError, ExtractionErrorKind
from fitscore.utils.logging_config import get_logger
from fitscore.utils.retry import retry_async

logger = get_logger(__name__)


class TextExtractor:
    """Fetches a document from the store and turns it into normalized text"""

    def __init__(self, store, settings: ExtractionSettings = None, sleep=asyncio.sleep):
        self.store = store
        self.settings = settings or ExtractionSettings()
        self._sleep = sleep

    def _extract_sync(self, ref: DocumentRef) -> ExtractedText:
        try:
            data = self.store.fetch(ref.locator)
        except FileNotFoundError as e:
            raise ExtractionError(
                f"Document not found: {ref.locator}",
                kind=ExtractionErrorKind.NOT_FOUND,
                locator=ref.locator,
                cause=e,
            )
        except (requests.exceptions.InvalidURL, requests.exceptions.InvalidSchema,
                requests.exceptions.MissingSchema, ValueError) as e:
            # malformed locators never succeed on retry
            raise ExtractionError(
                f"Invalid document locator: {ref.locator}",
                kind=ExtractionErrorKind.INVALID_FORMAT,
                locator=ref.locator,
                cause=e,
            )
        except (OSError, requests.RequestException) as e:
            raise ExtractionError(
                f"Document storage unavailable: {e}",
                kind=ExtractionErrorKind.UNAVAILABLE,
                locator=ref.locator,
                cause=e,
            )

        text = clean_text(document_to_text(data, ref.locator))
        if len(text) < self.settings.min_chars:
            raise ExtractionError(
                f"Document contains no readable text content ({len(text)} characters, "
                f"minimum is {self.settings.min_chars})",
                kind=ExtractionErrorKind.EMPTY_CONTENT,
                locator=ref.locator,
            )
        return ExtractedText(source=ref, text=text, char_count=len(text))

    async def _attempt(self, ref: DocumentRef) -> ExtractedText:
        loop = asyncio.get_running_loop()
        return await loop.run_in_executor(None, self._extract_sync, ref)

    async def extract(self, ref: DocumentRef) -> ExtractedText:
        """
        Extract text for ``ref``, retrying transient storage failures.

        Raises:
            ExtractionError: with ``attempts`` set to the number of attempts made
        """
        attempts = {"count": 0}

        async def attempt():
            attempts["count"] += 1
            return await self._attempt(ref)

        def exhausted(e: ExtractionError, attempt_no: int) -> ExtractionError:
            return ExtractionError(
                f"Failed to extract text after {attempt_no} attempts: {e.message}",
                kind=e.kind,
                locator=ref.locator,
                attempts=attempt_no,
                cause=e.cause or e,
            )

        try:
            extracted = await retry_async(
                attempt,
                max_attempts=self.settings.max_attempts,
                base_delay=self.settings.base_delay,
                exceptions=(ExtractionError,),
                should_retry=lambda e: e.transient,
                on_exhausted=exhausted,
                logger=logger,
                sleep=self._sleep,
            )
        except ExtractionError as e:
            if e.attempts is None:
                e.attempts = attempts["count"]
                e.details["attempts"] = attempts["count"]
            logger.warning(
                f"Extraction failed for {ref.kind.value} ({ref.origin.value}): {e.message}",
                extra={"locator": ref.locator, "kind": e.kind.value, "attempts": e.attempts}
            )
            raise

        logger.debug(f"Extracted {extracted.char_count} characters from {ref.kind.value} ({ref.origin.value})")
        return extracted
