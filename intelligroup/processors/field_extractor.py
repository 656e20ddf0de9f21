"""
Field extractor.

The extraction oracle used by the grouping engine: sends one page image to a
vision model through an OpenAI-compatible chat-completions endpoint and
returns ``(is_start_page, fields)`` as an ExtractionResult.

Transient failures are retried with exponential backoff and then degrade to
an empty result. A rejected credential raises AuthorizationExpiredError,
which stops the whole run.
"""

from __future__ import annotations

import asyncio
import base64
import time
from typing import Any, Callable, Optional, Tuple

import openai
from openai import AsyncOpenAI, OpenAI

from .base import ProcessingContext
from ..exceptions import AuthorizationExpiredError, FieldExtractionError
from ..logger import get_logger
from ..models import ExtractionResult, Page
from ..prompts import BALLOT_EXTRACTION_PROMPT
from ..utils.ai_parser import parse_extraction_response


# Message Gemini returns when the key's project/entity is gone
ENTITY_NOT_FOUND = "Requested entity was not found"

# Rate limits get at least this long a pause
RATE_LIMIT_MIN_DELAY_SEC = 5.0


def _is_rate_limit(error: Exception) -> bool:
    if isinstance(error, openai.RateLimitError):
        return True
    text = str(error).lower()
    return "429" in text or "rate limit" in text


class FieldExtractor:
    """
    Vision-model extraction oracle.

    Callable with a Page; usable directly as the ``extract`` argument of
    ``DocumentGrouper.process``. ``aextract`` is the awaitable counterpart
    for ``DocumentGrouper.aprocess``.

    Args:
        context: Processing context (config and usage statistics)
        client: Optional pre-built OpenAI client
        async_client: Optional pre-built AsyncOpenAI client
        prompt: System prompt (default: BALLOT_EXTRACTION_PROMPT)
        sleep: Blocking sleep used between retries
    """

    name = "FieldExtractor"

    def __init__(
        self,
        context: ProcessingContext,
        client: Optional[Any] = None,
        async_client: Optional[Any] = None,
        prompt: str = BALLOT_EXTRACTION_PROMPT,
        sleep: Callable[[float], None] = time.sleep,
    ):
        self.context = context
        self.config = context.config
        self.ai = context.config.ai
        self.prompt = prompt
        self.max_retries = max(0, self.ai.max_retries)
        self.retry_delay = self.ai.retry_delay_sec
        self._client = client
        self._async_client = async_client
        self._sleep = sleep
        self.logger = get_logger(self.name)

        usage = self.context.stats.ai_usage
        usage.provider = self.ai.provider
        usage.model = self.ai.model

    def __call__(self, page: Page) -> ExtractionResult:
        return self.extract(page)

    @property
    def client(self) -> Any:
        if self._client is None:
            self._check_key()
            self._client = OpenAI(
                api_key=self.ai.api_key,
                base_url=self.ai.get_normalized_base_url() or None,
                timeout=self.ai.timeout_sec,
            )
        return self._client

    @property
    def async_client(self) -> Any:
        if self._async_client is None:
            self._check_key()
            self._async_client = AsyncOpenAI(
                api_key=self.ai.api_key,
                base_url=self.ai.get_normalized_base_url() or None,
                timeout=self.ai.timeout_sec,
            )
        return self._async_client

    def extract(self, page: Page) -> ExtractionResult:
        """
        Extract fields from one page.

        Returns:
            The parsed result, or an empty result with ``failed=True`` once
            all retries are exhausted

        Raises:
            AuthorizationExpiredError: the provider rejected the credential
        """
        self._check_key()
        last_error: Optional[Exception] = None

        for attempt in range(self.max_retries + 1):
            try:
                response = self.client.chat.completions.create(**self._build_payload(page))
                return self._handle_response(page, response)
            except Exception as e:
                self._raise_if_unauthorized(e)
                last_error = e
                if attempt < self.max_retries:
                    delay = self._retry_delay(attempt, e)
                    self._log_retry(page, attempt, e, delay)
                    self._sleep(delay)

        return self._give_up(page, last_error)

    async def aextract(self, page: Page) -> ExtractionResult:
        """Awaitable ``extract`` using the async client."""
        self._check_key()
        last_error: Optional[Exception] = None

        for attempt in range(self.max_retries + 1):
            try:
                response = await self.async_client.chat.completions.create(**self._build_payload(page))
                return self._handle_response(page, response)
            except Exception as e:
                self._raise_if_unauthorized(e)
                last_error = e
                if attempt < self.max_retries:
                    delay = self._retry_delay(attempt, e)
                    self._log_retry(page, attempt, e, delay)
                    await asyncio.sleep(delay)

        return self._give_up(page, last_error)

    def _check_key(self) -> None:
        if not self.ai.api_key:
            raise AuthorizationExpiredError(
                f"No API key configured for provider {self.ai.provider!r}",
                ai_provider=self.ai.provider,
            )

    def _build_payload(self, page: Page) -> dict[str, Any]:
        payload: dict[str, Any] = {
            "model": self.ai.model,
            "messages": [
                {"role": "system", "content": self.prompt},
                {
                    "role": "user",
                    "content": [
                        {"type": "text", "text": f"Page {page.page_number} of {page.source_file}."},
                        {"type": "image_url", "image_url": {"url": self._encode_image(page)}},
                    ],
                },
            ],
        }
        if self.ai.response_format == "json_object":
            payload["response_format"] = {"type": "json_object"}
        return payload

    def _encode_image(self, page: Page) -> str:
        encoded = base64.b64encode(page.image).decode("ascii")
        return f"data:{page.mime_type};base64,{encoded}"

    def _handle_response(self, page: Page, response: Any) -> ExtractionResult:
        content, usage = self._read_response(response)
        self._track_usage(usage)

        if self.config.dump_raw_responses:
            self.logger.debug(f"Raw response for {page.page_id}: {content}")

        try:
            data = parse_extraction_response(content)
        except ValueError as e:
            raise FieldExtractionError(
                f"Unparseable model response: {e}",
                page_id=page.page_id,
                ai_provider=self.ai.provider,
                response_text=content,
            )

        result = ExtractionResult.from_dict(data)
        self.logger.debug(
            f"{page.page_id}: start={result.is_start_page} "
            f"snils={result.fields.snils!r} name={result.fields.full_name!r}"
        )
        return result

    def _read_response(self, response: Any) -> Tuple[str, dict[str, int]]:
        try:
            content = response.choices[0].message.content
        except (AttributeError, IndexError, TypeError) as e:
            raise FieldExtractionError(f"Unexpected response shape: {e}", ai_provider=self.ai.provider)

        usage: dict[str, int] = {"prompt_tokens": 0, "completion_tokens": 0}
        u = getattr(response, "usage", None)
        if u is not None:
            usage["prompt_tokens"] = int(getattr(u, "prompt_tokens", 0) or 0)
            usage["completion_tokens"] = int(getattr(u, "completion_tokens", 0) or 0)
        else:
            self.logger.debug("No usage data in model response")

        return str(content or ""), usage

    def _track_usage(self, usage: dict[str, int]) -> None:
        input_tokens = usage["prompt_tokens"]
        output_tokens = usage["completion_tokens"]
        cost = self.ai.estimate_cost(input_tokens, output_tokens)
        self.context.stats.ai_usage.add_call(input_tokens, output_tokens, cost)

    def _raise_if_unauthorized(self, error: Exception) -> None:
        if isinstance(error, AuthorizationExpiredError):
            raise error

        unauthorized = isinstance(error, (openai.AuthenticationError, openai.PermissionDeniedError))
        if not unauthorized and ENTITY_NOT_FOUND in str(error):
            unauthorized = True

        if unauthorized:
            raise AuthorizationExpiredError(
                f"Provider rejected the API key: {error}",
                ai_provider=self.ai.provider,
            ) from error

    def _retry_delay(self, attempt: int, error: Exception) -> float:
        delay = self.retry_delay * (2 ** attempt)
        if _is_rate_limit(error):
            delay = max(delay, RATE_LIMIT_MIN_DELAY_SEC)
        return delay

    def _log_retry(self, page: Page, attempt: int, error: Exception, delay: float) -> None:
        self.logger.warning(
            f"Extraction error for {page.page_id} "
            f"(attempt {attempt + 1}/{self.max_retries + 1}): {error}. Retrying in {delay:.1f}s..."
        )

    def _give_up(self, page: Page, error: Optional[Exception]) -> ExtractionResult:
        message = str(error) if error else "unknown error"
        self.logger.error(
            f"Extraction failed for {page.page_id} after {self.max_retries + 1} attempts: {message}"
        )
        return ExtractionResult.empty(message)
