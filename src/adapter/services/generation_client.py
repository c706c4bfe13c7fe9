"""Seedream image generation client

Calls the generation API once per unit, under the shared rate limiter,
with a hard per-call timeout and exponential backoff retries.
"""

import asyncio
import logging
import random
from typing import Any, Awaitable, Callable, Optional
import httpx
from src.adapter.services.rate_limiter import TokenBucketRateLimiter
from src.app.services.generation_service import (
    GenerationRequest,
    GenerationService,
    UnitResult,
)
from src.domain.errors import ProviderError, RetryableProviderError, TerminalProviderError

logger = logging.getLogger(__name__)

PROMPT_PLACEHOLDER = "{{ prompt }}"
JITTER_RATIO = 0.2


def render_prompt(prompt: str, template: Optional[str] = None) -> str:
    """Substitute the user prompt into a template; no template means the prompt itself"""
    if not template:
        return prompt
    if PROMPT_PLACEHOLDER not in template:
        return f"{template}\n{prompt}"
    return template.replace(PROMPT_PLACEHOLDER, prompt)


def classify_error(error: BaseException) -> ProviderError:
    """Map a raw failure to a retryable or terminal provider error"""
    if isinstance(error, ProviderError):
        return error
    if isinstance(error, (asyncio.TimeoutError, httpx.TimeoutException)):
        return RetryableProviderError(f"Request timed out: {error}")
    if isinstance(error, httpx.TransportError):
        return RetryableProviderError(f"Network error: {error}")
    if isinstance(error, httpx.HTTPStatusError):
        status = error.response.status_code
        message = f"API error {status}: {error.response.text[:500]}"
        if status == 429 or status >= 500:
            return RetryableProviderError(message, status)
        return TerminalProviderError(message, status)
    return TerminalProviderError(str(error) or error.__class__.__name__)


class SeedreamGenerationClient(GenerationService):
    """
    Generation API client

    Features:
    - Shared token bucket gates every attempt
    - asyncio.wait_for cancels a hung request at the timeout
    - Retries network errors, timeouts, 429 and 5xx with jittered backoff
    - Never raises for a unit: failures become UnitResult(success=False)
    """

    def __init__(
        self,
        http_client: httpx.AsyncClient,
        rate_limiter: TokenBucketRateLimiter,
        base_url: str,
        api_key: str,
        model: str,
        timeout_seconds: float = 120,
        max_attempts: int = 3,
        initial_retry_delay: float = 2.0,
        max_retry_delay: float = 30.0,
        unit_concurrency: int = 4,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ):
        self.http_client = http_client
        self.rate_limiter = rate_limiter
        self.base_url = base_url.rstrip("/")
        self.api_key = api_key
        self.model = model
        self.timeout_seconds = timeout_seconds
        self.max_attempts = max_attempts
        self.initial_retry_delay = initial_retry_delay
        self.max_retry_delay = max_retry_delay
        self.unit_concurrency = unit_concurrency
        self._sleep = sleep

    async def generate_units(self, request: GenerationRequest, count: int) -> list[UnitResult]:
        semaphore = asyncio.Semaphore(self.unit_concurrency)

        async def run(index: int) -> UnitResult:
            async with semaphore:
                return await self.generate_unit(request, index)

        logger.info(f"Starting generation of {count} units (unit concurrency {self.unit_concurrency})")
        results = await asyncio.gather(*(run(index) for index in range(count)))

        succeeded = sum(1 for result in results if result.success)
        logger.info(f"Generation finished: {succeeded}/{count} units succeeded")
        return list(results)

    async def generate_unit(self, request: GenerationRequest, index: int) -> UnitResult:
        last_error: Optional[ProviderError] = None

        for attempt in range(1, self.max_attempts + 1):
            await self.rate_limiter.acquire()
            try:
                urls = await asyncio.wait_for(
                    self._call(self.build_body(request)), timeout=self.timeout_seconds
                )
                logger.info(f"Unit {index}: generated {len(urls)} image(s) on attempt {attempt}")
                return UnitResult(index=index, success=True, urls=urls, attempts=attempt)
            except Exception as e:
                last_error = classify_error(e)

            logger.warning(
                f"Unit {index}: attempt {attempt}/{self.max_attempts} failed: {last_error}"
            )

            if not last_error.retryable:
                logger.info(f"Unit {index}: non-retryable error, giving up")
                return UnitResult(index=index, success=False, error=str(last_error), attempts=attempt)

            if attempt < self.max_attempts:
                delay = self.retry_delay(attempt)
                logger.info(f"Unit {index}: retrying in {delay:.2f}s")
                await self._sleep(delay)

        return UnitResult(
            index=index,
            success=False,
            error=str(last_error) if last_error else "Unknown error",
            attempts=self.max_attempts,
        )

    def retry_delay(self, attempt: int) -> float:
        """initial * 2^(attempt-1), capped, then +/-20% jitter"""
        delay = min(self.initial_retry_delay * (2 ** (attempt - 1)), self.max_retry_delay)
        jitter = delay * JITTER_RATIO * (2 * random.random() - 1)
        return max(delay + jitter, 0.0)

    def build_body(self, request: GenerationRequest) -> dict[str, Any]:
        options = request.options
        body: dict[str, Any] = {
            "model": self.model,
            "prompt": request.prompt,
            "response_format": "url",
            "size": request.size,
            "watermark": options.watermark,
            "sequential_image_generation": options.sequential_image_generation,
        }

        references = request.reference_image_urls
        if len(references) == 1:
            body["image"] = references[0]
        elif references:
            body["image"] = list(references)

        if options.sequential_image_generation == "auto" and options.max_images:
            body["sequential_image_generation_options"] = {"max_images": options.max_images}

        return body

    async def _call(self, body: dict[str, Any]) -> list[str]:
        response = await self.http_client.post(
            f"{self.base_url}/images/generations",
            json=body,
            headers={"Authorization": f"Bearer {self.api_key}"},
            timeout=self.timeout_seconds,
        )
        response.raise_for_status()

        try:
            payload = response.json()
        except ValueError as e:
            raise TerminalProviderError(f"Malformed response: {e}") from e

        urls = [item["url"] for item in payload.get("data") or [] if item.get("url")]
        if not urls:
            raise TerminalProviderError("No image URLs in response")
        return urls
