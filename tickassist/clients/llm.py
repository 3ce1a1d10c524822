"""HTTP transport for provider-built LLM requests, with rate limiting."""

import asyncio
import time
from dataclasses import dataclass
from typing import Any

import httpx
from limits import parse
from limits.storage import MemoryStorage
from limits.strategies import MovingWindowRateLimiter

from tickassist.errors import LLMAPIError, MalformedResponseError
from tickassist.models.llm import LLMRequest
from tickassist.utils.logging import get_logger

logger = get_logger(__name__)


@dataclass
class LLMClientConfig:
    """Configuration for the LLM HTTP client."""

    timeout: float = 120.0
    requests_per_minute: int | None = None


class RequestRateLimiter:
    """Paces outbound requests per vendor host using a moving window."""

    def __init__(self, requests_per_minute: int = 50):
        """Initialize rate limiter.

        Args:
            requests_per_minute: Maximum requests per minute per host
        """
        self.storage = MemoryStorage()
        self.limiter = MovingWindowRateLimiter(self.storage)
        self.request_limit = parse(f"{requests_per_minute}/minute")

    async def wait(self, identifier: str) -> None:
        """Wait until a request for ``identifier`` fits in the window."""
        while not self.limiter.hit(self.request_limit, identifier):
            window_stats = self.limiter.get_window_stats(self.request_limit, identifier)
            wait_time = max(0.1, window_stats.reset_time - time.time())
            logger.warning(f"Request rate limit reached for {identifier}, waiting {wait_time:.2f}s")
            await asyncio.sleep(wait_time)


class LLMHttpClient:
    """Sends provider-built requests and returns the decoded JSON reply.

    Failures are raised, never retried: retry policy belongs to the caller.
    """

    def __init__(self, config: LLMClientConfig | None = None, transport: httpx.AsyncBaseTransport | None = None):
        """Initialize the client.

        Args:
            config: Client configuration
            transport: Optional httpx transport (used by tests)
        """
        self.config = config or LLMClientConfig()
        self.client = httpx.AsyncClient(timeout=self.config.timeout, transport=transport)
        self.rate_limiter = (
            RequestRateLimiter(self.config.requests_per_minute) if self.config.requests_per_minute else None
        )

    async def send(self, request: LLMRequest) -> dict[str, Any]:
        """POST a request descriptor to the model endpoint.

        Args:
            request: Descriptor built by a provider adapter

        Returns:
            Decoded JSON body of the reply

        Raises:
            LLMAPIError: On network failure or a non-2xx status
            MalformedResponseError: If the body is not a JSON object
        """
        if self.rate_limiter:
            await self.rate_limiter.wait(httpx.URL(request.url).host)

        logger.debug(f"POST {request.url}")
        try:
            response = await self.client.post(request.url, headers=request.headers, json=request.body)
        except httpx.HTTPError as e:
            raise LLMAPIError(None, str(e)) from e

        if not response.is_success:
            raise LLMAPIError(response.status_code, response.text)

        try:
            data = response.json()
        except ValueError as e:
            raise MalformedResponseError(f"LLM response is not JSON: {response.text[:200]}") from e

        if not isinstance(data, dict):
            raise MalformedResponseError(f"LLM response is not a JSON object: {response.text[:200]}")
        return data

    async def aclose(self) -> None:
        """Close the underlying HTTP connection pool."""
        await self.client.aclose()
