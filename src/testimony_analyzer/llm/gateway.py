"""
AI provider gateway.

This module provides a single asynchronous entry point for calling any of
the supported LLM providers, with a uniform retry policy and token usage
reporting.
"""

import asyncio
import json
import logging
from typing import Awaitable, Callable, List, Optional, Union

import httpx

from .models import (
    RETRY_POLICY, AuthenticationError, CallOptions, ExhaustedRetriesError,
    LLMMessage, LLMProvider, ProviderError, RetryPolicy, TokenUsage
)
from .providers import DEFAULT_PROVIDER, ProviderAdapter, get_adapter
from .utils import exponential_backoff_delay
from ..utils.config import ProviderSettings

logger = logging.getLogger(__name__)

UsageCallback = Callable[[TokenUsage], None]
SleepFunc = Callable[[float], Awaitable[None]]


class AIGateway:
    """
    Gateway that normalizes calls across LLM providers.

    Request shapes are delegated to provider adapters; the retry loop,
    transport and usage reporting are identical for every provider.
    """

    DEFAULT_TIMEOUT = 600.0  # long analyses can take several minutes

    def __init__(
        self,
        settings: ProviderSettings,
        client: Optional[httpx.AsyncClient] = None,
        timeout: float = DEFAULT_TIMEOUT,
        retry_policy: RetryPolicy = RETRY_POLICY,
        on_usage: Optional[UsageCallback] = None,
        sleep: Optional[SleepFunc] = None
    ):
        """
        Initialize the gateway.

        Args:
            settings: Provider settings (keys, models, reasoning levels)
            client: Optional pre-built HTTP client (created lazily otherwise)
            timeout: Request timeout in seconds
            retry_policy: Backoff schedule for transient failures
            on_usage: Callback receiving the token usage of each successful call
            sleep: Coroutine used for backoff delays (defaults to asyncio.sleep)
        """
        self.settings = settings
        self.timeout = timeout
        self.retry_policy = retry_policy
        self.on_usage = on_usage
        self._sleep = sleep or asyncio.sleep
        self._client = client
        self._owns_client = client is None

    async def _get_client(self) -> httpx.AsyncClient:
        """Get or create the async HTTP client"""
        if self._client is None or self._client.is_closed:
            self._client = httpx.AsyncClient(timeout=httpx.Timeout(self.timeout))
            self._owns_client = True
        return self._client

    async def close(self) -> None:
        """Close the HTTP client connection if this gateway created it"""
        if self._owns_client and self._client and not self._client.is_closed:
            await self._client.aclose()
            self._client = None

    async def __aenter__(self) -> "AIGateway":
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.close()

    def resolve_provider(self, provider: Union[LLMProvider, str, None]) -> LLMProvider:
        """
        Map a provider identifier to a supported provider.

        Unrecognized identifiers fall back to the default provider so a stale
        configuration does not break the pipeline.
        """
        if isinstance(provider, LLMProvider):
            return provider
        resolved = LLMProvider.from_id(provider) if provider else None
        if resolved is None:
            logger.warning(
                f"Unknown provider '{provider}', falling back to {DEFAULT_PROVIDER.value}"
            )
            return DEFAULT_PROVIDER
        return resolved

    async def call_ai(
        self,
        messages: List[LLMMessage],
        options: Optional[CallOptions] = None
    ) -> str:
        """Call the provider configured in settings."""
        provider = self.resolve_provider(self.settings.provider)
        return await self.invoke(messages, options, provider)

    async def invoke(
        self,
        messages: List[LLMMessage],
        options: Optional[CallOptions] = None,
        provider: Union[LLMProvider, str] = DEFAULT_PROVIDER
    ) -> str:
        """
        Send a conversation to a provider and return the generated text.

        Args:
            messages: Ordered conversation messages
            options: Per-call options (defaults applied when None)
            provider: Provider to call

        Returns:
            Generated text, stripped of surrounding whitespace

        Raises:
            AuthenticationError: If no API key is configured or the key is rejected
            ProviderError: On a non-retryable HTTP failure or truncated output
            ExhaustedRetriesError: If every attempt ended in a transient failure
        """
        options = options or CallOptions()
        provider = self.resolve_provider(provider)
        adapter = get_adapter(provider)
        request = adapter.build_request(messages, options, self.settings)
        client = await self._get_client()

        policy = self.retry_policy
        last_error: Optional[Exception] = None
        last_status: Optional[int] = None

        for attempt in range(policy.max_attempts):
            has_next = attempt < policy.max_attempts - 1

            try:
                response = await client.post(request.url, headers=request.headers, json=request.body)
            except httpx.TransportError as error:
                last_error = error
                last_status = None
                logger.warning(
                    f"{provider.value} request failed (attempt {attempt + 1}/{policy.max_attempts}): {error}"
                )
                if has_next:
                    await self._sleep(exponential_backoff_delay(attempt, policy))
                continue

            if adapter.is_retryable_status(response.status_code):
                last_error = None
                last_status = response.status_code
                logger.warning(
                    f"{provider.value} returned HTTP {response.status_code} "
                    f"(attempt {attempt + 1}/{policy.max_attempts})"
                )
                if has_next:
                    await self._sleep(exponential_backoff_delay(attempt, policy))
                continue

            data = self._decode(response, adapter, provider)
            reply = adapter.parse_response(data)

            if self.on_usage:
                self.on_usage(reply.usage)
            logger.info(
                f"{provider.value} call succeeded on attempt {attempt + 1} "
                f"({reply.usage.input}in/{reply.usage.output}out tokens)"
            )
            return reply.text

        if last_status is not None:
            message = f"{provider.value} unavailable after {policy.max_attempts} attempts (HTTP {last_status})"
        else:
            message = f"{provider.value} request failed after {policy.max_attempts} attempts: {last_error}"
        raise ExhaustedRetriesError(
            message,
            attempts=policy.max_attempts,
            status_code=last_status,
            last_error=last_error
        ) from last_error

    def _decode(self, response: httpx.Response, adapter: ProviderAdapter, provider: LLMProvider) -> dict:
        """Decode a non-retryable response, raising on HTTP errors."""
        try:
            data = response.json()
        except (json.JSONDecodeError, ValueError):
            data = None

        if response.is_error:
            message = adapter.error_message(data, response.status_code)
            error_class = AuthenticationError if response.status_code in (401, 403) else ProviderError
            raise error_class(message, status_code=response.status_code, provider=provider)

        if not isinstance(data, dict):
            raise ProviderError(
                f"{provider.value} returned a response that is not a JSON object",
                status_code=response.status_code,
                provider=provider
            )
        return data
