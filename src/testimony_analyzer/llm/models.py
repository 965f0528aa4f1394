"""
Data models for LLM provider interactions.

This module provides the data structures shared by every provider adapter:
conversation messages, per-call options, token usage accounting, the retry
policy and the exception hierarchy raised by the gateway.
"""

import json
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Optional, Union


class LLMProvider(Enum):
    """Supported LLM API providers."""
    CLAUDE = "claude"
    GEMINI = "gemini"
    OPENAI = "openai"
    GROK = "grok"

    @classmethod
    def from_id(cls, provider_id: str) -> Optional["LLMProvider"]:
        """Look up a provider by its configuration id, None if unknown."""
        for provider in cls:
            if provider.value == provider_id:
                return provider
        return None


class MessageRole(Enum):
    """Message roles in conversation."""
    USER = "user"
    ASSISTANT = "assistant"
    SYSTEM = "system"


ContentBlock = Union[str, Dict[str, Any]]


def block_to_text(block: ContentBlock) -> str:
    """Render a single content block as plain text.

    Text blocks yield their text, bare strings pass through and any other
    block degrades to its JSON string form.
    """
    if isinstance(block, str):
        return block
    if block.get("type") == "text":
        return block.get("text", "")
    return json.dumps(block, ensure_ascii=False)


@dataclass
class LLMMessage:
    """Represents a message in an LLM conversation."""
    role: MessageRole
    content: Union[str, List[ContentBlock]]

    def is_multipart(self) -> bool:
        return isinstance(self.content, list)

    def text_parts(self) -> List[str]:
        """Content as a list of plain-text fragments."""
        if not self.is_multipart():
            return [self.content]
        return [block_to_text(block) for block in self.content]

    def flat_text(self, separator: str = "\n") -> str:
        """Content flattened to a single string."""
        return separator.join(self.text_parts())

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary format for API calls."""
        return {
            "role": self.role.value,
            "content": self.content
        }


@dataclass(frozen=True)
class CallOptions:
    """Options for a single gateway call.

    ``model`` left as None means "the model selected for the provider in
    ProviderSettings".
    """
    max_tokens: int = 8000
    system_prompt: Optional[str] = None
    model: Optional[str] = None
    disable_thinking: bool = False


@dataclass
class TokenUsage:
    """Token counts for one or more API calls."""
    input: int = 0
    output: int = 0
    cache_read: int = 0
    cache_creation: int = 0
    request_count: int = 0

    def __post_init__(self):
        for name in ("input", "output", "cache_read", "cache_creation"):
            if getattr(self, name) < 0:
                raise ValueError(f"Token count '{name}' cannot be negative")

    @property
    def total(self) -> int:
        """Total tokens used"""
        return self.input + self.output

    def add(self, delta: "TokenUsage") -> None:
        """Accumulate usage from a single API call."""
        self.input += delta.input
        self.output += delta.output
        self.cache_read += delta.cache_read
        self.cache_creation += delta.cache_creation
        self.request_count += 1

    def to_dict(self) -> Dict[str, int]:
        return {
            "input": self.input,
            "output": self.output,
            "cacheRead": self.cache_read,
            "cacheCreation": self.cache_creation,
        }

    def __str__(self) -> str:
        return (f"Requests: {self.request_count}, "
                f"Tokens: {self.total} ({self.input}in/{self.output}out), "
                f"Cache: {self.cache_read} read/{self.cache_creation} created")


@dataclass(frozen=True)
class RetryPolicy:
    """Backoff schedule applied to transient provider failures."""
    max_attempts: int = 3
    initial_delay_ms: int = 3000
    backoff_multiplier: int = 2

    def delay_ms(self, attempt: int) -> int:
        """Delay before retrying after the given 0-indexed attempt."""
        return self.initial_delay_ms * self.backoff_multiplier ** attempt

    def delay_seconds(self, attempt: int) -> float:
        return self.delay_ms(attempt) / 1000.0


RETRY_POLICY = RetryPolicy()


@dataclass
class ProviderRequest:
    """A provider-specific HTTP request ready to be sent."""
    url: str
    headers: Dict[str, str]
    body: Dict[str, Any]


@dataclass
class ProviderReply:
    """Text and usage extracted from a provider response envelope."""
    text: str
    usage: TokenUsage = field(default_factory=TokenUsage)
    finish_reason: Optional[str] = None


class LLMAPIError(Exception):
    """Base exception for LLM API errors."""
    def __init__(self, message: str, error_type: str = "api_error", status_code: Optional[int] = None):
        super().__init__(message)
        self.error_type = error_type
        self.status_code = status_code


class ProviderError(LLMAPIError):
    """Raised when a provider rejects a request with a non-retryable failure."""
    def __init__(self, message: str, status_code: Optional[int] = None, provider: Optional[LLMProvider] = None):
        super().__init__(message, error_type="provider_error", status_code=status_code)
        self.provider = provider


class AuthenticationError(ProviderError):
    """Raised when API authentication fails or no key is configured."""
    pass


class TruncatedOutputError(ProviderError):
    """Raised when the model stopped because the output ceiling was reached."""
    pass


class ExhaustedRetriesError(LLMAPIError):
    """Raised when every attempt ended in a transient failure."""
    def __init__(
        self,
        message: str,
        attempts: int,
        status_code: Optional[int] = None,
        last_error: Optional[BaseException] = None
    ):
        super().__init__(message, error_type="exhausted_retries", status_code=status_code)
        self.attempts = attempts
        self.last_error = last_error
