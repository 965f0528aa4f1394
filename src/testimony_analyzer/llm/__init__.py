"""
LLM API integration module.

This module provides a gateway and provider adapters for calling Claude,
Gemini, OpenAI and Grok behind a single call shape.
"""

from .models import (
    LLMProvider, MessageRole, LLMMessage, CallOptions, TokenUsage,
    RetryPolicy, RETRY_POLICY, ProviderRequest, ProviderReply,
    LLMAPIError, ProviderError, AuthenticationError, TruncatedOutputError,
    ExhaustedRetriesError
)
from .providers import (
    ProviderAdapter, ClaudeAdapter, GeminiAdapter, OpenAIAdapter, GrokAdapter,
    ADAPTERS, DEFAULT_PROVIDER, get_adapter
)
from .gateway import AIGateway
from .utils import (
    MODEL_MAX_OUTPUT_TOKENS, DEFAULT_MAX_OUTPUT_TOKENS, REASONING_MODELS,
    get_max_output_tokens, exponential_backoff_delay, format_usage_summary
)

__all__ = [
    # Models
    "LLMProvider", "MessageRole", "LLMMessage", "CallOptions", "TokenUsage",
    "RetryPolicy", "RETRY_POLICY", "ProviderRequest", "ProviderReply",

    # Exceptions
    "LLMAPIError", "ProviderError", "AuthenticationError",
    "TruncatedOutputError", "ExhaustedRetriesError",

    # Adapters
    "ProviderAdapter", "ClaudeAdapter", "GeminiAdapter", "OpenAIAdapter",
    "GrokAdapter", "ADAPTERS", "DEFAULT_PROVIDER", "get_adapter",

    # Gateway
    "AIGateway",

    # Utilities
    "MODEL_MAX_OUTPUT_TOKENS", "DEFAULT_MAX_OUTPUT_TOKENS", "REASONING_MODELS",
    "get_max_output_tokens", "exponential_backoff_delay", "format_usage_summary"
]
