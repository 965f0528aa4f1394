"""
Utility functions for LLM API interactions.

This module provides helper functions for output-ceiling lookup, usage
extraction, backoff calculation and other common operations needed by the
provider adapters.
"""

from typing import Any, Dict, Optional

from .models import RETRY_POLICY, RetryPolicy, TokenUsage


# Maximum output tokens per model (provider documentation, 2025/2026)
MODEL_MAX_OUTPUT_TOKENS = {
    # Claude
    "claude-sonnet-4-20250514": 64000,
    "claude-sonnet-4-5-20250929": 64000,
    "claude-haiku-4-5-20251001": 64000,
    "claude-opus-4-20250514": 32000,
    "claude-opus-4-1-20250805": 32000,
    # Gemini
    "gemini-3-flash-preview": 65536,
    "gemini-3-pro-preview": 65536,
    "gemini-2.5-flash": 65536,
    "gemini-2.5-pro": 65536,
    # OpenAI
    "gpt-5.2": 128000,
    "gpt-5.2-chat-latest": 16384,
    "gpt-4.1": 32768,
    # Grok
    "grok-4-1-fast-reasoning": 30000,
    "grok-4-1-fast-non-reasoning": 30000,
}

DEFAULT_MAX_OUTPUT_TOKENS = 8000

# OpenAI models that accept reasoning_effort
REASONING_MODELS = frozenset({"gpt-5.2"})

# Output tokens reserved on top of the Claude thinking budget
THINKING_OVERHEAD_TOKENS = 2000
DEFAULT_THINKING_BUDGET = 10000

# Gemini reasoning consumes maxOutputTokens, so each level inflates it
GEMINI_THINKING_BUFFER = {
    "minimal": 4096,
    "low": 16000,
    "medium": 32000,
    "high": 48000,
}
DEFAULT_GEMINI_THINKING_BUFFER = 32000


def get_max_output_tokens(model: Optional[str]) -> int:
    """
    Look up the output-token ceiling for a model.

    Args:
        model: Model id (e.g., "claude-sonnet-4-20250514")

    Returns:
        The model's ceiling, or DEFAULT_MAX_OUTPUT_TOKENS for unknown models
    """
    if not model:
        return DEFAULT_MAX_OUTPUT_TOKENS
    return MODEL_MAX_OUTPUT_TOKENS.get(model, DEFAULT_MAX_OUTPUT_TOKENS)


def parse_thinking_budget(value: Any) -> int:
    """Parse a thinking budget given as int or numeric string."""
    try:
        budget = int(value)
    except (TypeError, ValueError):
        return DEFAULT_THINKING_BUDGET
    return budget if budget > 0 else DEFAULT_THINKING_BUDGET


def exponential_backoff_delay(attempt: int, policy: RetryPolicy = RETRY_POLICY) -> float:
    """
    Calculate exponential backoff delay.

    Args:
        attempt: The attempt number that just failed (0-based)
        policy: Retry policy supplying the initial delay and multiplier

    Returns:
        Delay in seconds
    """
    return policy.delay_seconds(attempt)


def dig(data: Any, *path: Any) -> Any:
    """Walk nested dicts/lists, returning None as soon as a step is missing."""
    current = data
    for key in path:
        if isinstance(current, dict):
            current = current.get(key)
        elif isinstance(current, list) and isinstance(key, int):
            current = current[key] if -len(current) <= key < len(current) else None
        else:
            return None
        if current is None:
            return None
    return current


def usage_from_fields(source: Optional[Dict[str, Any]], **field_paths: Any) -> TokenUsage:
    """
    Build a TokenUsage from a provider usage object.

    Each keyword maps a TokenUsage field to a key (or tuple path) in
    ``source``. Missing or non-numeric values count as zero.
    """
    counts = {}
    for name, path in field_paths.items():
        keys = path if isinstance(path, tuple) else (path,)
        value = dig(source, *keys) if source else None
        counts[name] = value if isinstance(value, int) and value > 0 else 0
    return TokenUsage(**counts)


def format_usage_summary(usage: TokenUsage) -> str:
    """
    Format usage metrics for display.

    Args:
        usage: Usage metrics to format

    Returns:
        Formatted string
    """
    return (
        f"API Usage Summary:\n"
        f"  Requests: {usage.request_count}\n"
        f"  Total Tokens: {usage.total:,}\n"
        f"  Input Tokens: {usage.input:,}\n"
        f"  Output Tokens: {usage.output:,}\n"
        f"  Cache Read Tokens: {usage.cache_read:,}\n"
        f"  Cache Creation Tokens: {usage.cache_creation:,}"
    )
