"""
Provider adapters.

Each supported provider gets one adapter that knows its request envelope,
its response envelope and which HTTP statuses are transient. The gateway's
retry loop only ever talks to the ProviderAdapter interface.
"""

from typing import Any, Dict, FrozenSet, List, Optional

from .models import (
    AuthenticationError, CallOptions, LLMMessage, LLMProvider, MessageRole,
    ProviderReply, ProviderRequest, TruncatedOutputError, block_to_text
)
from .utils import (
    DEFAULT_GEMINI_THINKING_BUFFER, GEMINI_THINKING_BUFFER, REASONING_MODELS,
    THINKING_OVERHEAD_TOKENS, dig, parse_thinking_budget, usage_from_fields
)
from ..utils.config import ProviderSettings


TRUNCATION_MESSAGE = (
    "The analysis was truncated because it exceeded the output token limit. "
    "Try again with a shorter transcript."
)


class ProviderAdapter:
    """Base class for provider-specific request/response shapes."""

    provider: LLMProvider
    default_base_url: str = ""
    retryable_statuses: FrozenSet[int] = frozenset({429, 500, 502, 503})

    def build_request(
        self,
        messages: List[LLMMessage],
        options: CallOptions,
        settings: ProviderSettings
    ) -> ProviderRequest:
        raise NotImplementedError

    def parse_response(self, data: Dict[str, Any]) -> ProviderReply:
        raise NotImplementedError

    def is_retryable_status(self, status_code: int) -> bool:
        return status_code in self.retryable_statuses

    def error_message(self, data: Any, status_code: int) -> str:
        """Provider error message from an error body, or a generic one."""
        message = dig(data, "error", "message")
        if isinstance(message, str) and message:
            return message
        return f"HTTP {status_code}"

    def resolve_model(self, options: CallOptions, settings: ProviderSettings) -> str:
        return options.model or settings.model_for(self.provider.value)

    def base_url(self, settings: ProviderSettings) -> str:
        return (settings.base_url_for(self.provider.value) or self.default_base_url).rstrip("/")

    def api_key(self, settings: ProviderSettings) -> str:
        key = settings.api_key_for(self.provider.value)
        if not key:
            raise AuthenticationError(
                f"No API key configured for provider '{self.provider.value}'",
                provider=self.provider
            )
        return key


class ClaudeAdapter(ProviderAdapter):
    """Anthropic Messages API."""

    provider = LLMProvider.CLAUDE
    default_base_url = "https://api.anthropic.com/v1"
    retryable_statuses = frozenset({429, 502, 503, 529})
    api_version = "2023-06-01"

    def build_request(self, messages, options, settings):
        use_thinking = settings.use_extended_thinking and not options.disable_thinking
        thinking_budget = parse_thinking_budget(settings.thinking_budget)

        # The Messages API has no system role; hoist those into the system prompt
        system_parts = [options.system_prompt] if options.system_prompt else []
        system_parts.extend(m.flat_text() for m in messages if m.role == MessageRole.SYSTEM)
        conversation = [m.to_dict() for m in messages if m.role != MessageRole.SYSTEM]

        max_tokens = options.max_tokens
        if use_thinking:
            max_tokens = max(max_tokens, thinking_budget + THINKING_OVERHEAD_TOKENS)

        body: Dict[str, Any] = {
            "model": self.resolve_model(options, settings),
            "max_tokens": max_tokens,
            "messages": conversation
        }
        if system_parts:
            body["system"] = [{
                "type": "text",
                "text": "\n\n".join(system_parts),
                "cache_control": {"type": "ephemeral"}
            }]
        if use_thinking:
            body["thinking"] = {"type": "enabled", "budget_tokens": thinking_budget}

        return ProviderRequest(
            url=f"{self.base_url(settings)}/messages",
            headers={
                "Content-Type": "application/json",
                "x-api-key": self.api_key(settings),
                "anthropic-version": self.api_version
            },
            body=body
        )

    def parse_response(self, data):
        if data.get("stop_reason") == "max_tokens":
            raise TruncatedOutputError(TRUNCATION_MESSAGE, status_code=200, provider=self.provider)

        text = ""
        for block in data.get("content") or []:
            if isinstance(block, dict) and block.get("type") == "text":
                text = block.get("text") or ""
                break

        usage = usage_from_fields(
            data.get("usage"),
            input="input_tokens",
            output="output_tokens",
            cache_read="cache_read_input_tokens",
            cache_creation="cache_creation_input_tokens"
        )
        return ProviderReply(text=text.strip(), usage=usage, finish_reason=data.get("stop_reason"))


class GeminiAdapter(ProviderAdapter):
    """Google Gemini generateContent API."""

    provider = LLMProvider.GEMINI
    default_base_url = "https://generativelanguage.googleapis.com/v1beta"

    def thinking_level(self, model: str, settings: ProviderSettings) -> str:
        """Configured level, clamped to what the model accepts."""
        level = settings.gemini_thinking_level or "high"
        # Pro models only accept low/high
        if "pro" in model and level in ("minimal", "medium"):
            level = "low"
        return level

    def build_request(self, messages, options, settings):
        model = self.resolve_model(options, settings)
        contents = [
            {
                "role": "model" if m.role == MessageRole.ASSISTANT else "user",
                "parts": [{"text": part} for part in m.text_parts()]
            }
            for m in messages
        ]

        generation_config: Dict[str, Any] = {
            "maxOutputTokens": options.max_tokens,
            "temperature": 1.0
        }
        if not options.disable_thinking:
            level = self.thinking_level(model, settings)
            buffer = GEMINI_THINKING_BUFFER.get(level, DEFAULT_GEMINI_THINKING_BUFFER)
            generation_config["maxOutputTokens"] = options.max_tokens + buffer
            generation_config["thinkingConfig"] = {
                "thinkingBudget": buffer,
                "includeThoughts": True
            }

        body: Dict[str, Any] = {
            "contents": contents,
            "generationConfig": generation_config
        }
        if options.system_prompt:
            body["systemInstruction"] = {"parts": [{"text": options.system_prompt}]}

        return ProviderRequest(
            url=f"{self.base_url(settings)}/models/{model}:generateContent",
            headers={
                "Content-Type": "application/json",
                "x-goog-api-key": self.api_key(settings)
            },
            body=body
        )

    def parse_response(self, data):
        candidate = dig(data, "candidates", 0) or {}
        finish_reason = candidate.get("finishReason")
        if finish_reason == "MAX_TOKENS":
            raise TruncatedOutputError(TRUNCATION_MESSAGE, status_code=200, provider=self.provider)

        # With thoughts included the first part is usually the reasoning trace
        text = ""
        for part in dig(candidate, "content", "parts") or []:
            if isinstance(part, dict) and not part.get("thought") and part.get("text"):
                text = part["text"]
                break

        usage = usage_from_fields(
            data.get("usageMetadata"),
            input="promptTokenCount",
            output="candidatesTokenCount",
            cache_read="cachedContentTokenCount"
        )
        return ProviderReply(text=text.strip(), usage=usage, finish_reason=finish_reason)


class OpenAIAdapter(ProviderAdapter):
    """OpenAI Chat Completions API."""

    provider = LLMProvider.OPENAI
    default_base_url = "https://api.openai.com/v1"

    def convert_message(self, message: LLMMessage) -> Dict[str, Any]:
        if not message.is_multipart():
            return {"role": message.role.value, "content": message.content}
        return {
            "role": message.role.value,
            "content": [{"type": "text", "text": block_to_text(block)} for block in message.content]
        }

    def reasoning_effort(self, model: str, options: CallOptions, settings: ProviderSettings) -> Optional[str]:
        if model in REASONING_MODELS and not options.disable_thinking:
            return settings.openai_reasoning_level or "medium"
        return None

    def build_request(self, messages, options, settings):
        model = self.resolve_model(options, settings)
        chat_messages: List[Dict[str, Any]] = []
        if options.system_prompt:
            chat_messages.append({"role": "system", "content": options.system_prompt})
        chat_messages.extend(self.convert_message(m) for m in messages)

        body: Dict[str, Any] = {
            "model": model,
            "messages": chat_messages,
            "max_tokens": options.max_tokens
        }
        effort = self.reasoning_effort(model, options, settings)
        if effort:
            body["reasoning_effort"] = effort

        return ProviderRequest(
            url=f"{self.base_url(settings)}/chat/completions",
            headers={
                "Content-Type": "application/json",
                "Authorization": f"Bearer {self.api_key(settings)}"
            },
            body=body
        )

    def parse_response(self, data):
        choice = dig(data, "choices", 0) or {}
        finish_reason = choice.get("finish_reason")
        if finish_reason == "length":
            raise TruncatedOutputError(TRUNCATION_MESSAGE, status_code=200, provider=self.provider)

        text = dig(choice, "message", "content") or ""
        usage = usage_from_fields(
            data.get("usage"),
            input="prompt_tokens",
            output="completion_tokens",
            cache_read=("prompt_tokens_details", "cached_tokens")
        )
        return ProviderReply(text=text.strip(), usage=usage, finish_reason=finish_reason)


class GrokAdapter(OpenAIAdapter):
    """xAI Grok chat API: OpenAI-shaped, plain-text content only."""

    provider = LLMProvider.GROK
    default_base_url = "https://api.x.ai/v1"

    def convert_message(self, message):
        return {"role": message.role.value, "content": message.flat_text("\n")}

    def reasoning_effort(self, model, options, settings):
        return None


ADAPTERS: Dict[LLMProvider, ProviderAdapter] = {
    LLMProvider.CLAUDE: ClaudeAdapter(),
    LLMProvider.GEMINI: GeminiAdapter(),
    LLMProvider.OPENAI: OpenAIAdapter(),
    LLMProvider.GROK: GrokAdapter(),
}

DEFAULT_PROVIDER = LLMProvider.CLAUDE


def get_adapter(provider: LLMProvider) -> ProviderAdapter:
    """Adapter registered for a provider."""
    return ADAPTERS[provider]
