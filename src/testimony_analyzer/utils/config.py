"""Configuration management."""

import json
import logging
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, Optional

logger = logging.getLogger(__name__)

# Environment variables consulted when the config file has no key
API_KEY_ENV_VARS = {
    "claude": "ANTHROPIC_API_KEY",
    "gemini": "GEMINI_API_KEY",
    "openai": "OPENAI_API_KEY",
    "grok": "XAI_API_KEY",
}


class Config:
    """Application configuration manager."""

    def __init__(self, config_file: Optional[Path] = None):
        """Initialize configuration manager.

        Args:
            config_file: Path to configuration file
        """
        self.config_file = Path(config_file) if config_file else Path("config.json")
        self._config: Dict[str, Any] = {}
        self._load_config()

    def _load_config(self) -> None:
        """Load configuration from file."""
        self._config = self._get_default_config()
        if self.config_file.exists():
            try:
                with open(self.config_file, 'r', encoding='utf-8') as f:
                    loaded = json.load(f)
                if isinstance(loaded, dict):
                    self._config.update(loaded)
                else:
                    logger.warning(f"Ignoring config file {self.config_file}: expected a JSON object")
            except (json.JSONDecodeError, IOError) as e:
                logger.warning(f"Ignoring unreadable config file {self.config_file}: {e}")

    def _get_default_config(self) -> Dict[str, Any]:
        """Get default configuration."""
        return {
            "provider": "claude",
            "claude_model": "claude-sonnet-4-20250514",
            "gemini_model": "gemini-3-flash-preview",
            "openai_model": "gpt-5.2-chat-latest",
            "grok_model": "grok-4-1-fast-reasoning",
            "api_keys": {},
            "use_extended_thinking": False,
            "thinking_budget": "10000",
            "gemini_thinking_level": "high",
            "openai_reasoning_level": "medium",
            "base_urls": {}
        }

    def get(self, key: str, default: Any = None) -> Any:
        """Get configuration value.

        Args:
            key: Configuration key
            default: Default value if key not found

        Returns:
            Configuration value
        """
        return self._config.get(key, default)

    def set(self, key: str, value: Any) -> None:
        """Set configuration value.

        Args:
            key: Configuration key
            value: Configuration value
        """
        self._config[key] = value

    def save(self) -> None:
        """Save configuration to file."""
        with open(self.config_file, 'w', encoding='utf-8') as f:
            json.dump(self._config, f, indent=2)


@dataclass
class ProviderSettings:
    """
    Long-lived, user-editable provider settings.

    Injected into the gateway; the gateway reads but never mutates them.
    ``provider`` is kept as a raw string so a stale id survives loading and
    is handled by the gateway's dispatch fallback.
    """
    provider: str = "claude"
    claude_model: str = "claude-sonnet-4-20250514"
    gemini_model: str = "gemini-3-flash-preview"
    openai_model: str = "gpt-5.2-chat-latest"
    grok_model: str = "grok-4-1-fast-reasoning"
    api_keys: Dict[str, str] = field(default_factory=dict)
    use_extended_thinking: bool = False
    thinking_budget: str = "10000"
    gemini_thinking_level: str = "high"
    openai_reasoning_level: str = "medium"
    base_urls: Dict[str, str] = field(default_factory=dict)

    def model_for(self, provider_id: str) -> str:
        """Selected model id for a provider."""
        return getattr(self, f"{provider_id}_model", self.claude_model)

    def api_key_for(self, provider_id: str) -> Optional[str]:
        """API key for a provider, falling back to its environment variable."""
        key = self.api_keys.get(provider_id)
        if key:
            return key
        env_var = API_KEY_ENV_VARS.get(provider_id)
        return os.getenv(env_var) if env_var else None

    def base_url_for(self, provider_id: str) -> Optional[str]:
        return self.base_urls.get(provider_id) or None

    @property
    def active_model(self) -> str:
        """Model selected for the active provider."""
        return self.model_for(self.provider)

    @classmethod
    def from_config(cls, config: Config) -> "ProviderSettings":
        """Build provider settings from a Config instance."""
        defaults = cls()
        return cls(
            provider=config.get("provider", defaults.provider),
            claude_model=config.get("claude_model", defaults.claude_model),
            gemini_model=config.get("gemini_model", defaults.gemini_model),
            openai_model=config.get("openai_model", defaults.openai_model),
            grok_model=config.get("grok_model", defaults.grok_model),
            api_keys=dict(config.get("api_keys") or {}),
            use_extended_thinking=bool(config.get("use_extended_thinking", False)),
            thinking_budget=str(config.get("thinking_budget", defaults.thinking_budget)),
            gemini_thinking_level=config.get("gemini_thinking_level", defaults.gemini_thinking_level),
            openai_reasoning_level=config.get("openai_reasoning_level", defaults.openai_reasoning_level),
            base_urls=dict(config.get("base_urls") or {})
        )
