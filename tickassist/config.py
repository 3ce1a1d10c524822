"""Application settings loaded from environment variables."""

import os
from dataclasses import dataclass, field

from tickassist.models.llm import FeatureLevel

API_KEY_ENV_VARS: dict[str, str] = {
    "claude": "ANTHROPIC_API_KEY",
    "openai": "OPENAI_API_KEY",
    "grok": "XAI_API_KEY",
    "gemini": "GEMINI_API_KEY",
}


def _int_env(name: str, default: int | None) -> int | None:
    value = os.getenv(name)
    if value is None or value == "":
        return default
    return int(value)


@dataclass
class Settings:
    """Runtime configuration for the assistant service."""

    proxy_url: str | None = None
    provider: str = "claude"
    model: str | None = None
    api_keys: dict[str, str] = field(default_factory=dict)

    ticktick_access_token: str | None = None
    ticktick_session_token: str | None = None
    ticktick_username: str | None = None
    ticktick_password: str | None = None
    feature_level: FeatureLevel = "v1"

    timezone: str | None = None
    max_iterations: int = 10
    cache_ttl: float = 30.0
    requests_per_minute: int | None = None
    max_message_tokens: int = 2000
    cors_origins: list[str] = field(default_factory=lambda: ["*"])

    @classmethod
    def from_env(cls) -> "Settings":
        """Build settings from the process environment."""
        feature_level = os.getenv("TICKASSIST_FEATURE_LEVEL", "v1")
        if feature_level not in ("v1", "v2"):
            raise ValueError(f"TICKASSIST_FEATURE_LEVEL must be 'v1' or 'v2', got {feature_level!r}")

        return cls(
            proxy_url=os.getenv("TICKASSIST_PROXY_URL") or None,
            provider=os.getenv("TICKASSIST_PROVIDER", "claude"),
            model=os.getenv("TICKASSIST_MODEL") or None,
            api_keys={name: key for name, env in API_KEY_ENV_VARS.items() if (key := os.getenv(env))},
            ticktick_access_token=os.getenv("TICKTICK_ACCESS_TOKEN") or None,
            ticktick_session_token=os.getenv("TICKTICK_SESSION_TOKEN") or None,
            ticktick_username=os.getenv("TICKTICK_USERNAME") or None,
            ticktick_password=os.getenv("TICKTICK_PASSWORD") or None,
            feature_level=feature_level,  # type: ignore[arg-type]
            timezone=os.getenv("TICKASSIST_TIMEZONE") or None,
            max_iterations=_int_env("TICKASSIST_MAX_ITERATIONS", 10) or 10,
            cache_ttl=float(os.getenv("TICKASSIST_CACHE_TTL", "30")),
            requests_per_minute=_int_env("TICKASSIST_REQUESTS_PER_MINUTE", None),
            max_message_tokens=_int_env("TICKASSIST_MAX_MESSAGE_TOKENS", 2000) or 2000,
            cors_origins=[o.strip() for o in os.getenv("TICKASSIST_CORS_ORIGINS", "*").split(",") if o.strip()],
        )


_settings: Settings | None = None


def get_settings() -> Settings:
    """Get or create the settings instance."""
    global _settings
    if _settings is None:
        _settings = Settings.from_env()
    return _settings
