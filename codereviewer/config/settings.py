"""
Application configuration management
"""

from functools import lru_cache
from typing import Literal, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

SUPPORTED_PROVIDERS = ("openai", "gemini", "claude")

# Names people commonly type for the three backends
_PROVIDER_ALIASES = {
    "anthropic": "claude",
    "google": "gemini",
    "gpt": "openai",
}

DEFAULT_MODELS = {
    "openai": "gpt-4o",
    "gemini": "gemini-1.5-pro",
    "claude": "claude-3-5-sonnet-20240620",
}


def normalize_provider(value: Optional[str]) -> Optional[str]:
    if value is None:
        return None
    name = value.strip().lower()
    if not name:
        return None
    return _PROVIDER_ALIASES.get(name, name)


class ProviderConfig(BaseModel):
    """Read-only provider selection handed to the router and orchestrator"""

    model_config = ConfigDict(frozen=True)

    provider: Optional[str] = None
    api_key: str = Field("", repr=False)
    model: Optional[str] = None
    review_depth: Literal["quick", "deep"] = "deep"
    # Read by the front-end: "auto" re-reviews files as the watcher reports them
    mode: Literal["manual", "auto"] = "manual"
    include_context: bool = True
    max_context_messages: int = 10

    @field_validator("provider", mode="before")
    @classmethod
    def validate_provider(cls, v: Optional[str]) -> Optional[str]:
        return normalize_provider(v)

    def is_configured(self) -> bool:
        """True when an API key has been supplied"""
        return bool(self.api_key and self.api_key.strip())

    @property
    def resolved_model(self) -> Optional[str]:
        return self.model or DEFAULT_MODELS.get(self.provider or "")

    @property
    def masked_api_key(self) -> str:
        if not self.api_key:
            return "Not Set"
        return "********" + self.api_key[-4:]


class Settings(BaseSettings):
    """Application settings with environment variable support"""

    model_config = SettingsConfigDict(
        env_prefix="CODEREVIEWER_",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # Provider selection
    provider: Optional[str] = Field("gemini")
    api_key: str = Field("", repr=False)
    model: Optional[str] = Field(None)

    # Review behaviour
    review_depth: Literal["quick", "deep"] = Field("deep")
    mode: Literal["manual", "auto"] = Field("manual")
    include_context: bool = Field(True)
    max_context_messages: int = Field(10)

    # Runtime
    log_level: str = Field("INFO")
    request_timeout: float = Field(60.0)
    history_dir_name: str = Field(".awesomediagns")

    @field_validator("provider", mode="before")
    @classmethod
    def validate_provider(cls, v: Optional[str]) -> Optional[str]:
        """Accept vendor names as aliases for the backend families"""
        return normalize_provider(v)

    @field_validator("log_level")
    @classmethod
    def validate_log_level(cls, v: str) -> str:
        level = v.strip().upper()
        if level not in ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"):
            raise ValueError(f"Invalid log level: {v}")
        return level

    @field_validator("request_timeout")
    @classmethod
    def validate_timeout(cls, v: float) -> float:
        if v <= 0:
            raise ValueError("Request timeout must be positive")
        return v

    def is_configured(self) -> bool:
        """True once an API key has been set up"""
        return bool(self.api_key and self.api_key.strip())

    def to_provider_config(self) -> ProviderConfig:
        return ProviderConfig(
            provider=self.provider,
            api_key=self.api_key,
            model=self.model,
            review_depth=self.review_depth,
            mode=self.mode,
            include_context=self.include_context,
            max_context_messages=self.max_context_messages,
        )

    def __repr__(self) -> str:
        """Secure representation that doesn't expose secrets"""
        return f"<{self.__class__.__name__} provider={self.provider} model={self.model}>"


@lru_cache()
def get_settings() -> Settings:
    """Return the process-wide settings instance"""
    return Settings()
