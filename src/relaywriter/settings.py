from typing import Literal

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application configuration."""

    host: str = "0.0.0.0"
    port: int = 3000
    debug: bool = False
    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR"] = "INFO"

    cors_origins: str = "*"

    temperature: float = 0.7
    request_timeout_seconds: float = 60.0
    max_output_budget: int = 5000

    system_prompt: str = (
        "Your task is to continue the following piece of writing (you must only "
        "output the added content, and must not include this input prompt in the "
        "output). Do not repeat any existing text - only add new content to continue."
    )

    openai_base_url: str | None = None
    perplexity_base_url: str = "https://api.perplexity.ai"
    deepseek_base_url: str = "https://api.deepseek.com"
    gemini_base_url: str = "https://generativelanguage.googleapis.com/v1beta"

    # Cloudflare Workers AI runs on server-side credentials only.
    cloudflare_api_key: str | None = None
    cloudflare_account_id: str | None = None
    cloudflare_api_base: str = "https://api.cloudflare.com/client/v4"

    redis_url: str | None = None

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        env_prefix="",
        extra="allow",
    )


def get_settings() -> Settings:
    """Return the application settings singleton (loaded from env / .env)."""
    global _SETTINGS
    try:
        return _SETTINGS
    except NameError:
        _SETTINGS = Settings()
        return _SETTINGS
