"""
Configuration management for the QA analytics engine.
Loads settings from environment variables and the project .env file.
"""

from pathlib import Path
from typing import Optional

from dotenv import load_dotenv
from loguru import logger
from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

# This file is at qase_analytics/config/settings.py, so project root is 3 levels up
_project_root = Path(__file__).resolve().parent.parent.parent

PROJECT_ROOT = _project_root

_env_file = _project_root / ".env"
if _env_file.exists():
    load_dotenv(dotenv_path=_env_file, override=False)
    logger.debug(f"Loaded .env from: {_env_file}")
else:
    load_dotenv(override=False)


class Settings(BaseSettings):
    """Application settings from environment variables."""

    model_config = SettingsConfigDict(
        env_file=str(_project_root / ".env"),
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # OpenAI Configuration
    openai_api_key: str = Field(default="")
    openai_model: str = Field(default="gpt-4o")
    classifier_model: str = Field(default="gpt-4o-mini")  # Cheap model for intent classification
    agent_temperature: float = Field(default=0.1)
    classifier_temperature: float = Field(default=0.0)
    general_temperature: float = Field(default=0.7)
    max_output_tokens: int = Field(default=2048)
    llm_timeout_seconds: float = Field(default=60.0)

    # Qase API Configuration
    qase_api_base_url: str = Field(default="https://api.qase.io/v1")
    qase_api_token: str = Field(default="")  # Only used by scripts; requests carry their own token
    qase_request_timeout_seconds: float = Field(default=30.0)
    qase_max_retries: int = Field(default=3)
    qase_initial_delay_ms: int = Field(default=1000)
    qase_max_delay_ms: int = Field(default=10000)
    qase_backoff_multiplier: float = Field(default=2.0)
    qase_default_page_size: int = Field(default=100)

    # Cache Configuration
    redis_url: Optional[str] = Field(default=None)  # In-memory cache when unset
    cache_ttl_projects: int = Field(default=300)
    cache_ttl_cases: int = Field(default=120)
    cache_ttl_runs: int = Field(default=120)
    cache_ttl_results: int = Field(default=300)

    # Conversation Memory Configuration
    max_conversation_messages: int = Field(default=20)
    classifier_history_messages: int = Field(default=4)

    # Agent Configuration
    agent_max_iterations: int = Field(default=15)
    agent_registry_max_size: int = Field(default=1000)  # Least recently used agents are dropped beyond this

    # Chat Service Configuration
    max_message_length: int = Field(default=2000)
    slow_response_threshold_ms: int = Field(default=10000)

    # Logging
    log_level: str = Field(default="INFO")
    log_dir: str = Field(default="data/logs")

    @property
    def log_dir_resolved(self) -> Path:
        log_dir = Path(self.log_dir)
        if not log_dir.is_absolute():
            log_dir = _project_root / log_dir
        return log_dir


# Create global settings instance
settings = Settings()
