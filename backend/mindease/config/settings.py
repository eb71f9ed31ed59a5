"""
Configuration Settings.
"""

from pydantic_settings import BaseSettings
from typing import Optional


class Settings(BaseSettings):
    """Application settings."""

    # App info
    app_name: str = "MindEase"
    app_version: str = "1.0.0"
    environment: str = "development"  # development, test, production
    debug: bool = True

    # Session store
    storage_type: str = "local"
    local_storage_path: str = "./data"
    store_timeout_seconds: float = 10.0

    # LLM Provider settings
    llm_provider: str = "groq"  # "groq" or "openai"
    llm_api_key: Optional[str] = None
    llm_base_url: Optional[str] = None  # uses provider default if not set
    llm_timeout_seconds: float = 30.0
    llm_max_attempts: int = 3  # 1 disables retry
    llm_retry_max_wait_seconds: float = 8.0

    # Legacy key (still accepted)
    groq_api_key: Optional[str] = None

    # Chat reply call
    chat_model: str = "llama3-70b-8192"
    chat_temperature: float = 0.7
    chat_max_tokens: int = 150

    # Summary calls
    summary_model: str = "llama3-70b-8192"
    summary_temperature: float = 0.7
    summary_max_tokens: int = 400
    quick_summary_temperature: float = 0.3
    quick_summary_max_tokens: int = 200

    # Context window
    context_window_size: int = 10
    history_session_limit: int = 3
    history_message_count: int = 3

    # Extra recall phrases, added to the built-in set
    recall_trigger_phrases: list[str] = []

    # CORS
    cors_origins: list[str] = [
        "http://localhost:3000",
        "http://127.0.0.1:3000",
    ]

    # Logging configuration
    log_level: str = "INFO"  # DEBUG, INFO, WARNING, ERROR, CRITICAL
    log_file_path: str = "./logs/mindease.log"
    log_file_enabled: bool = True
    log_console_enabled: bool = True
    log_json_format: bool = True  # JSON format for files, human-readable for console
    log_api_requests: bool = True  # Log all API requests/responses

    class Config:
        env_file = ".env"
        case_sensitive = False

    @property
    def is_production(self) -> bool:
        return self.environment.lower() == "production"

    def resolved_llm_api_key(self) -> Optional[str]:
        return self.llm_api_key or self.groq_api_key


settings = Settings()
