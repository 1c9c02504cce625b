from pydantic_settings import BaseSettings
from pydantic import AliasChoices, Field


class Settings(BaseSettings):
    # Context assembly
    context_recent_slice: int = 100
    context_message_cap: int = 1200
    context_char_budget: int = 180_000
    # Post-decimation message floor and base: keep max(min, base // factor)
    context_min_messages: int = 120
    context_message_base: int = 600

    # Storage (in-memory store when mongo_uri is unset)
    mongo_uri: str | None = None
    mongo_db: str = "healthtrack"

    # Report LLM (OpenAI-compatible server)
    report_api_key: str = Field(
        default="EMPTY",
        validation_alias=AliasChoices(
            "HT_REPORT_API_KEY",
            "OPENAI_API_KEY",
        ),
    )
    report_base_url: str = "https://api.openai.com/v1"
    report_model: str = "gpt-4o-mini"
    report_max_tokens: int = 1024
    report_temperature: float = 0.3
    report_request_timeout_seconds: float = 30.0
    report_max_retries: int = 2
    report_retry_backoff_seconds: float = 0.5
    report_max_concurrent_calls: int = 4
    report_log_enabled: bool = False
    report_log_path: str = "logs/report_calls.jsonl"

    # Server
    host: str = "0.0.0.0"
    port: int = 8800
    cors_origins: list[str] = ["http://localhost:5173", "http://localhost:3000"]

    model_config = {"env_prefix": "HT_", "env_file": ".env", "extra": "ignore"}


settings = Settings()
