from typing import Literal

from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    api_key: str = ""  # empty = no auth check (local dev)
    openai_api_key: str = ""
    openai_base_url: str = ""
    openai_model: str = "gpt-4-turbo"
    openai_temperature: float = 0.7
    openai_timeout_seconds: float = 60.0
    max_image_size_bytes: int = 10 * 1024 * 1024  # 10MB
    report_filename: str = "embryo_analysis_report.pdf"
    report_overflow: Literal["split", "clamp"] = "split"
    session_ttl_seconds: int = 60 * 60  # idle sessions are dropped after this
    max_sessions: int = 256
    log_level: str = "INFO"
    cors_origins: list[str] = ["http://localhost:8000", "http://127.0.0.1:8000"]

    model_config = {"env_file": ".env", "env_file_encoding": "utf-8"}


settings = Settings()
