from __future__ import annotations

import os
from functools import lru_cache
from pathlib import Path
from typing import Optional

from dotenv import load_dotenv


load_dotenv()


def _optional_float(name: str) -> Optional[float]:
    raw = os.getenv(name)
    if raw is None or not raw.strip():
        return None
    return float(raw)


class Settings:
    """Application settings loaded from environment variables.

    Keep all credentials and config centralized here. The server reads the
    model options; the chat client reads the ``chat_*`` values.
    """

    app_env: str = os.getenv("APP_ENV", "development")
    log_level: str = os.getenv("LOG_LEVEL", "INFO")
    host: str = os.getenv("HOST", "127.0.0.1")
    port: int = int(os.getenv("PORT", "3000"))

    gemini_api_key: Optional[str] = os.getenv("GEMINI_API_KEY") or os.getenv("GOOGLE_API_KEY")
    gemini_model: str = os.getenv("GEMINI_MODEL", "gemini-2.5-flash")
    temperature: Optional[float] = _optional_float("MODEL_TEMPERATURE")
    top_p: Optional[float] = _optional_float("MODEL_TOP_P")
    model_timeout: float = float(os.getenv("MODEL_TIMEOUT_SECONDS", "60"))

    chat_api_url: str = os.getenv("CHAT_API_URL", "http://localhost:3000")
    chat_request_timeout: float = float(os.getenv("CHAT_REQUEST_TIMEOUT", "90"))
    chat_history_file: Path = Path(
        os.getenv("CHAT_HISTORY_FILE", "~/.gemini-chat/storage.json")
    ).expanduser()
    typing_delay: float = float(os.getenv("CHAT_TYPING_DELAY_MS", "25")) / 1000
    client_log_level: str = os.getenv("CHAT_LOG_LEVEL", "WARNING")


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    return Settings()
