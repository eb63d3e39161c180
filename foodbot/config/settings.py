"""環境變數設定 - 啟動時讀 .env，之後一律從 Settings 取值"""
from __future__ import annotations

import os
from dataclasses import dataclass
from typing import Optional, Tuple

from dotenv import load_dotenv


def _int_env(name: str, default: int) -> int:
    raw = os.getenv(name)
    if raw is None or not raw.strip():
        return default
    return int(raw)


def _float_env(name: str, default: float) -> float:
    raw = os.getenv(name)
    if raw is None or not raw.strip():
        return default
    return float(raw)


@dataclass(frozen=True)
class Settings:
    openai_api_key: Optional[str] = None
    openai_base_url: Optional[str] = None
    openai_assistant_id: Optional[str] = None
    openai_timeout: float = 60.0
    openai_max_retries: int = 2

    food_vision_url: str = "https://img-221467505226.us-central1.run.app"
    food_vision_timeout: float = 30.0

    locale: str = "es"
    # 0/0 代表不模擬「思考中」延遲
    delay_min_ms: int = 0
    delay_max_ms: int = 0

    log_level: str = "INFO"

    @property
    def delay_range(self) -> Optional[Tuple[int, int]]:
        if self.delay_max_ms <= 0:
            return None
        return (max(0, self.delay_min_ms), self.delay_max_ms)

    @classmethod
    def from_env(cls, *, dotenv: bool = True) -> "Settings":
        if dotenv:
            load_dotenv()

        return cls(
            openai_api_key=os.getenv("OPENAI_API_KEY") or None,
            openai_base_url=os.getenv("OPENAI_BASE_URL") or None,
            openai_assistant_id=os.getenv("OPENAI_ASSISTANT_ID") or None,
            openai_timeout=_float_env("OPENAI_TIMEOUT", 60.0),
            openai_max_retries=_int_env("OPENAI_MAX_RETRIES", 2),
            food_vision_url=os.getenv("FOOD_VISION_URL", cls.food_vision_url),
            food_vision_timeout=_float_env("FOOD_VISION_TIMEOUT", 30.0),
            locale=os.getenv("FOODBOT_LOCALE", "es"),
            delay_min_ms=_int_env("FOODBOT_DELAY_MIN_MS", 0),
            delay_max_ms=_int_env("FOODBOT_DELAY_MAX_MS", 0),
            log_level=os.getenv("LOG_LEVEL", "INFO").upper(),
        )
