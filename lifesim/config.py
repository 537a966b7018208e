"""Process configuration from environment variables (and .env, via python-dotenv).

    LIFESIM_DATA_DIR       save directory root            (./data)
    LIFESIM_AI_URL         LLM base URL; empty disables AI ("")
    LIFESIM_AI_KEY         API key                        ("")
    LIFESIM_AI_FORMAT      gemini | openai                (gemini)
    LIFESIM_AI_MODEL       model id                       (gemini-1.5-flash)
    LIFESIM_AI_TIMEOUT     event generation timeout, s    (10)
    LIFESIM_JUDGE_TIMEOUT  custom-choice judge timeout, s (8)
    LIFESIM_TICK_INTERVAL  seconds credited per tick      (1)
    LOG_LEVEL              root log level                 (INFO)
    HOST / PORT            HTTP bind address              (0.0.0.0 / 13013)

Game-level toggles (AI on/off, sound, language) live in GameState.settings,
not here.
"""

from __future__ import annotations

import logging
import os
import sys
from collections.abc import Mapping
from pathlib import Path

from dotenv import load_dotenv
from pydantic import BaseModel, Field

from lifesim.llm import HttpLLM, ProviderFormat

ROOT = Path(__file__).parent.parent


class Settings(BaseModel):
    data_dir: Path = ROOT / "data"
    ai_url: str = ""
    ai_key: str = ""
    ai_format: ProviderFormat = "gemini"
    ai_model: str = "gemini-1.5-flash"
    ai_timeout: float = Field(default=10.0, gt=0)
    judge_timeout: float = Field(default=8.0, gt=0)
    tick_interval: float = Field(default=1.0, gt=0)
    log_level: str = "INFO"
    host: str = "0.0.0.0"
    port: int = 13013

    @property
    def ai_configured(self) -> bool:
        return bool(self.ai_url)

    @classmethod
    def from_env(cls, environ: Mapping[str, str] | None = None) -> Settings:
        """Read settings from `environ` (default: os.environ after loading .env)."""
        if environ is None:
            load_dotenv(ROOT / ".env")
            environ = os.environ
        mapping = {
            "data_dir": "LIFESIM_DATA_DIR",
            "ai_url": "LIFESIM_AI_URL",
            "ai_key": "LIFESIM_AI_KEY",
            "ai_format": "LIFESIM_AI_FORMAT",
            "ai_model": "LIFESIM_AI_MODEL",
            "ai_timeout": "LIFESIM_AI_TIMEOUT",
            "judge_timeout": "LIFESIM_JUDGE_TIMEOUT",
            "tick_interval": "LIFESIM_TICK_INTERVAL",
            "log_level": "LOG_LEVEL",
            "host": "HOST",
            "port": "PORT",
        }
        values = {field: environ[var] for field, var in mapping.items() if environ.get(var)}
        return cls.model_validate(values)

    def build_llm(self) -> HttpLLM | None:
        if not self.ai_configured:
            return None
        return HttpLLM(
            self.ai_url,
            api_key=self.ai_key,
            provider_format=self.ai_format,
            model=self.ai_model,
            timeout=self.ai_timeout,
        )


def setup_logging(level: str = "INFO") -> None:
    """Configure root logger and quiet noisy third-party loggers."""
    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.INFO),
        format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
        stream=sys.stdout,
        force=True,
    )
    for name in ("httpx", "httpcore", "uvicorn.access"):
        logging.getLogger(name).setLevel(logging.WARNING)
