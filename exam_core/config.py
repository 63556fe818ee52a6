# exam_core/config.py

"""
Settings for exam_core, read from environment variables and an optional .env
file at the repository root.
"""

import os
import logging
from dataclasses import dataclass
from typing import Optional

from dotenv import load_dotenv

BASE_DIR = os.path.dirname(os.path.dirname(os.path.abspath(__file__)))
ENV_PATH = os.path.join(BASE_DIR, ".env")

LOG_FORMAT = "[%(asctime)s] %(levelname)s - %(message)s"


@dataclass(frozen=True)
class Settings:
    log_level: str = "INFO"
    log_file: Optional[str] = "logs/exam_core.log"
    base_seed: Optional[str] = None
    balance_warning: float = 0.2
    minutes_per_question: float = 2.0
    output_dir: str = "output"


def _env_float(name: str, default: float) -> float:
    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
        return default
    try:
        return float(raw)
    except ValueError:
        raise ValueError(f"❌ {name} must be a number (got {raw!r})") from None


def load_settings(env_path: Optional[str] = None) -> Settings:
    """
    Load settings fresh from the environment.
    Existing environment variables win over values in the .env file.
    """
    load_dotenv(dotenv_path=env_path or ENV_PATH)

    log_file = os.getenv("EXAM_LOG_FILE", Settings.log_file)
    minutes = _env_float("EXAM_MINUTES_PER_QUESTION", Settings.minutes_per_question)
    if minutes <= 0:
        raise ValueError(f"❌ EXAM_MINUTES_PER_QUESTION must be > 0 (got {minutes})")

    return Settings(
        log_level=os.getenv("EXAM_LOG_LEVEL", Settings.log_level).upper(),
        log_file=log_file or None,
        base_seed=os.getenv("EXAM_BASE_SEED") or None,
        balance_warning=_env_float("EXAM_BALANCE_WARNING", Settings.balance_warning),
        minutes_per_question=minutes,
        output_dir=os.getenv("EXAM_OUTPUT_DIR", Settings.output_dir),
    )


def configure_logging(settings: Settings) -> None:
    """Stream handler plus an optional UTF-8 log file. Call from entry points only."""
    handlers = [logging.StreamHandler()]
    if settings.log_file:
        log_dir = os.path.dirname(settings.log_file)
        if log_dir:
            os.makedirs(log_dir, exist_ok=True)
        handlers.append(logging.FileHandler(settings.log_file, encoding="utf-8"))

    logging.basicConfig(
        level=getattr(logging, settings.log_level, logging.INFO),
        format=LOG_FORMAT,
        handlers=handlers,
        force=True,
    )
