from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

from dotenv import load_dotenv


def _load_env_once() -> list[str]:
    """
    Loads .env from:
      1) ENV_PATH if provided
      2) backend/api/.env (project default)
      3) current working directory .env (fallback)

    Returns the locations that were tried, for error messages.
    """
    tried: list[str] = []

    env_path = os.getenv("ENV_PATH")
    if env_path:
        tried.append(f"ENV_PATH={env_path}")
        p = Path(env_path)
        if p.exists():
            load_dotenv(p, override=False)
            return tried

    # this file is backend/api/editorial/config.py
    backend_api_dir = Path(__file__).resolve().parents[1]
    p2 = backend_api_dir / ".env"
    tried.append(str(p2))
    if p2.exists():
        load_dotenv(p2, override=False)
        return tried

    p3 = Path.cwd() / ".env"
    tried.append(str(p3))
    if p3.exists():
        load_dotenv(p3, override=False)
    return tried


def _env_bool(name: str, default: bool) -> bool:
    raw = os.getenv(name)
    if raw is None or not raw.strip():
        return default
    return raw.strip().lower() in ("1", "true", "yes", "on")


def _env_int(name: str, default: int, minimum: int = 1) -> int:
    raw = os.getenv(name)
    if raw is None or not raw.strip():
        return default
    try:
        value = int(raw)
    except ValueError:
        raise RuntimeError(f"{name} must be an integer, got {raw!r}") from None
    if value < minimum:
        raise RuntimeError(f"{name} must be >= {minimum}, got {value}")
    return value


def _env_float(name: str, default: float) -> float:
    raw = os.getenv(name)
    if raw is None or not raw.strip():
        return default
    try:
        value = float(raw)
    except ValueError:
        raise RuntimeError(f"{name} must be a number, got {raw!r}") from None
    if value <= 0:
        raise RuntimeError(f"{name} must be positive, got {value}")
    return value


@dataclass(frozen=True)
class Settings:
    database_url: str
    scheduler_interval_seconds: int = 60
    scheduler_batch_size: int = 100
    scheduler_in_process: bool = False
    notify_webhook_url: Optional[str] = None
    notify_timeout_seconds: float = 5.0
    notify_max_workers: int = 4
    log_level: str = "INFO"
    log_json: bool = True


def load_settings() -> Settings:
    tried = _load_env_once()

    db_url = os.getenv("DATABASE_URL") or os.getenv("DB_URL")
    if not db_url:
        raise RuntimeError(
            "DATABASE_URL is not set. Ensure it exists in backend/api/.env or set ENV_PATH.\n"
            f"Tried: {', '.join(tried)}"
        )

    return Settings(
        database_url=db_url,
        scheduler_interval_seconds=_env_int("SCHEDULER_INTERVAL_SECONDS", 60),
        scheduler_batch_size=_env_int("SCHEDULER_BATCH_SIZE", 100),
        scheduler_in_process=_env_bool("SCHEDULER_IN_PROCESS", False),
        notify_webhook_url=(os.getenv("NOTIFY_WEBHOOK_URL") or "").strip() or None,
        notify_timeout_seconds=_env_float("NOTIFY_TIMEOUT_SECONDS", 5.0),
        notify_max_workers=_env_int("NOTIFY_MAX_WORKERS", 4),
        log_level=(os.getenv("LOG_LEVEL") or "INFO").strip().upper(),
        log_json=_env_bool("LOG_JSON", True),
    )
