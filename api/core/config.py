"""
Environment-driven configuration helpers.

Values are read on every call so tests can flip env vars with monkeypatch.
Blank or unparsable values fall back to the default.
"""

from __future__ import annotations

import os


def env_str(name: str, default: str = "") -> str:
    return os.environ.get(name, default).strip() or default


def env_int(name: str, default: int) -> int:
    raw = os.environ.get(name, "").strip()
    if not raw:
        return default
    try:
        return int(raw)
    except ValueError:
        return default


def env_float(name: str, default: float) -> float:
    raw = os.environ.get(name, "").strip()
    if not raw:
        return default
    try:
        return float(raw)
    except ValueError:
        return default


def env_bool(name: str, default: bool = False) -> bool:
    raw = os.environ.get(name, "").strip().lower()
    if not raw:
        return default
    return raw in {"1", "true", "yes", "on"}


def env_list(name: str) -> list[str]:
    raw = os.environ.get(name, "")
    return [item.strip() for item in raw.split(",") if item.strip()]


def site_url() -> str:
    return env_str("SITE_URL", "https://dubaiwealthhub.com").rstrip("/")


def allowed_origins() -> list[str]:
    return env_list("ALLOWED_ORIGINS") or [
        "http://localhost:5173",
        "http://127.0.0.1:5173",
    ]
