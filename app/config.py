from __future__ import annotations

import os
from dataclasses import dataclass, field


def _env_str(name: str, default: str = "") -> str:
    return str(os.getenv(name, default) or default).strip()


def _env_int(name: str, default: int) -> int:
    try:
        return int(os.getenv(name, str(default)))
    except Exception:
        return default


def _env_list(name: str, default: list[str] | None = None) -> list[str]:
    """Parse comma-separated list from env."""
    raw = str(os.getenv(name, "") or "").strip()
    if not raw:
        return default or []
    return [x.strip() for x in raw.split(",") if x.strip()]


def _env_int_list(name: str, default: list[int]) -> list[int]:
    out: list[int] = []
    for item in _env_list(name):
        try:
            n = int(item)
        except ValueError:
            continue
        if n > 0 and n not in out:
            out.append(n)
    return out or list(default)


@dataclass
class Config:
    REPORT_API_URL: str = "http://localhost:8080/api"
    REQUEST_TIMEOUT_SECONDS: int = 30
    LOG_LEVEL: str = "INFO"
    DOWNLOAD_DIR: str = "./downloads"
    PAGE_SIZE: int = 30
    PAGE_SIZE_OPTIONS: list[int] = field(default_factory=lambda: [30, 50, 100])
    CERT_CACHE_TTL_SECONDS: int = 60
    CERT_CACHE_MAX_ITEMS: int = 1000
    DEFAULT_REPORT_TYPE: str = "CERTIFICATION"
    APP_VERSION: str = "0.1.0"


def get_config() -> Config:
    page_size_options = _env_int_list("PAGE_SIZE_OPTIONS", [30, 50, 100])
    page_size = _env_int("PAGE_SIZE", page_size_options[0])
    if page_size not in page_size_options:
        page_size = page_size_options[0]

    return Config(
        REPORT_API_URL=_env_str("REPORT_API_URL", "http://localhost:8080/api").rstrip("/"),
        REQUEST_TIMEOUT_SECONDS=max(1, _env_int("REQUEST_TIMEOUT_SECONDS", 30)),
        LOG_LEVEL=_env_str("LOG_LEVEL", "INFO").upper(),
        DOWNLOAD_DIR=_env_str("DOWNLOAD_DIR", "./downloads"),
        PAGE_SIZE=page_size,
        PAGE_SIZE_OPTIONS=page_size_options,
        # Clamp cache settings to sane bounds.
        CERT_CACHE_TTL_SECONDS=max(1, min(3600, _env_int("CERT_CACHE_TTL_SECONDS", 60))),
        CERT_CACHE_MAX_ITEMS=max(10, min(100_000, _env_int("CERT_CACHE_MAX_ITEMS", 1000))),
        DEFAULT_REPORT_TYPE=_env_str("DEFAULT_REPORT_TYPE", "CERTIFICATION"),
        APP_VERSION=_env_str("APP_VERSION", "0.1.0"),
    )
