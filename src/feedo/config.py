from __future__ import annotations

import logging
import os
from dataclasses import dataclass
from enum import Enum
from functools import lru_cache
from pathlib import Path

from dotenv import load_dotenv


DEFAULT_USER_AGENT = "feedo/0.3.0"
DEFAULT_LOG_FORMAT = "%(asctime)s [%(name)s] %(message)s"


class SyncProvider(str, Enum):
    freshrss = "freshrss"
    miniflux = "miniflux"
    greader = "greader"


@dataclass(frozen=True)
class Settings:
    config_dir: Path
    data_dir: Path
    http_timeout_seconds: int
    cache_max_items_per_feed: int
    sync_provider: SyncProvider
    sync_server: str | None
    sync_username: str | None
    sync_password: str | None
    sync_read_ids_page_size: int
    sync_stream_page_size: int
    log_level: str
    user_agent: str

    @property
    def cache_path(self) -> Path:
        return self.data_dir / "cache.json"

    @property
    def feed_list_path(self) -> Path:
        return self.config_dir / "feeds.json"

    def sync_configured(self) -> bool:
        return bool(self.sync_server and self.sync_username)


def _to_int(raw: str | None, default: int) -> int:
    if raw is None:
        return default
    try:
        value = int(raw)
    except ValueError:
        return default
    if value <= 0:
        return default
    return value


def _to_provider(raw: str | None) -> SyncProvider:
    normalized = (raw or "").strip().lower()
    try:
        return SyncProvider(normalized)
    except ValueError:
        return SyncProvider.greader


def _to_log_level(raw: str | None) -> str:
    normalized = (raw or "").strip().upper()
    if normalized in {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}:
        return normalized
    return "WARNING"


def get_config_dir() -> Path:
    custom_dir = os.getenv("FEEDO_CONFIG_DIR", "").strip()
    if custom_dir:
        return Path(custom_dir).expanduser()

    xdg_root = os.getenv("XDG_CONFIG_HOME", "").strip()
    if xdg_root:
        return Path(xdg_root).expanduser() / "feedo"
    return Path.home() / ".config" / "feedo"


def get_default_env_file() -> Path:
    custom_path = os.getenv("FEEDO_ENV_FILE", "").strip()
    if custom_path:
        return Path(custom_path).expanduser()
    return get_config_dir() / ".env"


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    # Prefer a local .env for development; fill missing values from global config.
    load_dotenv(override=False)
    load_dotenv(dotenv_path=get_default_env_file(), override=False)

    config_dir = get_config_dir()
    data_dir_raw = os.getenv("FEEDO_DATA_DIR", "").strip()
    data_dir = Path(data_dir_raw).expanduser() if data_dir_raw else config_dir / "data"

    return Settings(
        config_dir=config_dir,
        data_dir=data_dir,
        http_timeout_seconds=_to_int(os.getenv("HTTP_TIMEOUT_SECONDS"), 30),
        cache_max_items_per_feed=_to_int(os.getenv("CACHE_MAX_ITEMS_PER_FEED"), 500),
        sync_provider=_to_provider(os.getenv("SYNC_PROVIDER")),
        sync_server=os.getenv("SYNC_SERVER") or None,
        sync_username=os.getenv("SYNC_USERNAME") or None,
        sync_password=os.getenv("SYNC_PASSWORD") or None,
        sync_read_ids_page_size=_to_int(os.getenv("SYNC_READ_IDS_PAGE_SIZE"), 10000),
        sync_stream_page_size=_to_int(os.getenv("SYNC_STREAM_PAGE_SIZE"), 100),
        log_level=_to_log_level(os.getenv("LOG_LEVEL")),
        user_agent=os.getenv("USER_AGENT", DEFAULT_USER_AGENT).strip() or DEFAULT_USER_AGENT,
    )


def configure_logging(level: str = "WARNING") -> None:
    logging.basicConfig(
        level=getattr(logging, level, logging.WARNING),
        format=DEFAULT_LOG_FORMAT,
        datefmt="%H:%M:%S",
    )
    # Quiet noisy loggers
    logging.getLogger("httpx").setLevel(logging.WARNING)
    logging.getLogger("httpcore").setLevel(logging.WARNING)
