from __future__ import annotations

from pathlib import Path

import pytest

from feedo.config import get_settings


@pytest.fixture
def isolated_env(monkeypatch: pytest.MonkeyPatch, tmp_path: Path):
    monkeypatch.setenv("FEEDO_CONFIG_DIR", str(tmp_path / "config"))
    monkeypatch.setenv("FEEDO_DATA_DIR", str(tmp_path / "data"))
    monkeypatch.setenv("FEEDO_ENV_FILE", str(tmp_path / ".env"))
    for name in (
        "SYNC_SERVER",
        "SYNC_USERNAME",
        "SYNC_PASSWORD",
        "SYNC_PROVIDER",
        "HTTP_TIMEOUT_SECONDS",
        "CACHE_MAX_ITEMS_PER_FEED",
        "SYNC_READ_IDS_PAGE_SIZE",
        "SYNC_STREAM_PAGE_SIZE",
        "LOG_LEVEL",
        "USER_AGENT",
    ):
        monkeypatch.delenv(name, raising=False)
    get_settings.cache_clear()
    yield tmp_path
    get_settings.cache_clear()
