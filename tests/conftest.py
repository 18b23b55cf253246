from __future__ import annotations

import logging
from pathlib import Path

import pytest

from hydrafix.core.runtime_config import set_config_path


@pytest.fixture(autouse=True)
def _isolated_runtime_config(tmp_path: Path, monkeypatch: pytest.MonkeyPatch):
    # 利用者の ./.hydrafix や ~/.config/hydrafix を読まないようにする。
    monkeypatch.chdir(tmp_path)
    monkeypatch.setenv("HOME", str(tmp_path))
    set_config_path(None)
    yield
    set_config_path(None)


@pytest.fixture
def caplog_warnings(caplog: pytest.LogCaptureFixture) -> pytest.LogCaptureFixture:
    caplog.set_level(logging.WARNING, logger="hydrafix")
    return caplog
