# WatchBridge test scripts
from __future__ import annotations

import os
import sys
from pathlib import Path

import pytest

REPO_ROOT = Path(__file__).resolve().parents[1]
if str(REPO_ROOT) not in sys.path:
    sys.path.insert(0, str(REPO_ROOT))


@pytest.fixture()
def config_base(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> Path:
    monkeypatch.setenv("CONFIG_BASE", str(tmp_path))
    return tmp_path


@pytest.fixture(autouse=True)
def _clean_wb_env(monkeypatch: pytest.MonkeyPatch) -> None:
    # config loading only sees the WB_* variables a test sets itself
    for name in list(os.environ):
        if name.startswith("WB_"):
            monkeypatch.delenv(name, raising=False)
