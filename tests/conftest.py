import os
import sys

import pytest

sys.path.insert(0, os.path.abspath(os.path.join(os.path.dirname(__file__), "..")))

from utils.config import CONFIG_ENV, load_settings  # noqa: E402
from utils.options import OPTION_ENV  # noqa: E402


@pytest.fixture(autouse=True)
def clean_env(monkeypatch):
    for env_name in OPTION_ENV.values():
        monkeypatch.delenv(env_name, raising=False)
    monkeypatch.delenv(CONFIG_ENV, raising=False)


@pytest.fixture
def settings():
    return load_settings()
