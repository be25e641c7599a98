#!/usr/bin/env python3
# -*- coding: utf-8 -*-

"""
Verify that every tool listed in required_binaries is available before kubeadm init.
Проверка, что все утилиты из required_binaries доступны до kubeadm init.
"""

import sys
import os
import shutil
from pathlib import Path

# === Project paths bootstrap ===
sys.path.insert(0, os.path.abspath(os.path.join(os.path.dirname(__file__), "..")))

from utils.logger import log  # noqa: E402
from utils.config import load_settings  # noqa: E402

# Helm из архива ставится сюда, даже если каталога нет в PATH у sudo
FALLBACK_DIR = Path("/usr/local/bin")


def is_installed(name: str) -> bool:
    return shutil.which(name) is not None or (FALLBACK_DIR / name).is_file()


def check_all_binaries(required: list) -> list:
    """
    Log each tool's presence and return the names that were not found.
    Логирует наличие каждой утилиты и возвращает имена отсутствующих.
    """
    missing = [name for name in required if not is_installed(name)]
    for name in required:
        log(f"{name}: {'отсутствует' if name in missing else 'найден'}", "warn" if name in missing else "ok")
    return missing


if __name__ == "__main__":
    missing = check_all_binaries(load_settings().get("required_binaries", []))
    if missing:
        log(f"Отсутствуют бинарники: {', '.join(missing)}", "error")
        sys.exit(1)
    log("Все необходимые бинарники на месте", "ok")
