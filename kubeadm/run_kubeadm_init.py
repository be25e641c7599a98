#!/usr/bin/env python3
"""
Initialize the control plane with kubeadm init.
Инициализирует control-plane через kubeadm init.

Re-running on an already initialized host fails: kubeadm init is not idempotent.
Повторный запуск на уже инициализированном хосте завершится ошибкой.
"""

import os
import subprocess
import sys

# Добавление корня проекта в sys.path
sys.path.insert(0, os.path.abspath(os.path.join(os.path.dirname(__file__), "..")))

from utils.logger import log  # noqa: E402
from utils.config import load_settings  # noqa: E402
from kubeadm.generate_kubeadm_config import OUTPUT_PATH  # noqa: E402


def already_initialized(admin_conf: str) -> bool:
    return os.path.exists(admin_conf)


def kubeadm_init(config_path) -> bool:
    """
    Run kubeadm init with the generated config.
    Запускает kubeadm init со сгенерированным конфигом.
    """
    try:
        subprocess.run(["kubeadm", "init", "--upload-certs", f"--config={config_path}"], check=True)
        return True
    except subprocess.CalledProcessError as e:
        log(f"kubeadm init завершился с ошибкой: {e}", "error")
        return False


def main():
    settings = load_settings()
    admin_conf = settings["kubernetes"]["admin_conf"]

    if not OUTPUT_PATH.exists():
        log(f"Конфиг kubeadm не найден: {OUTPUT_PATH}", "error")
        sys.exit(1)

    if already_initialized(admin_conf):
        log(f"{admin_conf} уже существует; на инициализированном хосте kubeadm init, скорее всего, завершится ошибкой", "warn")

    log("Инициализация control-plane Kubernetes...", "start")
    if not kubeadm_init(OUTPUT_PATH):
        sys.exit(1)
    log("Control-plane инициализирован", "ok")


if __name__ == "__main__":
    main()
