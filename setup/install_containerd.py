#!/usr/bin/env python3
# -*- coding: utf-8 -*-

"""
Idempotent installer/maintainer for containerd and its config.
- Installs the containerd package.
- Renders `containerd config default` with the systemd cgroup driver enabled.
- If `/etc/containerd/config.toml` differs, creates a timestamped backup and atomically replaces it.
- Restarts and enables the service.

Идемпотентный установщик containerd и его конфига.
- Ставит пакет containerd.
- Генерирует `containerd config default` с включённым cgroup-драйвером systemd.
- При различиях с `/etc/containerd/config.toml` делает бэкап с меткой времени и атомарно обновляет файл.
- Перезапускает и включает сервис.
"""

import os
import sys
import subprocess

# Добавляем путь до корня проекта, чтобы работал import из utils
sys.path.insert(0, os.path.abspath(os.path.join(os.path.dirname(__file__), "..")))

from utils.logger import log  # noqa
from utils.config import load_settings  # noqa
from utils.files import backup_file, content_differs, file_sha256, write_atomic  # noqa
from utils.shell import apt_install, apt_update, systemctl  # noqa


def enable_systemd_cgroup(config_text: str) -> str:
    """
    Switch the runc cgroup driver to systemd, which is what kubelet uses.

    Переключает cgroup-драйвер runc на systemd (его использует kubelet).
    """
    return config_text.replace("SystemdCgroup = false", "SystemdCgroup = true")


def render_default_config() -> str:
    """
    Produce `containerd config default` output with SystemdCgroup enabled.

    Возвращает вывод `containerd config default` с включённым SystemdCgroup.
    """
    log("Генерация config.toml через `containerd config default`…", "info")
    result = subprocess.run(
        ["containerd", "config", "default"],
        check=True,
        capture_output=True,
        text=True,
    )
    return enable_systemd_cgroup(result.stdout)


def apply_config(config_path: str, rendered: str) -> bool:
    """
    Write the rendered config when it differs; return True if the file changed.

    Записывает конфиг, если он отличается; возвращает True, если файл изменён.
    """
    data = rendered.encode("utf-8")
    if not content_differs(config_path, data):
        log("Конфиг актуален, изменений не требуется.", "ok")
        return False

    if os.path.isfile(config_path):
        old_hash = file_sha256(config_path)
        bak_path = backup_file(config_path)
        log("Найдены различия в конфиге containerd.", "warn")
        log(f"Текущий: {config_path} sha256={old_hash}", "info")
        log(f"Бэкап сохранён: {bak_path}", "ok")
    else:
        log(f"Файл не найден: {config_path}. Создаём.", "warn")

    write_atomic(config_path, data)
    log(f"Конфиг записан: {config_path}", "ok")
    return True


def configure_containerd(config_path: str) -> None:
    """
    Regenerate the containerd config and restart the service.
    Перегенерирует конфиг containerd и перезапускает сервис.
    """
    apply_config(config_path, render_default_config())
    systemctl("restart", "containerd")
    systemctl("enable", "containerd")


def main() -> None:
    settings = load_settings()
    config_path = settings["containerd"]["config_path"]

    log("Установка containerd…", "start")
    try:
        apt_update()
        apt_install(["containerd"])
        configure_containerd(config_path)
    except subprocess.CalledProcessError as e:
        log(f"Ошибка установки containerd: {e}", "error")
        raise SystemExit(1)
    log("containerd установлен и настроен", "ok")


if __name__ == "__main__":
    main()
