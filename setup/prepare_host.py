#!/usr/bin/env python3
"""
Prepare the host for Kubernetes: swap, kernel modules, sysctl, time sync and firewall.

Подготовка хоста к Kubernetes: swap, модули ядра, sysctl, синхронизация времени и firewall.

Usage / Использование
---------------------
python3 setup/prepare_host.py
"""

import os
import sys
import subprocess

sys.path.insert(0, os.path.abspath(os.path.join(os.path.dirname(__file__), "..")))
from utils.logger import log  # noqa: E402
from utils.config import load_settings  # noqa: E402
from utils.files import write_atomic  # noqa: E402
from utils.options import current_options, firewall_open_requested  # noqa: E402
from utils.shell import run, apt_update, apt_install, systemctl, command_exists  # noqa: E402

FSTAB = "/etc/fstab"
MODULES_CONF = "/etc/modules-load.d/k8s.conf"
SYSCTL_CONF = "/etc/sysctl.d/k8s.conf"


def comment_swap_entries(fstab_text: str) -> str:
    """
    Comment out every active fstab line that mounts swap.

    Комментирует все активные строки fstab, подключающие swap.
    Уже закомментированные строки не трогаем.
    """
    lines = []
    for line in fstab_text.splitlines(keepends=True):
        if " swap " in line and not line.lstrip().startswith("#"):
            line = "#" + line
        lines.append(line)
    return "".join(lines)


def disable_swap(fstab_path: str = FSTAB) -> None:
    log("Отключение swap...", "info")
    run(["swapoff", "-a"])
    with open(fstab_path, "r") as f:
        current = f.read()
    updated = comment_swap_entries(current)
    if updated != current:
        write_atomic(fstab_path, updated.encode("utf-8"))
        log(f"Записи swap закомментированы в {fstab_path}", "ok")


def render_sysctl(params: dict) -> str:
    width = max(len(key) for key in params)
    return "".join(f"{key.ljust(width)} = {value}\n" for key, value in params.items())


def configure_kernel(modules: list, sysctl_params: dict) -> None:
    """
    Persist and load kernel modules, then apply sysctl settings without reboot.
    Сохраняет и загружает модули ядра, затем применяет sysctl без перезагрузки.
    """
    log("Настройка модулей ядра для Kubernetes...", "info")
    write_atomic(MODULES_CONF, ("\n".join(modules) + "\n").encode("utf-8"))
    for module in modules:
        run(["modprobe", module])

    write_atomic(SYSCTL_CONF, render_sysctl(sysctl_params).encode("utf-8"))
    run(["sysctl", "--system"])
    log("Модули ядра и sysctl настроены", "ok")


def install_time_sync() -> None:
    log("Установка и настройка chrony для синхронизации времени...", "info")
    apt_update()
    apt_install(["chrony"])
    systemctl("enable", "--now", "chrony")
    systemctl("restart", "chrony")


def configure_firewall(open_ports: bool, ports: list) -> None:
    """
    Disable ufw, or keep it and open the cluster ports when requested (-F).
    Отключает ufw либо, при флаге -F, оставляет его и открывает порты кластера.
    """
    if not command_exists("ufw"):
        log("ufw не установлен, настройка firewall пропущена", "warn")
        return

    if not open_ports:
        log("Отключение firewall (ufw)...", "info")
        run(["ufw", "disable"], check=False)
        return

    log("Открытие портов кластера в ufw...", "info")
    for port in ports:
        run(["ufw", "allow", port], check=False)
    run(["ufw", "reload"], check=False)


def main():
    settings = load_settings()
    host = settings["host"]
    log("Подготовка хоста...", "start")
    try:
        disable_swap()
        configure_kernel(host["kernel_modules"], host["sysctl"])
        install_time_sync()
        configure_firewall(firewall_open_requested(current_options()), host["firewall_ports"])
    except (subprocess.CalledProcessError, OSError) as e:
        log(f"Ошибка подготовки хоста: {e}", "error")
        sys.exit(1)
    log("Хост подготовлен", "ok")


if __name__ == "__main__":
    main()
