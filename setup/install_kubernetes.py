#!/usr/bin/env python3
"""
Install kubeadm, kubelet and kubectl pinned to an exact package version.
Устанавливает kubeadm, kubelet и kubectl строго заданной версии пакета.
"""

import os
import re
import sys
import subprocess

sys.path.insert(0, os.path.abspath(os.path.join(os.path.dirname(__file__), "..")))

from utils.logger import log  # noqa: E402
from utils.config import load_settings  # noqa: E402
from utils.files import write_atomic  # noqa: E402
from utils.shell import run, apt_update, apt_install, fetch_apt_key, systemctl  # noqa: E402

KEYRING = "/etc/apt/keyrings/kubernetes-apt-keyring.gpg"
SOURCES_LIST = "/etc/apt/sources.list.d/kubernetes.list"
PACKAGES = ["kubelet", "kubeadm", "kubectl"]


def release_channel(package_version: str) -> str:
    """
    Derive the pkgs.k8s.io channel from a package version: 1.30.14-1.1 -> v1.30.
    Определяет канал репозитория pkgs.k8s.io по версии пакета: 1.30.14-1.1 -> v1.30.
    """
    match = re.match(r"^v?(\d+)\.(\d+)\.", package_version)
    if not match:
        raise ValueError(f"Неожиданная версия пакета Kubernetes: {package_version}")
    return f"v{match.group(1)}.{match.group(2)}"


def repo_line(repo_url: str) -> str:
    return f"deb [signed-by={KEYRING}] {repo_url} /\n"


def pinned_packages(package_version: str) -> list:
    return [f"{name}={package_version}" for name in PACKAGES]


def install_kubernetes_tools(k8s: dict) -> None:
    version = k8s["package_version"]
    channel = release_channel(version)
    log(f"Добавление apt-репозитория Kubernetes ({channel})...", "info")

    fetch_apt_key(k8s["apt_key_url"].format(channel=channel), KEYRING)
    write_atomic(SOURCES_LIST, repo_line(k8s["apt_repo_url"].format(channel=channel)).encode("utf-8"))
    apt_update()

    log(f"Установка {', '.join(PACKAGES)} {version}...", "info")
    apt_install(pinned_packages(version))
    run(["apt-mark", "hold", *PACKAGES])
    systemctl("enable", "--now", "kubelet")


def main():
    settings = load_settings()
    log("Установка инструментов Kubernetes (kubeadm, kubelet, kubectl)...", "start")
    try:
        install_kubernetes_tools(settings["kubernetes"])
    except (subprocess.CalledProcessError, ValueError) as e:
        log(f"Ошибка установки инструментов Kubernetes: {e}", "error")
        sys.exit(1)
    log("Инструменты Kubernetes установлены и зафиксированы (hold)", "ok")


if __name__ == "__main__":
    main()
