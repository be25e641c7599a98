#!/usr/bin/env python3
"""
Install Docker client tools from the official Docker apt repository.
Устанавливает клиент Docker из официального apt-репозитория Docker.

containerd.io from the Docker repository replaces the distro containerd package,
so the containerd config is regenerated with the systemd cgroup driver afterwards.
Пакет containerd.io из репозитория Docker заменяет containerd дистрибутива,
поэтому конфиг containerd затем перегенерируется с cgroup-драйвером systemd.
"""

import os
import sys
import subprocess

sys.path.insert(0, os.path.abspath(os.path.join(os.path.dirname(__file__), "..")))

from utils.logger import log  # noqa: E402
from utils.config import load_settings  # noqa: E402
from utils.files import write_atomic  # noqa: E402
from utils.shell import run, capture, apt_update, apt_install, fetch_apt_key, systemctl  # noqa: E402
from setup.install_containerd import configure_containerd  # noqa: E402

KEYRING = "/etc/apt/keyrings/docker.gpg"
SOURCES_LIST = "/etc/apt/sources.list.d/docker.list"
PREREQUISITES = ["ca-certificates", "curl", "gnupg", "lsb-release"]
# Не спрашивать про изменённые конфиги при установке поверх containerd
DPKG_KEEP_CONFIG = [
    "-o", "Dpkg::Options::=--force-confdef",
    "-o", "Dpkg::Options::=--force-confold",
]


def docker_repo_line(repo_url: str, arch: str, codename: str) -> str:
    return f"deb [arch={arch} signed-by={KEYRING}] {repo_url} {codename} stable\n"


def target_user(environ=None) -> str:
    """
    The login user to add to the docker group (the sudo caller when available).
    Пользователь для группы docker (вызвавший sudo, если есть).
    """
    environ = os.environ if environ is None else environ
    return environ.get("SUDO_USER") or environ.get("USER") or "root"


def add_docker_repository(docker: dict) -> None:
    apt_update()
    apt_install(PREREQUISITES)
    fetch_apt_key(docker["apt_key_url"], KEYRING)
    os.chmod(KEYRING, 0o644)

    arch = capture(["dpkg", "--print-architecture"])
    codename = capture(["lsb_release", "-cs"])
    write_atomic(SOURCES_LIST, docker_repo_line(docker["apt_repo_url"], arch, codename).encode("utf-8"))
    apt_update()


def install_docker(settings: dict) -> None:
    add_docker_repository(settings["docker"])

    apt_install(["containerd.io"], extra_args=DPKG_KEEP_CONFIG, noninteractive=True)
    configure_containerd(settings["containerd"]["config_path"])

    apt_install(["docker-ce", "docker-ce-cli"], extra_args=DPKG_KEEP_CONFIG, noninteractive=True)
    systemctl("enable", "--now", "docker")

    user = target_user()
    run(["usermod", "-aG", "docker", user])
    log(f"Пользователь {user} добавлен в группу docker", "ok")


def main():
    log("Установка клиента Docker...", "start")
    try:
        install_docker(load_settings())
    except subprocess.CalledProcessError as e:
        log(f"Ошибка установки Docker: {e}", "error")
        sys.exit(1)
    log("Клиент Docker установлен", "ok")


if __name__ == "__main__":
    main()
