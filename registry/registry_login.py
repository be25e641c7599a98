#!/usr/bin/env python3
"""
Log the docker client in to Docker Hub and, when tokens are given, to GHCR and Quay.
Авторизация клиента docker в Docker Hub и, при наличии токенов, в GHCR и Quay.

Docker Hub login failure is fatal; GHCR/Quay failures are only warnings.
Ошибка входа в Docker Hub фатальна; ошибки GHCR/Quay только предупреждения.
"""

import os
import sys
import shutil
import subprocess

sys.path.insert(0, os.path.abspath(os.path.join(os.path.dirname(__file__), "..")))

from utils.logger import log  # noqa: E402
from utils.options import current_options, require_docker_credentials  # noqa: E402

OPTIONAL_REGISTRIES = [
    ("GHCR", "ghcr.io", "ghcr_user", "ghcr_token"),
    ("Quay", "quay.io", "quay_user", "quay_token"),
]


def docker_login(user: str, token: str, registry: str | None = None) -> bool:
    """
    docker login with the token on stdin; returns success status.
    docker login с токеном через stdin; возвращает статус успешности.
    """
    cmd = ["docker", "login"]
    if registry:
        cmd.append(registry)
    cmd += ["--username", user, "--password-stdin"]
    result = subprocess.run(cmd, input=token, text=True, capture_output=True)
    return result.returncode == 0


def login_all(options: dict) -> None:
    log(f"Вход в Docker Hub как {options['docker_user']}...", "info")
    if not docker_login(options["docker_user"], options["docker_token"]):
        log("Не удалось войти в Docker Hub. Проверьте DOCKER_USER/DOCKER_TOKEN и повторите.", "error")
        log("Экспортируйте DOCKER_USER и DOCKER_TOKEN или передайте флаги -U и -T.", "error")
        sys.exit(1)
    log("Вход в Docker Hub выполнен.", "ok")

    for title, registry, user_key, token_key in OPTIONAL_REGISTRIES:
        user, token = options.get(user_key), options.get(token_key)
        if not (user and token):
            continue
        log(f"Вход в {title} как {user}...", "info")
        if docker_login(user, token, registry):
            log(f"Вход в {title} выполнен.", "ok")
        else:
            log(f"Не удалось войти в {title}. Загрузка образов с {registry} может не пройти.", "warn")


def main():
    if shutil.which("docker") is None:
        log("docker CLI не найден, вход в реестры пропущен", "warn")
        return
    options = current_options()
    require_docker_credentials(options)
    login_all(options)


if __name__ == "__main__":
    main()
