#!/usr/bin/env python3
"""
Write root's Docker config.json with Docker Hub auth so containerd and docker pull authenticated.
Записывает /root/.docker/config.json с авторизацией Docker Hub для аутентифицированных pull.
"""

import os
import sys
import json
import base64

sys.path.insert(0, os.path.abspath(os.path.join(os.path.dirname(__file__), "..")))

from utils.logger import log  # noqa: E402
from utils.files import write_atomic  # noqa: E402
from utils.config import load_settings  # noqa: E402
from utils.options import current_options, require_docker_credentials  # noqa: E402
from utils.shell import run, unit_is_active  # noqa: E402

DOCKER_HUB_ENDPOINTS = [
    "https://index.docker.io/v1/",
    "https://registry-1.docker.io/",
]


def encode_auth(user: str, token: str) -> str:
    """
    Encode credentials the way docker stores them: base64("user:token").
    Кодирует учётные данные так же, как docker: base64("user:token").
    """
    return base64.b64encode(f"{user}:{token}".encode("utf-8")).decode("ascii")


def decode_auth(auth: str) -> tuple:
    user, _, token = base64.b64decode(auth).decode("utf-8").partition(":")
    return user, token


def build_docker_config(user: str, token: str) -> dict:
    auth = encode_auth(user, token)
    return {"auths": {endpoint: {"auth": auth} for endpoint in DOCKER_HUB_ENDPOINTS}}


def write_docker_config(config_dir: str, user: str, token: str) -> str:
    """
    Write config.json with mode 600 and return its path.
    Записывает config.json с правами 600 и возвращает путь к нему.
    """
    os.makedirs(config_dir, exist_ok=True)
    path = os.path.join(config_dir, "config.json")
    data = json.dumps(build_docker_config(user, token), indent=2) + "\n"
    write_atomic(path, data.encode("utf-8"), mode=0o600)
    if os.geteuid() == 0:
        os.chown(path, 0, 0)
    log(f"Docker auth записан: {path}", "ok")
    return path


def restart_containerd_if_active() -> None:
    """
    Restart containerd so it picks up the auth config; no-op when it is not running yet.
    Перезапускает containerd, чтобы подхватить auth; ничего не делает, если он ещё не запущен.
    """
    if unit_is_active("containerd"):
        if run(["systemctl", "restart", "containerd"], check=False).returncode != 0:
            log("Не удалось перезапустить containerd, продолжаем", "warn")


def main():
    options = current_options()
    require_docker_credentials(options)
    settings = load_settings()

    write_docker_config(settings["docker"]["config_dir"], options["docker_user"], options["docker_token"])
    restart_containerd_if_active()


if __name__ == "__main__":
    main()
