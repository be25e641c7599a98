"""
Thin wrappers around subprocess shared by all steps.
Обёртки над subprocess, общие для всех шагов установки.
"""

import os
import shutil
import subprocess

from utils.logger import log


def run(cmd: list, check: bool = True, env: dict | None = None, **kwargs) -> subprocess.CompletedProcess:
    """
    Run a command with logging.

    Выполняет команду с логированием.

    Args:
        cmd: Команда в виде списка аргументов.
        check: Если True, возбуждать исключение при ненулевом коде возврата.
        env: Дополнительные переменные окружения поверх текущих.

    Raises:
        subprocess.CalledProcessError: если check=True и команда завершилась с ошибкой.
    """
    log(f"Выполняется: {' '.join(str(c) for c in cmd)}", "info")
    if env:
        env = {**os.environ, **env}
    return subprocess.run(cmd, check=check, env=env, **kwargs)


def run_ok(cmd: list, **kwargs) -> bool:
    """
    Run a command and return success status instead of raising.
    Выполняет команду и возвращает статус успешности вместо исключения.
    """
    return run(cmd, check=False, **kwargs).returncode == 0


def capture(cmd: list, check: bool = True) -> str:
    """
    Run a command quietly and return its stripped stdout.
    Выполняет команду без вывода и возвращает её stdout.
    """
    result = subprocess.run(cmd, check=check, capture_output=True, text=True)
    return result.stdout.strip()


def command_exists(name: str) -> bool:
    return shutil.which(name) is not None


def apt_install(packages: list, extra_args: list | None = None, noninteractive: bool = False) -> None:
    cmd = ["apt-get", "install", "-y", *packages, *(extra_args or [])]
    env = {"DEBIAN_FRONTEND": "noninteractive"} if noninteractive else None
    run(cmd, env=env)


def apt_update() -> None:
    run(["apt-get", "update"])


def systemctl(*args: str, check: bool = True) -> bool:
    return run(["systemctl", *args], check=check).returncode == 0


def unit_is_active(unit: str) -> bool:
    """
    Return True if a systemd unit is currently active.
    Возвращает True, если systemd-юнит сейчас активен.
    """
    result = subprocess.run(
        ["systemctl", "is-active", "--quiet", unit],
        stdout=subprocess.DEVNULL,
        stderr=subprocess.DEVNULL,
    )
    return result.returncode == 0


def fetch_apt_key(url: str, keyring: str) -> None:
    """
    Download an armored signing key and store it dearmored in a keyring file.
    Скачивает ключ подписи репозитория и сохраняет его в keyring (gpg --dearmor).
    """
    os.makedirs(os.path.dirname(keyring), mode=0o755, exist_ok=True)
    key = subprocess.run(["curl", "-fsSL", url], check=True, capture_output=True).stdout
    subprocess.run(["gpg", "--dearmor", "--yes", "-o", keyring], input=key, check=True)
    log(f"Ключ подписи сохранён: {keyring}", "ok")
