#!/usr/bin/env python3
"""
Install Helm package manager for Kubernetes.
Устанавливает Helm, менеджер пакетов для Kubernetes.

Two methods are supported (helm.method in cluster.yaml):
- script:  the official get-helm-3 installer script;
- tarball: a pinned release archive from get.helm.sh.
Downloads are retried with a doubling wait between attempts.

Поддерживаются два способа (helm.method в cluster.yaml):
- script:  официальный скрипт get-helm-3;
- tarball: архив конкретного релиза с get.helm.sh.
Загрузка повторяется с удваивающейся паузой между попытками.
"""

import io
import os
import sys
import time
import shutil
import tarfile
import platform
import subprocess
import tempfile

import requests

CURRENT_DIR = os.path.dirname(os.path.abspath(__file__))
PROJECT_ROOT = os.path.abspath(os.path.join(CURRENT_DIR, ".."))
sys.path.append(PROJECT_ROOT)

from utils.logger import log  # noqa: E402
from utils.config import load_settings  # noqa: E402
from utils.files import write_atomic  # noqa: E402

ARCH_ALIASES = {
    "x86_64": "amd64",
    "amd64": "amd64",
    "aarch64": "arm64",
    "arm64": "arm64",
}


class HelmInstallError(Exception):
    """Helm could not be downloaded or installed."""


def helm_arch(machine: str | None = None) -> str:
    machine = (machine or platform.machine()).lower()
    return ARCH_ALIASES.get(machine, machine)


def download_with_backoff(url: str, attempts: int = 3, initial_wait: float = 2,
                          get=requests.get, sleep=time.sleep) -> bytes:
    """
    Download `url`, retrying with a doubling wait between attempts.

    Скачивает `url`, повторяя попытки с удваивающейся паузой.

    :param url: Адрес загрузки
    :param attempts: Максимальное число попыток
    :param initial_wait: Пауза перед второй попыткой (секунды), далее удваивается
    :return: Содержимое ответа
    :raises HelmInstallError: если все попытки неудачны
    """
    wait = initial_wait
    for attempt in range(1, attempts + 1):
        try:
            resp = get(url, timeout=60)
            resp.raise_for_status()
            return resp.content
        except requests.exceptions.RequestException as e:
            log(f"Попытка загрузки {attempt}/{attempts} не удалась для {url}: {e}", "warn")
        if attempt < attempts:
            log(f"Повтор через {wait:g} с...", "info")
            sleep(wait)
            wait *= 2
    raise HelmInstallError(f"Не удалось загрузить {url} за {attempts} попыток")


def extract_helm_binary(archive: bytes) -> bytes:
    """
    Return the `helm` executable from a release tarball.
    Достаёт исполняемый файл `helm` из архива релиза.
    """
    with tarfile.open(fileobj=io.BytesIO(archive), mode="r:gz") as tar:
        for member in tar.getmembers():
            if member.isfile() and os.path.basename(member.name) == "helm":
                fobj = tar.extractfile(member)
                if fobj is not None:
                    return fobj.read()
    raise HelmInstallError("Бинарник helm не найден в архиве")


def install_from_tarball(helm: dict) -> None:
    url = helm["tarball_url"].format(version=helm["version"], arch=helm_arch())
    log(f"Загрузка Helm {helm['version']} с {url}", "info")
    archive = download_with_backoff(url, helm["download_attempts"], helm["initial_backoff_seconds"])
    target = os.path.join(helm["install_dir"], "helm")
    write_atomic(target, extract_helm_binary(archive), mode=0o755)
    log(f"Helm установлен в {target}", "ok")


def install_from_script(helm: dict) -> None:
    log("Загрузка официального скрипта установки Helm...", "info")
    script = download_with_backoff(helm["script_url"], helm["download_attempts"], helm["initial_backoff_seconds"])
    with tempfile.TemporaryDirectory() as tmp_dir:
        path = os.path.join(tmp_dir, "get_helm.sh")
        with open(path, "wb") as f:
            f.write(script)
        os.chmod(path, 0o700)
        try:
            subprocess.run([path], check=True)
        except subprocess.CalledProcessError as e:
            raise HelmInstallError(f"Скрипт установки Helm завершился с ошибкой: {e}") from e


def install_helm(helm: dict) -> None:
    """
    Install Helm if not already installed.
    Устанавливает Helm, если он ещё не установлен.
    """
    if shutil.which("helm"):
        log("Helm уже установлен. Пропускаем.", "ok")
        return

    method = helm.get("method", "script")
    if method == "tarball":
        install_from_tarball(helm)
    elif method == "script":
        install_from_script(helm)
    else:
        raise HelmInstallError(f"Неизвестный способ установки Helm: {method}")

    if not shutil.which("helm"):
        raise HelmInstallError("Helm не найден в PATH после установки")
    log("Helm успешно установлен.", "ok")


if __name__ == "__main__":
    """
    Entrypoint: install Helm if missing.
    Точка входа: установить Helm при отсутствии.
    """
    log("Установка Helm...", "start")
    try:
        install_helm(load_settings()["helm"])
    except HelmInstallError as e:
        log(str(e), "error")
        sys.exit(1)
