#!/usr/bin/env python3
"""
Pre-pull the CNI / load-balancer images into containerd, falling back across mirror registries.

For each image the source registry is stripped and the pull is retried against
every candidate registry in order. docker.io candidates are pulled with the
Docker Hub credentials, the others anonymously. When ctr fails, the image is
pulled with docker and imported into containerd. The outcome is informational:
the runtime pulls on demand anyway, so this step never fails the installation.

Предзагрузка образов CNI / балансировщика в containerd с перебором зеркал.
Результат информационный: шаг никогда не прерывает установку.
"""

import os
import sys
import time
import shutil
import subprocess

sys.path.insert(0, os.path.abspath(os.path.join(os.path.dirname(__file__), "..")))

from utils.logger import log  # noqa: E402
from utils.config import load_settings  # noqa: E402
from utils.options import current_options  # noqa: E402

AUTHENTICATED_REGISTRY = "docker.io"


def strip_registry(ref: str) -> str:
    """
    Drop the registry host from an image reference.

    Убирает адрес реестра из ссылки на образ.
    Первый компонент считается реестром, если содержит '.' или ':' или равен 'localhost'.
    """
    first, sep, rest = ref.partition("/")
    if sep and ("." in first or ":" in first or first == "localhost"):
        return rest
    return ref


def candidate_refs(ref: str, registries: list) -> list:
    path = strip_registry(ref)
    return [(registry, f"{registry}/{path}") for registry in registries]


def ctr_pull(candidate: str, namespace: str, user: str | None = None, token: str | None = None) -> bool:
    cmd = ["ctr", "-n", namespace, "images", "pull"]
    if user and token:
        cmd += ["--user", f"{user}:{token}"]
    cmd.append(candidate)
    return subprocess.run(cmd).returncode == 0


def docker_pull_and_import(candidate: str, namespace: str) -> bool:
    """
    docker pull, then `docker save | ctr images import -`.
    docker pull, затем `docker save | ctr images import -`.
    """
    log(f"Пробуем docker pull для {candidate}", "info")
    if subprocess.run(["docker", "pull", candidate]).returncode != 0:
        log(f"docker pull не удался для {candidate}", "warn")
        return False

    log(f"docker pull успешен для {candidate}; импорт в containerd...", "info")
    save_proc = subprocess.Popen(["docker", "save", candidate], stdout=subprocess.PIPE)
    import_proc = subprocess.Popen(["ctr", "-n", namespace, "images", "import", "-"], stdin=save_proc.stdout)
    save_proc.stdout.close()
    import_proc.communicate()
    save_proc.wait()

    if save_proc.returncode == 0 and import_proc.returncode == 0:
        log(f"{candidate} импортирован в containerd", "ok")
        return True
    log(f"Импорт не удался для {candidate}", "warn")
    return False


def prepull_image(ref: str, registries: list, namespace: str, credentials: tuple,
                  docker_available: bool, pause: float = 1,
                  pull=ctr_pull, fallback=docker_pull_and_import, sleep=time.sleep) -> str | None:
    """
    Try every candidate registry for one image; return the candidate that worked or None.

    Перебирает реестры-кандидаты для одного образа; возвращает удачного кандидата или None.
    """
    candidates = candidate_refs(ref, registries)
    for index, (registry, candidate) in enumerate(candidates):
        log(f"Пробуем кандидата: {candidate}", "info")
        user, token = credentials if registry == AUTHENTICATED_REGISTRY else (None, None)
        if pull(candidate, namespace, user, token):
            log(f"ctr pull успешен для {candidate}", "ok")
            return candidate
        log(f"ctr pull не удался для {candidate}", "warn")

        if docker_available:
            if fallback(candidate, namespace):
                return candidate
        else:
            log("docker CLI недоступен для запасной загрузки", "warn")

        if index < len(candidates) - 1:
            sleep(pause)
    return None


def prepull_images(images: list, registries: list, namespace: str, credentials: tuple,
                   docker_available: bool, pause: float = 1, **kwargs) -> dict:
    results = {}
    for ref in images:
        log(f"Предзагрузка {ref} с учётными данными и зеркалами...", "info")
        results[ref] = prepull_image(ref, registries, namespace, credentials, docker_available, pause, **kwargs)
        if results[ref] is None:
            log(f"Ни один кандидат не загрузился для {ref}", "warn")
    return results


def split_tag(ref: str) -> tuple:
    """
    Split `repo:tag` without confusing a registry port for a tag.
    Делит `repo:tag`, не путая порт реестра с тегом.
    """
    slash = ref.rfind("/")
    colon = ref.rfind(":")
    if colon > slash:
        return ref[:colon], ref[colon + 1:]
    return ref, "latest"


def listed_images(namespace: str) -> tuple:
    """
    Return (tool, image names) from ctr, else crictl, else (None, []).
    Возвращает (утилита, имена образов) из ctr, иначе crictl, иначе (None, []).
    """
    if shutil.which("ctr"):
        out = subprocess.run(["ctr", "-n", namespace, "images", "ls", "-q"],
                             capture_output=True, text=True).stdout
        return "ctr", out.split()
    if shutil.which("crictl"):
        out = subprocess.run(["crictl", "images"], capture_output=True, text=True).stdout
        names = []
        for line in out.splitlines()[1:]:
            columns = line.split()
            if len(columns) >= 2:
                names.append(f"{columns[0]}:{columns[1]}")
        return "crictl", names
    return None, []


def image_present(ref: str, names: list) -> bool:
    repo, _ = split_tag(ref)
    return any(name.startswith(repo) for name in names)


def validate_pulled_images(images: list, namespace: str) -> dict:
    log("== Проверка загруженных образов ==", "info")
    tool, names = listed_images(namespace)
    if tool is None:
        log("Нет ни ctr, ни crictl для проверки образов. Проверка пропущена.", "warn")
        return {}

    summary = {}
    for ref in images:
        summary[ref] = image_present(ref, names)
        if summary[ref]:
            log(f"OK: {ref} присутствует ({tool})", "ok")
        else:
            log(f"НЕТ: {ref} не найден ({tool})", "warn")
    log("== Конец проверки ==", "info")
    return summary


def main():
    prepull = load_settings()["prepull"]

    # Без ctr загружать нечем, но проверка через crictl всё равно возможна
    if shutil.which("ctr") is None:
        log("ctr не найден, предзагрузка образов пропущена", "warn")
    else:
        options = current_options()
        prepull_images(
            prepull["images"],
            prepull["registries"],
            prepull["namespace"],
            (options["docker_user"], options["docker_token"]),
            docker_available=shutil.which("docker") is not None,
            pause=prepull["pause_seconds"],
        )
    validate_pulled_images(prepull["images"], prepull["namespace"])


if __name__ == "__main__":
    main()
