"""
Credential and flag resolution.
Разрешение учётных данных и флагов запуска.

Environment variables win over command line flags; resolved values are exported
back to the environment so that every step script sees the same options.
Переменные окружения имеют приоритет над флагами; итоговые значения
экспортируются обратно в окружение, чтобы все шаги видели одинаковые опции.
"""

import os
import sys

from utils.logger import log

# Имя опции -> переменная окружения
OPTION_ENV = {
    "docker_user": "DOCKER_USER",
    "docker_token": "DOCKER_TOKEN",
    "ghcr_user": "GHCR_USER",
    "ghcr_token": "GHCR_TOKEN",
    "quay_user": "QUAY_USER",
    "quay_token": "QUAY_TOKEN",
    "api_host": "API_HOST",
    "open_firewall": "OPEN_FIREWALL",
}


def _flag_value(value) -> str:
    if value is None:
        return ""
    if isinstance(value, bool):
        return "1" if value else ""
    return str(value)


def resolve_options(flags: dict, environ=None) -> dict:
    """
    Merge parsed flags with environment variables, environment first.

    Объединяет флаги с переменными окружения; окружение в приоритете.
    Пустая переменная окружения считается незаданной.
    """
    environ = os.environ if environ is None else environ
    options = {}
    for name, env_name in OPTION_ENV.items():
        options[name] = environ.get(env_name) or _flag_value(flags.get(name))
    options["open_firewall"] = "1" if options["open_firewall"] in ("1", "true", "yes") else "0"
    return options


def missing_docker_credentials(options: dict) -> bool:
    return not options.get("docker_user") or not options.get("docker_token")


def require_docker_credentials(options: dict) -> None:
    """
    Exit with code 1 when Docker Hub credentials are incomplete.
    Завершает работу с кодом 1, если учётные данные Docker Hub неполные.
    """
    if missing_docker_credentials(options):
        log("Нужны учётные данные Docker Hub, чтобы не упереться в лимиты загрузок.", "error")
        log("Задайте переменные DOCKER_USER и DOCKER_TOKEN или передайте -U <user> -T <token>.", "error")
        sys.exit(1)


def export_options(options: dict, environ=None) -> None:
    environ = os.environ if environ is None else environ
    for name, env_name in OPTION_ENV.items():
        if options.get(name):
            environ[env_name] = options[name]


def current_options(environ=None) -> dict:
    """
    Options as seen by a step script (already resolved by main.py).
    Опции с точки зрения шага (уже разрешены в main.py).
    """
    return resolve_options({}, environ)


def firewall_open_requested(options: dict) -> bool:
    return options.get("open_firewall") == "1"
