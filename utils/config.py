"""
Load cluster settings from data/conf/cluster.yaml with an optional override file.
Загрузка параметров кластера из data/conf/cluster.yaml с возможным файлом-переопределением.
"""

import os
import sys
import yaml

from utils.logger import log

PROJECT_ROOT = os.path.abspath(os.path.join(os.path.dirname(__file__), ".."))
DEFAULT_CONFIG = os.path.join(PROJECT_ROOT, "data", "conf", "cluster.yaml")
TEMPLATES_DIR = os.path.join(PROJECT_ROOT, "data", "yaml")
GENERATED_DIR = "generated"

# Переменная окружения, через которую main.py передаёт путь override-файла шагам
CONFIG_ENV = "KUBE_INSTALL_CONFIG"


def deep_merge(base: dict, override: dict) -> dict:
    """
    Recursively merge `override` into a copy of `base`.
    Рекурсивно накладывает `override` на копию `base`.
    """
    merged = dict(base)
    for key, value in override.items():
        if isinstance(value, dict) and isinstance(merged.get(key), dict):
            merged[key] = deep_merge(merged[key], value)
        else:
            merged[key] = value
    return merged


def read_yaml(path: str) -> dict:
    try:
        with open(path, "r", encoding="utf-8") as f:
            data = yaml.safe_load(f) or {}
    except (OSError, yaml.YAMLError) as e:
        log(f"Не удалось прочитать {path}: {e}", "error")
        sys.exit(1)
    if not isinstance(data, dict):
        log(f"Неверный формат настроек в {path}: верхний уровень должен быть словарём", "error")
        sys.exit(1)
    return data


def load_settings(override_path: str | None = None) -> dict:
    """
    Load default settings and merge the override file on top.

    Загружает настройки по умолчанию и накладывает файл-переопределение.

    Args:
        override_path: Путь к YAML-файлу; по умолчанию берётся из KUBE_INSTALL_CONFIG.
    """
    settings = read_yaml(DEFAULT_CONFIG)
    override_path = override_path or os.environ.get(CONFIG_ENV)
    if override_path:
        settings = deep_merge(settings, read_yaml(override_path))
    return settings


def wait_timeout(settings: dict) -> float | None:
    timeout = settings.get("waits", {}).get("timeout_seconds", 0)
    return float(timeout) if timeout else None
