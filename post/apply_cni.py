#!/usr/bin/env python3
"""
Deploy the Calico pod network add-on.
Установка сетевого плагина Calico.
"""

import os
import sys
import subprocess

CURRENT_DIR = os.path.dirname(os.path.abspath(__file__))
PROJECT_ROOT = os.path.abspath(os.path.join(CURRENT_DIR, ".."))
sys.path.append(PROJECT_ROOT)

from utils.logger import log  # noqa: E402
from utils.config import load_settings  # noqa: E402
from utils.kube import use_admin_kubeconfig  # noqa: E402


def apply_manifest(manifest: str) -> bool:
    """
    kubectl apply a manifest path or URL.
    Применяет манифест (путь или URL) через kubectl apply.
    """
    try:
        subprocess.run(["kubectl", "apply", "-f", manifest], check=True)
        return True
    except subprocess.CalledProcessError:
        return False


def main():
    use_admin_kubeconfig()
    manifest = load_settings()["calico"]["manifest_url"]

    log("Установка сетевого плагина Calico...", "start")
    if not apply_manifest(manifest):
        log(f"Не удалось применить манифест Calico {manifest}", "error")
        sys.exit(1)
    log("Манифест Calico применён", "ok")


if __name__ == "__main__":
    main()
