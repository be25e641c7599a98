#!/usr/bin/env python3
"""
Restart calico-node so the CNI initializes cleanly, then wait until every Calico pod is Running.
Перезапускает calico-node для чистой инициализации CNI и ждёт, пока все поды Calico станут Running.
"""

import os
import sys
import subprocess

sys.path.insert(0, os.path.abspath(os.path.join(os.path.dirname(__file__), "..")))

from utils.logger import log, format_minutes  # noqa: E402
from utils.config import load_settings, wait_timeout  # noqa: E402
from utils.kube import use_admin_kubeconfig, pod_statuses, pods_in_status  # noqa: E402
from utils.wait import wait_until, WaitTimeout  # noqa: E402


def calico_ready(namespace: str) -> bool:
    return pods_in_status(pod_statuses(namespace), ("Running",), name_filter="calico")


def main():
    use_admin_kubeconfig()
    settings = load_settings()
    calico = settings["calico"]
    namespace = calico["namespace"]

    log("Перезапуск daemonset calico-node для готовности CNI...", "start")
    try:
        subprocess.run(
            ["kubectl", "rollout", "restart", "daemonset", calico["daemonset"], "-n", namespace],
            check=True,
        )
    except subprocess.CalledProcessError as e:
        log(f"Не удалось перезапустить calico-node: {e}", "error")
        sys.exit(1)

    log("Ожидание готовности подов Calico...", "info")
    try:
        elapsed = wait_until(
            lambda: calico_ready(namespace),
            "Calico",
            interval=settings["waits"]["calico_interval_seconds"],
            timeout=wait_timeout(settings),
        )
    except WaitTimeout as e:
        log(str(e), "error")
        sys.exit(1)
    log(f"Все поды Calico готовы через {format_minutes(elapsed)}.", "ok")


if __name__ == "__main__":
    main()
