#!/usr/bin/env python3
"""
Apply the MetalLB IPAddressPool after every kube-system pod is Running or Completed.
Применяет IPAddressPool MetalLB после того, как все поды kube-system в Running или Completed.
"""

import os
import sys
import subprocess

sys.path.insert(0, os.path.abspath(os.path.join(os.path.dirname(__file__), "..")))

from utils.logger import log, format_minutes  # noqa: E402
from utils.config import load_settings, wait_timeout  # noqa: E402
from utils.kube import use_admin_kubeconfig, pod_statuses, pods_in_status, SETTLED_STATUSES  # noqa: E402
from utils.wait import wait_until, WaitTimeout  # noqa: E402


def namespace_settled(namespace: str) -> bool:
    return pods_in_status(pod_statuses(namespace), SETTLED_STATUSES)


def wait_for_namespace(namespace: str, interval: float, timeout: float | None) -> None:
    """
    Block until every pod of the namespace is Running/Completed.
    Блокирует, пока все поды namespace не будут в Running/Completed.
    """
    log(f"Ожидание готовности всех подов в {namespace}...", "info")
    elapsed = wait_until(lambda: namespace_settled(namespace), f"{namespace} pods",
                         interval=interval, timeout=timeout)
    log(f"Все поды {namespace} готовы через {format_minutes(elapsed)}.", "ok")


def apply_pool(manifest_path: str) -> None:
    subprocess.run(["kubectl", "apply", "-f", manifest_path], check=True)
    log(f"Конфигурация MetalLB применена из {manifest_path}", "ok")


def main():
    use_admin_kubeconfig()
    settings = load_settings()
    metallb = settings["metallb"]
    interval = settings["waits"]["pods_interval_seconds"]
    timeout = wait_timeout(settings)

    if not os.path.isfile(metallb["manifest_path"]):
        log(f"{metallb['manifest_path']} не найден; сначала запустите post/install_metallb.py", "error")
        sys.exit(1)

    try:
        wait_for_namespace("kube-system", interval, timeout)
        # вебхук контроллера MetalLB должен быть поднят, иначе apply пула отклоняется
        wait_for_namespace(metallb["namespace"], interval, timeout)
        apply_pool(metallb["manifest_path"])
    except WaitTimeout as e:
        log(str(e), "error")
        sys.exit(1)
    except subprocess.CalledProcessError as e:
        log(f"Не удалось применить пул MetalLB: {e}", "error")
        sys.exit(1)


if __name__ == "__main__":
    main()
