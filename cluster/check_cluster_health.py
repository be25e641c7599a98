# cluster/check_cluster_health.py
"""
Final health report: apiserver /healthz, node readiness and kube-system pods.
Итоговая проверка: /healthz apiserver, готовность ноды и поды kube-system.
"""

import os
import subprocess
import sys
import json

sys.path.insert(0, os.path.abspath(os.path.join(os.path.dirname(__file__), "..")))
from utils.logger import log  # noqa: E402
from utils.kube import kubectl, use_admin_kubeconfig, first_node_name, get_node, node_is_ready  # noqa: E402


def check_health() -> bool:
    result = kubectl("get", "--raw=/healthz", check=False)
    answer = result.stdout.strip()
    if result.returncode != 0:
        log(f"kube-apiserver недоступен: {result.stderr.strip()}", "error")
        return False
    if answer != "ok":
        log(f"kube-apiserver /healthz вернул: {answer}", "warn")
        return False
    log("kube-apiserver /healthz: ok", "ok")
    return True


def check_node_ready() -> bool:
    try:
        node_name = first_node_name()
        ready = node_is_ready(get_node(node_name))
    except (subprocess.CalledProcessError, json.JSONDecodeError) as e:
        log(f"Не удалось получить статус ноды: {e}", "error")
        return False
    log(f"Нода {node_name}: {'Ready' if ready else 'НЕ Ready'}", "ok" if ready else "warn")
    return ready


def main():
    use_admin_kubeconfig()
    healthy = check_health()
    check_node_ready()
    subprocess.run(["kubectl", "get", "pods", "-n", "kube-system", "-o", "wide"], check=False)
    if not healthy:
        sys.exit(1)


if __name__ == "__main__":
    main()
