"""
kubectl helpers shared by the post-init steps.
Вспомогательные функции kubectl для шагов после инициализации.
"""

import os
import json
import subprocess

ADMIN_CONF = "/etc/kubernetes/admin.conf"

# Статусы, при которых под считается «устоявшимся»
SETTLED_STATUSES = ("Running", "Completed")


def use_admin_kubeconfig(path: str = ADMIN_CONF) -> None:
    """
    Point kubectl/helm at the admin kubeconfig unless KUBECONFIG is already set.
    Направляет kubectl/helm на admin kubeconfig, если KUBECONFIG ещё не задан.
    """
    os.environ.setdefault("KUBECONFIG", path)


def kubectl(*args: str, check: bool = True) -> subprocess.CompletedProcess:
    return subprocess.run(["kubectl", *args], check=check, capture_output=True, text=True)


def parse_pod_table(output: str) -> list:
    """
    Parse `kubectl get pods --no-headers` output into (name, status) pairs.
    Разбирает вывод `kubectl get pods --no-headers` в пары (имя, статус).
    """
    pods = []
    for line in output.splitlines():
        columns = line.split()
        if len(columns) >= 3:
            pods.append((columns[0], columns[2]))
    return pods


def pod_statuses(namespace: str) -> list:
    result = kubectl("get", "pods", "-n", namespace, "--no-headers", check=False)
    if result.returncode != 0:
        return []
    return parse_pod_table(result.stdout)


def pods_in_status(pods: list, statuses=("Running",), name_filter: str | None = None) -> bool:
    """
    True when at least one matching pod exists and every matching pod is in `statuses`.

    True, если есть хотя бы один подходящий под и все подходящие поды в `statuses`.
    """
    selected = [status for name, status in pods if name_filter is None or name_filter in name]
    return bool(selected) and all(status in statuses for status in selected)


def first_node_name() -> str:
    return kubectl("get", "nodes", "-o", "jsonpath={.items[0].metadata.name}").stdout.strip()


def get_node(node_name: str) -> dict:
    return json.loads(kubectl("get", "node", node_name, "-o", "json").stdout)


def node_is_ready(node: dict) -> bool:
    for condition in node.get("status", {}).get("conditions", []):
        if condition.get("type") == "Ready":
            return condition.get("status") == "True"
    return False
