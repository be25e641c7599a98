#!/usr/bin/env python3
"""
Remove the control-plane NoSchedule taint so the single node can run workloads.
Снимает taint NoSchedule с control-plane, чтобы единственная нода запускала нагрузку.
"""

import subprocess
import sys
import os
import json

# Добавляем путь к модулям
sys.path.insert(0, os.path.abspath(os.path.join(os.path.dirname(__file__), "..")))
from utils.logger import log  # noqa: E402
from utils.kube import use_admin_kubeconfig, first_node_name, get_node  # noqa: E402

TAINT_KEY = "node-role.kubernetes.io/control-plane"
TAINT_EFFECT = "NoSchedule"


def has_control_plane_taint(node: dict) -> bool:
    """
    Check whether the node carries the control-plane NoSchedule taint.
    Проверяет, есть ли у ноды taint control-plane:NoSchedule.
    """
    for taint in node.get("spec", {}).get("taints") or []:
        if taint.get("key") == TAINT_KEY and taint.get("effect") == TAINT_EFFECT:
            return True
    return False


def untaint_node(node_name: str):
    """
    Remove the taint when present.
    Удаляет taint, если он есть.
    """
    if not has_control_plane_taint(get_node(node_name)):
        log(f"У ноды '{node_name}' нет taint {TAINT_KEY}:{TAINT_EFFECT}", "ok")
        return

    result = subprocess.run(
        ["kubectl", "taint", "nodes", node_name, f"{TAINT_KEY}:{TAINT_EFFECT}-"],
        capture_output=True, text=True
    )
    if result.returncode == 0:
        log(f"Taint снят с ноды '{node_name}'", "ok")
    else:
        log(f"Не удалось снять taint: {result.stderr}", "error")
        sys.exit(1)


def main():
    use_admin_kubeconfig()
    try:
        node_name = first_node_name()
        log(f"Снимаем taint с ноды '{node_name}' для запуска подов...", "info")
        untaint_node(node_name)
    except (subprocess.CalledProcessError, json.JSONDecodeError) as e:
        log(f"Не удалось получить информацию о ноде: {e}", "error")
        sys.exit(1)


if __name__ == "__main__":
    main()
