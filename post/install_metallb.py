#!/usr/bin/env python3
"""
Install the MetalLB Helm chart and write the IPAddressPool manifest
Устанавливает Helm-чарт MetalLB и записывает манифест IPAddressPool

The pool itself is applied later by post/configure_metallb_pool.py, once the cluster has settled.
Сам пул применяется позже в post/configure_metallb_pool.py, когда кластер стабилизируется.
"""

import os
import sys
import ipaddress
import subprocess

import yaml

sys.path.insert(0, os.path.abspath(os.path.join(os.path.dirname(__file__), "..")))

from utils.logger import log  # noqa: E402
from utils.config import load_settings  # noqa: E402
from utils.kube import use_admin_kubeconfig  # noqa: E402


def validate_address(entry: str) -> str:
    """
    Accept a CIDR (192.168.0.25/32) or a range (192.168.0.240-192.168.0.250).
    Принимает CIDR (192.168.0.25/32) или диапазон (192.168.0.240-192.168.0.250).
    """
    entry = str(entry).strip()
    if "-" in entry:
        start, end = (ipaddress.ip_address(part.strip()) for part in entry.split("-", 1))
        if start.version != end.version or int(start) > int(end):
            raise ValueError(f"Неверный диапазон адресов MetalLB: {entry}")
    elif "/" in entry:
        ipaddress.ip_network(entry, strict=False)
    else:
        # одиночный адрес превращаем в /32 (/128)
        address = ipaddress.ip_address(entry)
        entry = f"{address}/{address.max_prefixlen}"
    return entry


def build_pool_manifest(name: str, namespace: str, addresses: list) -> dict:
    if not addresses:
        raise ValueError("Пул адресов MetalLB пуст")
    return {
        "apiVersion": "metallb.io/v1beta1",
        "kind": "IPAddressPool",
        "metadata": {"name": name, "namespace": namespace},
        "spec": {"addresses": [validate_address(a) for a in addresses]},
    }


def write_pool_manifest(metallb: dict) -> str:
    manifest = build_pool_manifest(metallb["pool_name"], metallb["namespace"], metallb["addresses"])
    path = metallb["manifest_path"]
    with open(path, "w") as f:
        yaml.safe_dump(manifest, f, sort_keys=False)
    log(f"Манифест пула MetalLB записан: {path}", "ok")
    return path


def helm_install(metallb: dict):
    """
    Add the MetalLB repo and install/upgrade the chart
    Добавляет репозиторий MetalLB и устанавливает/обновляет чарт
    """
    cmds = [
        ["helm", "repo", "add", metallb["repo_name"], metallb["repo_url"], "--force-update"],
        ["helm", "repo", "update"],
        [
            "helm", "upgrade", "--install", metallb["release"], metallb["chart"],
            "--namespace", metallb["namespace"],
            "--create-namespace",
        ],
    ]
    for cmd in cmds:
        result = subprocess.run(cmd, capture_output=True, text=True)
        if result.returncode != 0:
            log(f"Helm завершился с ошибкой: {' '.join(cmd)}\n{result.stderr}", "error")
            sys.exit(1)
    log("Чарт MetalLB установлен", "ok")


def main():
    use_admin_kubeconfig()
    metallb = load_settings()["metallb"]

    log("Установка балансировщика MetalLB...", "start")
    try:
        path = write_pool_manifest(metallb)
    except ValueError as e:
        log(str(e), "error")
        sys.exit(1)
    helm_install(metallb)
    log(f"Манифест пула {path} будет применён после готовности kube-system", "info")


if __name__ == "__main__":
    main()
