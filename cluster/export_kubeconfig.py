#!/usr/bin/env python3
"""
Export the admin kubeconfig to the working directory and print connection info.
Экспорт admin kubeconfig в рабочую директорию и вывод информации для подключения.
"""

import os
import re
import sys
import socket
import shutil
from pathlib import Path

import yaml

sys.path.insert(0, os.path.abspath(os.path.join(os.path.dirname(__file__), "..")))

from utils.logger import log  # noqa: E402
from utils.config import load_settings  # noqa: E402
from utils.options import current_options  # noqa: E402

EXPORT_NAMES = ["kubeconfig", "kubeconfig.config"]
SERVER_RE = re.compile(r"^(https?://)?([^/\s\"]+)")


def host_port(api_host: str, default_port: int = 6443) -> str:
    """
    Append the API port unless the host already carries one.
    Добавляет порт API, если он не указан в адресе.
    """
    return api_host if ":" in api_host else f"{api_host}:{default_port}"


def rewrite_server(kubeconfig: dict, hostport: str) -> dict:
    """
    Point every cluster entry at https://<hostport>, keeping the original scheme.
    Направляет все кластеры на <hostport>, сохраняя исходную схему.
    """
    for entry in kubeconfig.get("clusters") or []:
        cluster = entry.get("cluster") or {}
        match = SERVER_RE.match(cluster.get("server", ""))
        scheme = match.group(1) if match and match.group(1) else "https://"
        cluster["server"] = f"{scheme}{hostport}"
    return kubeconfig


def server_endpoint(kubeconfig: dict) -> str | None:
    """
    host:port of the first cluster's server field.
    host:port из поля server первого кластера.
    """
    for entry in kubeconfig.get("clusters") or []:
        match = SERVER_RE.match((entry.get("cluster") or {}).get("server", ""))
        if match:
            return match.group(2)
    return None


def get_ip():
    """
    Get the primary IPv4 address using a dummy UDP connection.
    Получает основной IPv4-адрес через фиктивное UDP-соединение.
    """
    try:
        s = socket.socket(socket.AF_INET, socket.SOCK_DGRAM)
        s.connect(("8.8.8.8", 80))
        ip = s.getsockname()[0]
        s.close()
        return ip
    except OSError as e:
        log(f"Не удалось определить IP хоста: {e}", "warn")
        return None


def api_endpoint(kubeconfig: dict | None, port: int = 6443) -> str:
    endpoint = server_endpoint(kubeconfig) if kubeconfig else None
    if endpoint:
        return endpoint
    ip = get_ip()
    return f"{ip}:{port}" if ip else f"<node-ip>:{port}"


def load_kubeconfig(path) -> dict:
    with open(path, "r") as f:
        return yaml.safe_load(f) or {}


def export_kubeconfig(src: str, out_dir: str, api_host: str | None, port: int = 6443) -> list:
    """
    Copy admin.conf into out_dir, relax permissions and rewrite the server address.
    Копирует admin.conf в out_dir, открывает права и переписывает адрес сервера.
    """
    exported = []
    for name in EXPORT_NAMES:
        target = Path(out_dir) / name
        shutil.copyfile(src, target)
        try:
            os.chmod(target, 0o666)
        except OSError as e:
            log(f"chmod не удался для {target}: {e}", "warn")
        exported.append(target)
    log(f"Экспорт kubeconfig в: {', '.join(str(p) for p in exported)}", "ok")

    if api_host:
        hostport = host_port(api_host, port)
        for target in exported:
            kubeconfig = rewrite_server(load_kubeconfig(target), hostport)
            with open(target, "w") as f:
                yaml.safe_dump(kubeconfig, f, sort_keys=False)
        log(f"В экспортированных kubeconfig API-сервер заменён на https://{hostport}", "ok")
    return exported


def print_kubeconfig(src: str, max_lines: int = 200) -> None:
    print("\n---- kubeconfig (begin) ----\n")
    with open(src, "r") as f:
        for i, line in enumerate(f):
            if i >= max_lines:
                break
            print(line, end="")
    print("\n---- kubeconfig (end) ----\n")


def main():
    settings = load_settings()
    k8s = settings["kubernetes"]
    src = k8s["admin_conf"]
    out_dir = os.getcwd()
    api_host = current_options()["api_host"] or k8s["api_host"]

    kubeconfig = None
    exported = []
    if os.path.isfile(src):
        exported = export_kubeconfig(src, out_dir, api_host, k8s["api_port"])
        print_kubeconfig(src)
        kubeconfig = load_kubeconfig(src)
    else:
        log(f"{src} не найден; экспорт kubeconfig невозможен.", "warn")

    endpoint = api_endpoint(kubeconfig, k8s["api_port"])
    print(f"\nАдрес API кластера (для внешнего доступа): {endpoint}")
    if exported:
        print("Для подключения используйте экспортированный kubeconfig:")
        print(f"  KUBECONFIG={exported[0]} kubectl get nodes --server=https://{endpoint}")
    else:
        print("При наличии admin kubeconfig используйте kubectl так:")
        print(f"  KUBECONFIG={src} kubectl get nodes --server=https://{endpoint}")


if __name__ == "__main__":
    main()
