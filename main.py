#!/usr/bin/env python3
"""
Single-node Kubernetes installer for Ubuntu 22.04 (kubeadm + containerd + Calico + MetalLB).
Установщик single-node Kubernetes для Ubuntu 22.04 (kubeadm + containerd + Calico + MetalLB).

Usage / Использование:
    export DOCKER_USER=... DOCKER_TOKEN=...
    sudo -E python3 main.py
    sudo python3 main.py -U <docker user> -T <docker token> [-G user -g token] [-Q user -q token] [-A api.host] [-F]
"""

import os
import sys
import time
import argparse
import subprocess

import argcomplete

from utils.logger import log, log_section, timestamp, format_elapsed
from utils.config import CONFIG_ENV, load_settings
from utils.options import resolve_options, require_docker_credentials, export_options

PROJECT_ROOT = os.path.dirname(os.path.abspath(__file__))

# Шаг, выполняемый сразу после проверки учётных данных, до первой секции
AUTH_STEP = ("Файл авторизации Docker-реестра", "registry/docker_auth.py")

# Очерёдность секций и шагов установки
SECTIONS = [
    ("2. Предварительные требования и подготовка хоста", [
        ("Подготовка хоста", "setup/prepare_host.py"),
    ]),
    ("3. Установка container runtime (containerd)", [
        ("Установка containerd", "setup/install_containerd.py"),
    ]),
    ("4. Установка kubeadm, kubelet и kubectl", [
        ("Установка инструментов Kubernetes", "setup/install_kubernetes.py"),
    ]),
    ("5. Установка Helm", [
        ("Установка Helm", "setup/install_helm.py"),
        ("Проверка бинарников", "setup/check_binaries.py"),
    ]),
    ("6. Инициализация control-plane", [
        ("Генерация kubeadm-конфига", "kubeadm/generate_kubeadm_config.py"),
        ("Запуск kubeadm init", "kubeadm/run_kubeadm_init.py"),
    ]),
    ("7. Настройка kubectl для текущего пользователя", [
        ("kubeconfig текущего пользователя", "kubeadm/configure_kubectl.py"),
    ]),
    ("8. Снятие taint с control-plane ноды", [
        ("Снятие taint control-plane", "post/untaint_node.py"),
    ]),
    ("9. Установка сетевого плагина (Calico)", [
        ("Манифест Calico", "post/apply_cni.py"),
    ]),
    ("10. Установка клиента Docker", [
        ("Установка Docker", "setup/install_docker.py"),
        ("Вход в реестры образов", "registry/registry_login.py"),
        ("Предзагрузка образов", "registry/prepull_images.py"),
    ]),
    ("11. Перезапуск calico-node для чистой инициализации сети", [
        ("Перезапуск и готовность Calico", "post/restart_calico.py"),
    ]),
    ("12. Установка MetalLB", [
        ("Чарт MetalLB", "post/install_metallb.py"),
    ]),
    ("13. Настройка пула MetalLB", [
        ("Пул адресов MetalLB", "post/configure_metallb_pool.py"),
    ]),
    ("Установка завершена", [
        ("Проверка состояния кластера", "cluster/check_cluster_health.py"),
    ]),
]

# Экспорт kubeconfig и сертификатов после подсчёта общего времени
EXPORT_STEPS = [
    ("Экспорт kubeconfig", "cluster/export_kubeconfig.py"),
    ("Экспорт сертификатов", "certs/export_certs.py"),
]


def build_parser():
    parser = argparse.ArgumentParser(description="Установка single-node кластера Kubernetes")
    parser.add_argument("-U", dest="docker_user", help="Пользователь Docker Hub (приоритет у DOCKER_USER)")
    parser.add_argument("-T", dest="docker_token", help="Токен Docker Hub (приоритет у DOCKER_TOKEN)")
    parser.add_argument("-G", dest="ghcr_user", help="Пользователь GHCR (приоритет у GHCR_USER)")
    parser.add_argument("-g", dest="ghcr_token", help="Токен GHCR (приоритет у GHCR_TOKEN)")
    parser.add_argument("-Q", dest="quay_user", help="Пользователь Quay (приоритет у QUAY_USER)")
    parser.add_argument("-q", dest="quay_token", help="Токен Quay (приоритет у QUAY_TOKEN)")
    parser.add_argument("-A", dest="api_host", help="Имя хоста API-сервера (приоритет у API_HOST)")
    parser.add_argument("-F", dest="open_firewall", action="store_true",
                        help="Не отключать ufw, а открыть в нём порты кластера")
    parser.add_argument("--config", help="YAML-файл, переопределяющий data/conf/cluster.yaml")
    return parser


def parse_options(argv=None, environ=None) -> tuple:
    """
    Parse flags with autocompletion support and resolve them against the environment.
    Парсит флаги с поддержкой автодополнения и объединяет их с окружением.
    """
    parser = build_parser()

    # Автоматически активируем autocompletion только если переменная окружения выставлена
    if "_ARGCOMPLETE" in os.environ:
        argcomplete.autocomplete(parser)

    args = parser.parse_args(argv)
    return args, resolve_options(vars(args), environ)


def run_script(title, command):
    log(f"==> {title} [{command}]", "step")
    parts = command.split()
    script_path = os.path.join(PROJECT_ROOT, parts[0])

    if not os.path.exists(script_path):
        log(f"Файл не найден: {script_path}", "error")
        sys.exit(1)

    try:
        result = subprocess.run([sys.executable, script_path] + parts[1:], stdout=sys.stdout, stderr=sys.stderr)
    except OSError as e:
        log(f"Ошибка при выполнении: {title}: {e}", "error")
        sys.exit(1)

    if result.returncode != 0:
        log(f"Ошибка в скрипте {command}", "error")
        sys.exit(1)

    log(f"Завершено: {title}", "ok")


def run_sections(sections):
    for section_title, steps in sections:
        log_section(section_title)
        for step_name, script_command in steps:
            run_script(step_name, script_command)


def main(argv=None):
    args, options = parse_options(argv)

    # Проверки до любых изменений на хосте
    require_docker_credentials(options)
    if os.geteuid() != 0:
        log("Запустите установщик от root (sudo).", "error")
        sys.exit(1)

    export_options(options)
    if args.config:
        os.environ[CONFIG_ENV] = os.path.abspath(args.config)
    load_settings()

    started = time.time()
    run_script(*AUTH_STEP)

    log_section("1. Параметры кластера")
    log(f"Установка начата: {timestamp()}", "info")

    run_sections(SECTIONS)

    log(f"Общее время установки: {format_elapsed(time.time() - started)}", "ok")

    for step_name, script_command in EXPORT_STEPS:
        run_script(step_name, script_command)

    log("Установка завершена успешно", "ok")


if __name__ == "__main__":
    main()
