"""
Generate the kubeadm config (ClusterConfiguration + KubeletConfiguration) from a Jinja2 template.
Генерация kubeadm-конфига (ClusterConfiguration + KubeletConfiguration) из шаблона Jinja2.
"""

import os
import sys
from pathlib import Path

import yaml
from jinja2 import Environment, FileSystemLoader, StrictUndefined

# Добавление корня проекта в sys.path
sys.path.insert(0, os.path.abspath(os.path.join(os.path.dirname(__file__), "..")))

from utils.logger import log  # noqa: E402
from utils.config import load_settings, TEMPLATES_DIR, GENERATED_DIR  # noqa: E402
from utils.options import current_options  # noqa: E402

TEMPLATE_NAME = "kubeadm-config.yaml.j2"
OUTPUT_PATH = Path(GENERATED_DIR) / "kubeadm-config.yaml"

EXPECTED_KINDS = ["ClusterConfiguration", "KubeletConfiguration"]


def template_context(k8s: dict, api_host: str | None = None) -> dict:
    return {
        "API_HOST": api_host or k8s["api_host"],
        "API_PORT": k8s["api_port"],
        "KUBERNETES_VERSION": k8s["version"],
        "POD_SUBNET": k8s["pod_subnet"],
        "SERVICE_SUBNET": k8s["service_subnet"],
        "MAX_PODS": k8s["max_pods"],
    }


def render_config(context: dict, templates_dir: str = TEMPLATES_DIR) -> str:
    """
    Render the kubeadm template and make sure it is valid YAML with the expected documents.
    Рендерит шаблон kubeadm и проверяет, что это корректный YAML с нужными документами.
    """
    env = Environment(
        loader=FileSystemLoader(templates_dir),
        trim_blocks=True,
        lstrip_blocks=True,
        undefined=StrictUndefined,
    )
    rendered = env.get_template(TEMPLATE_NAME).render(**context)

    kinds = [doc.get("kind") for doc in yaml.safe_load_all(rendered) if doc]
    if kinds != EXPECTED_KINDS:
        raise ValueError(f"Неожиданные документы в конфиге kubeadm: {kinds}")
    return rendered


def generate_config(output_path: Path = OUTPUT_PATH) -> Path:
    """
    Write the rendered kubeadm config and return its path.
    Записывает kubeadm-конфиг и возвращает путь к нему.
    """
    settings = load_settings()
    context = template_context(settings["kubernetes"], current_options()["api_host"])
    log(f"Генерация {output_path.name} (endpoint {context['API_HOST']}:{context['API_PORT']})...", "info")

    rendered = render_config(context)
    output_path.parent.mkdir(parents=True, exist_ok=True)
    with open(output_path, "w") as f:
        f.write(rendered)

    log(f"Файл создан: {output_path}", "ok")
    return output_path


if __name__ == "__main__":
    try:
        generate_config()
    except ValueError as e:
        log(str(e), "error")
        sys.exit(1)
