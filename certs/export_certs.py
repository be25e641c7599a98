"""
Export the CA and client certificates embedded in admin.conf as PEM and DER files.
Экспорт CA и клиентского сертификата из admin.conf в файлы PEM и DER.
"""

import os
import sys
import base64
import binascii
import shutil
import subprocess

import yaml

sys.path.insert(0, os.path.abspath(os.path.join(os.path.dirname(__file__), "..")))

from utils.logger import log  # noqa: E402
from utils.config import load_settings  # noqa: E402

# (секция kubeconfig, поле с данными, базовое имя файла)
EXPORTS = [
    ("clusters", "cluster", "certificate-authority-data", "ca.crt"),
    ("users", "user", "client-certificate-data", "client.crt"),
]


def first_field(kubeconfig: dict, section: str, inner: str, field: str) -> str | None:
    """
    Return the first non-empty `field` value under kubeconfig[section][*][inner].
    Возвращает первое непустое значение `field` в kubeconfig[section][*][inner].
    """
    for entry in kubeconfig.get(section) or []:
        value = (entry.get(inner) or {}).get(field)
        if value:
            return str(value).strip().strip('"')
    return None


def decode_pem(data_b64: str) -> bytes | None:
    try:
        pem = base64.b64decode(data_b64, validate=False)
    except (binascii.Error, ValueError):
        return None
    return pem or None


def relax_permissions(path: str) -> None:
    try:
        os.chmod(path, 0o666)
    except OSError as e:
        log(f"chmod не удался для {path}: {e}", "warn")


def pem_to_der(pem_path: str, der_path: str) -> bool:
    """
    Convert PEM to DER with openssl; returns False when openssl is unavailable or fails.
    Конвертирует PEM в DER через openssl; False, если openssl нет или он упал.
    """
    if shutil.which("openssl") is None:
        return False
    result = subprocess.run(
        ["openssl", "x509", "-in", pem_path, "-outform", "DER", "-out", der_path],
        stdout=subprocess.DEVNULL,
        stderr=subprocess.DEVNULL,
    )
    if result.returncode != 0 or not os.path.isfile(der_path):
        return False
    relax_permissions(der_path)
    return True


def export_certificate(kubeconfig: dict, section: str, inner: str, field: str,
                       basename: str, out_dir: str) -> str | None:
    """
    Decode one embedded certificate; return the PEM path or None.
    Декодирует один встроенный сертификат; возвращает путь к PEM или None.
    """
    data = first_field(kubeconfig, section, inner, field)
    if not data:
        log(f"{field} не найден в kubeconfig", "info")
        return None

    pem = decode_pem(data)
    if pem is None:
        log(f"Не удалось декодировать {field}", "warn")
        return None

    pem_path = os.path.join(out_dir, f"{basename}.pem")
    der_path = os.path.join(out_dir, f"{basename}.der")
    with open(pem_path, "wb") as f:
        f.write(pem)
    relax_permissions(pem_path)

    if pem_to_der(pem_path, der_path):
        log(f"Экспортирован {basename}: {pem_path} (PEM) и {der_path} (DER)", "ok")
    else:
        log(f"Экспортирован {basename}: {pem_path} (PEM), DER пропущен (openssl отсутствует или завершился с ошибкой)", "warn")
    return pem_path


def export_all(admin_conf: str, out_dir: str) -> list:
    with open(admin_conf, "r") as f:
        kubeconfig = yaml.safe_load(f) or {}
    exported = []
    for section, inner, field, basename in EXPORTS:
        path = export_certificate(kubeconfig, section, inner, field, basename, out_dir)
        if path:
            exported.append(path)
    return exported


if __name__ == "__main__":
    admin_conf = load_settings()["kubernetes"]["admin_conf"]
    if not os.path.isfile(admin_conf):
        log(f"{admin_conf} не найден; экспорт сертификатов пропущен", "warn")
        sys.exit(0)
    export_all(admin_conf, os.getcwd())
