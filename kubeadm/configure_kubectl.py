#!/usr/bin/env python3
"""
Configure kubectl for the current user by copying admin.conf to ~/.kube/config.
Настраивает kubectl для текущего пользователя: копирует admin.conf в ~/.kube/config.
"""

import os
import sys
import shutil
from pathlib import Path

sys.path.insert(0, os.path.abspath(os.path.join(os.path.dirname(__file__), "..")))

from utils.logger import log  # noqa: E402
from utils.config import load_settings  # noqa: E402


def install_user_kubeconfig(admin_conf: str, home: str | None = None) -> Path:
    """
    Copy admin.conf into <home>/.kube/config owned by the current uid/gid.
    Копирует admin.conf в <home>/.kube/config с владельцем текущего uid/gid.
    """
    home = home or os.path.expanduser("~")
    target = Path(home) / ".kube" / "config"
    target.parent.mkdir(parents=True, exist_ok=True)

    if target.exists():
        log(f"{target} существует, перезаписываем из {admin_conf}", "warn")
    shutil.copyfile(admin_conf, target)
    os.chown(target, os.getuid(), os.getgid())
    log(f"kubeconfig установлен: {target}", "ok")
    return target


def main():
    admin_conf = load_settings()["kubernetes"]["admin_conf"]
    if not os.path.isfile(admin_conf):
        log(f"{admin_conf} не найден; kubeadm init завершился успешно?", "error")
        sys.exit(1)
    install_user_kubeconfig(admin_conf)


if __name__ == "__main__":
    main()
