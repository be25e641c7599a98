"""
File helpers: atomic writes, checksums and timestamped backups.
Файловые утилиты: атомарная запись, контрольные суммы и резервные копии.
"""

import os
import shutil
import hashlib
from datetime import datetime
from tempfile import NamedTemporaryFile


def file_sha256(path: str) -> str:
    """
    Compute SHA-256 checksum of a file in a streaming fashion (1 MB chunks).

    Вычислить SHA-256 файла потоково (чанки по 1 МБ).
    """
    h = hashlib.sha256()
    with open(path, "rb") as f:
        for chunk in iter(lambda: f.read(1024 * 1024), b""):
            h.update(chunk)
    return h.hexdigest()


def content_differs(path: str, data: bytes) -> bool:
    """
    Return True if the file is missing or its content differs from `data`.

    Вернуть True, если файла нет или его содержимое отличается от `data`.
    """
    if not os.path.isfile(path):
        return True
    return file_sha256(path) != hashlib.sha256(data).hexdigest()


def write_atomic(dst_path: str, data: bytes, mode: int = 0o644) -> None:
    """
    Atomically write bytes to a file:
    write to a temp file in the same dir -> fsync -> os.replace() -> chmod.

    Атомарная запись байтов в файл:
    запись во временный файл в той же директории -> fsync -> os.replace() -> chmod.
    """
    dir_path = os.path.dirname(os.path.abspath(dst_path))
    os.makedirs(dir_path, exist_ok=True)
    with NamedTemporaryFile(dir=dir_path, delete=False) as tmp:
        tmp.write(data)
        tmp.flush()
        os.fsync(tmp.fileno())
        tmp_path = tmp.name
    os.replace(tmp_path, dst_path)
    os.chmod(dst_path, mode)


def backup_file(path: str) -> str:
    """
    Create a timestamped backup next to the target and return its path.

    Создать резервную копию с меткой времени рядом с файлом и вернуть путь к ней.
    """
    ts = datetime.now().strftime("%Y%m%d-%H%M%S")
    bak = f"{path}.bak.{ts}"
    shutil.copy2(path, bak)
    return bak
