# utils/logger.py

import sys
import time
from datetime import datetime

COLORS = {
    "info": "\033[94m",    # Синий
    "warn": "\033[93m",    # Желтый
    "error": "\033[91m",   # Красный
    "ok": "\033[92m",      # Зеленый
    "step": "\033[95m",    # Пурпурный
    "start": "\033[96m",   # Голубой
}
RESET = "\033[0m"

# Момент старта предыдущей секции (для подсчёта времени между секциями)
_section_started = time.time()


def log(text, level="info"):
    color = COLORS.get(level, RESET)
    stream = sys.stderr if level in ("warn", "error") else sys.stdout
    print(f"{color}[{level.upper()}] {text}{RESET}", file=stream, flush=True)


def timestamp() -> str:
    return datetime.now().astimezone().isoformat(timespec="seconds")


def format_elapsed(seconds: float) -> str:
    """
    Format a duration as HHh:MMm:SSs.
    Форматирует длительность в виде HHh:MMm:SSs.
    """
    total = int(seconds)
    hours, rest = divmod(total, 3600)
    mins, secs = divmod(rest, 60)
    return f"{hours:02d}h:{mins:02d}m:{secs:02d}s"


def format_minutes(seconds: float) -> str:
    mins, secs = divmod(int(seconds), 60)
    return f"{mins}m {secs}s"


def log_section(title: str, now: float | None = None) -> str:
    """
    Print a section banner with timestamp and time spent since the previous section.
    Печатает заголовок секции с меткой времени и временем с предыдущей секции.
    """
    global _section_started
    now = time.time() if now is None else now
    elapsed = format_elapsed(now - _section_started)
    banner = " # =============================================== "
    print("", flush=True)
    print(banner)
    print(f"--> [{timestamp()}] Начало: {title} (с предыдущей секции: {elapsed})")
    print(banner, flush=True)
    _section_started = now
    return elapsed
