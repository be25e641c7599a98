"""
Polling primitive used by the readiness waits.
Примитив опроса для ожидания готовности кластера.
"""

import time

from utils.logger import log, format_minutes


class WaitTimeout(Exception):
    """Raised when a condition did not hold within the allowed time."""


def wait_until(condition, description: str, interval: float = 15, timeout: float | None = None,
               sleep=time.sleep, clock=time.monotonic) -> float:
    """
    Poll `condition` with a fixed sleep until it returns True.

    Опрашивает `condition` с фиксированным интервалом, пока она не вернёт True.

    Args:
        condition: Функция без аргументов, возвращающая bool.
        description: Что ожидаем (для логов).
        interval: Пауза между проверками в секундах.
        timeout: Максимальное время ожидания; None означает ждать бесконечно.

    Returns:
        Прошедшее время в секундах.

    Raises:
        WaitTimeout: если условие не выполнилось за timeout.
    """
    started = clock()
    while not condition():
        elapsed = clock() - started
        if timeout is not None and elapsed >= timeout:
            raise WaitTimeout(f"{description}: не готово через {format_minutes(elapsed)}")
        log(f"Всё ещё ждём {description}... прошло: {format_minutes(elapsed)}", "info")
        sleep(interval)
    return clock() - started
