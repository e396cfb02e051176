import time
from typing import Callable


def wait_for(
    predicate: Callable[[], bool],
    *,
    timeout: float,
    interval: float = 0.5,
    sleep_fn: Callable[[float], None] = time.sleep,
    clock_fn: Callable[[], float] = time.monotonic,
    no_throw: bool = False,
    timeout_message: str = "Timed out while waiting",
) -> bool:
    """Poll `predicate` until it is true or `timeout` seconds pass.

    Returns True when the predicate passed. On timeout raises `TimeoutError`,
    or returns False when `no_throw` is set.
    """
    deadline = clock_fn() + timeout
    while True:
        if predicate():
            return True
        if clock_fn() >= deadline:
            if no_throw:
                return False
            raise TimeoutError(timeout_message)
        sleep_fn(interval)
