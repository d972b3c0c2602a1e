import random
from typing import Callable

JITTER_RATIO = 0.26
MAX_EXPONENT = 32


def backoff_delay(
    attempt: int,
    min_delay: float,
    max_delay: float,
    jitter_ratio: float = JITTER_RATIO,
    uniform: Callable[[float, float], float] = random.uniform,
) -> float:
    """
    Exponential backoff with symmetric jitter.

    The base doubles with every attempt starting from `min_delay`, is capped at
    `max_delay` and never drops below `min_delay`. The result is the base moved
    by up to `jitter_ratio` of itself in either direction, clamped at zero.
    Pass `uniform` to make the jitter deterministic.
    """
    # exponent bounded so unlimited retries cannot overflow the float product
    base = min(max_delay, min_delay * (2 ** min(attempt, MAX_EXPONENT)))
    base = max(min_delay, base)
    spread = base * jitter_ratio
    return max(0.0, base + uniform(-spread, spread))
