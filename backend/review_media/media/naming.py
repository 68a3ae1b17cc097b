"""
Destination names for persisted review media.

Pattern: review-{millisecond timestamp}-{random int in [0, 1e9)}{original extension}

Two requests landing in the same millisecond collide with probability
about 1/1e9 per pair. Names are guessable and must not be used as secrets.
"""
import os
import random
import time
from typing import Callable, Optional

NAME_PREFIX = "review"
RANDOM_UPPER_BOUND = 1_000_000_000


def _now_ms() -> int:
    return int(time.time() * 1000)


def original_extension(original_name: Optional[str]) -> str:
    """Extension of the client-supplied name, verbatim (including the dot)."""
    if not original_name:
        return ""
    return os.path.splitext(os.path.basename(original_name))[1]


def next_name(
    original_name: Optional[str],
    clock: Callable[[], int] = _now_ms,
    rng: Optional[random.Random] = None
) -> str:
    """
    Generate a collision-resistant file name.

    The extension is taken from the original name as-is and is not checked
    against the classified media type.

    Args:
        original_name: File name as sent by the client
        clock: Millisecond clock (injectable for tests)
        rng: Random source (defaults to the module-level generator)

    Returns:
        Generated file name
    """
    suffix = (rng or random).randrange(RANDOM_UPPER_BOUND)
    return f"{NAME_PREFIX}-{clock()}-{suffix}{original_extension(original_name)}"
