import time
from typing import Optional


def now_ms() -> int:
    return int(time.time() * 1000)


def next_modified(previous: Optional[int]) -> int:
    """Timestamp for a write that must sort after ``previous``.

    Wall clocks can step backwards; last_modified never does.
    """
    now = now_ms()
    if previous is None:
        return now
    return max(now, int(previous) + 1)
