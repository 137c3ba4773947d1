from __future__ import annotations

import logging
from typing import Callable

from ..errors import DeviceTimeout

logger = logging.getLogger(__name__)


def wait_until(
    ready: Callable[[], bool],
    *,
    what: str,
    sleep: Callable[[float], None],
    interval_s: float = 0.1,
    attempts: int = 40,
) -> int:
    """Block until ``ready()`` is true, checking every ``interval_s`` seconds.

    Returns the number of sleeps it took. Raises DeviceTimeout once ``attempts``
    sleeps have passed without success; the caller must not retry.
    """

    if attempts < 1:
        raise ValueError("attempts must be >= 1")

    waited = 0
    while not ready():
        if waited >= attempts:
            raise DeviceTimeout(what, waited * interval_s)
        sleep(interval_s)
        waited += 1

    if waited:
        logger.debug("%s ready after %d polls", what, waited)
    return waited
