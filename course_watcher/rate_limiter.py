"""
Per-domain request spacing shared by all crawl workers.
"""

import threading
import time
from typing import Dict
from urllib.parse import urlparse


class DomainRateLimiter:
    """
    Enforce a minimum delay between successive requests to the same domain.

    Each call reserves the next free slot for its domain under a lock and
    sleeps outside of it, so waiting workers do not block slot reservation
    for other domains.
    """

    def __init__(self, delay: float) -> None:
        self._delay = max(0.0, delay)
        self._lock = threading.Lock()
        self._next_slot: Dict[str, float] = {}

    @property
    def delay(self) -> float:
        return self._delay

    def wait(self, url: str) -> float:
        """
        Block until a request to the URL's domain may start.

        Returns:
            Seconds spent waiting.
        """
        domain = urlparse(url).netloc.lower()

        with self._lock:
            now = time.monotonic()
            slot = max(now, self._next_slot.get(domain, 0.0))
            self._next_slot[domain] = slot + self._delay

        wait_time = slot - now
        if wait_time > 0:
            time.sleep(wait_time)
        return wait_time
