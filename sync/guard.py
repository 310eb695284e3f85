# © 2024–2025 Harnisch LLC. All Rights Reserved.
# Licensed exclusively for use by St. Edward Church & School (Nashville, TN).
# Unauthorized use, distribution, or modification is prohibited.

"""
Single-flight guard - at most one sync run per calendar configuration
"""
import logging
import time
from threading import Lock
from typing import Callable, Dict, Hashable, Optional, Tuple

import config

logger = logging.getLogger(__name__)


class SingleFlightGuard:
    """
    Process-wide registry of in-flight runs.

    An entry older than `timeout` seconds is treated as stale (its run is
    assumed dead) and may be taken over by a new caller. Each acquire hands
    out an owner token; only the current owner's release clears the entry.
    """

    def __init__(self, timeout: float = config.SYNC_GUARD_TIMEOUT_SECONDS,
                 clock: Callable[[], float] = time.monotonic):
        self.timeout = timeout
        self.clock = clock
        self._lock = Lock()
        self._running: Dict[Hashable, Tuple[float, object]] = {}

    def acquire(self, key: Hashable) -> Optional[object]:
        """Return an owner token, or None while another run holds the key"""
        with self._lock:
            entry = self._running.get(key)
            now = self.clock()
            if entry is not None:
                started, _ = entry
                if now - started < self.timeout:
                    return None
                logger.warning(f"Taking over stale sync entry for {key} ({now - started:.0f}s old)")
            token = object()
            self._running[key] = (now, token)
            return token

    def release(self, key: Hashable, token: object) -> bool:
        with self._lock:
            entry = self._running.get(key)
            if entry is None or entry[1] is not token:
                logger.warning(f"Ignoring release of {key} from a run that no longer owns it")
                return False
            del self._running[key]
            return True

    def is_running(self, key: Hashable) -> bool:
        with self._lock:
            entry = self._running.get(key)
            return entry is not None and self.clock() - entry[0] < self.timeout
