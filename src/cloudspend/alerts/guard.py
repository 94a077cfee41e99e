"""Cooldown guard that keeps repeated checks from re-sending the same alert"""

import threading
from datetime import datetime, timedelta
from typing import Dict, Optional


class AlertGuard:
    """Remembers when each alert key last fired"""

    def __init__(self, cooldown: timedelta = timedelta(hours=24)):
        self.cooldown = cooldown
        self._last_fired: Dict[str, datetime] = {}
        self._lock = threading.Lock()

    def should_fire(self, key: str, now: datetime) -> bool:
        """True when the key never fired or its cooldown has elapsed"""
        with self._lock:
            last = self._last_fired.get(key)
            return last is None or now - last > self.cooldown

    def record(self, key: str, now: datetime):
        with self._lock:
            self._last_fired[key] = now

    def try_acquire(self, key: str, now: datetime) -> bool:
        """Check and record in one step"""
        with self._lock:
            last = self._last_fired.get(key)
            if last is not None and now - last <= self.cooldown:
                return False
            self._last_fired[key] = now
            return True

    def last_fired(self, key: str) -> Optional[datetime]:
        with self._lock:
            return self._last_fired.get(key)

    def reset(self, key: Optional[str] = None):
        with self._lock:
            if key is None:
                self._last_fired.clear()
            else:
                self._last_fired.pop(key, None)
