import logging
import time
from typing import Callable, List

from pydantic import BaseModel

log = logging.getLogger(__name__)

LEVELS = ("info", "success", "error")


class Notice(BaseModel):
    message: str
    level: str = "success"
    expires_at: float


class Notifier:
    """Transient user-visible notices, dismissed after `ttl` seconds."""

    def __init__(self, ttl: float = 3.0, clock: Callable[[], float] = time.monotonic):
        self.ttl = ttl
        self.clock = clock
        self._notices: List[Notice] = []

    def notify(self, message: str, level: str = "success") -> Notice:
        if level not in LEVELS:
            raise ValueError(f"Unknown notice level: {level}")
        log.log(logging.ERROR if level == "error" else logging.INFO, "[%s] %s", level, message)
        now = self.clock()
        self._prune(now)
        notice = Notice(message=message, level=level, expires_at=now + self.ttl)
        self._notices.append(notice)
        return notice

    def error(self, message: str) -> Notice:
        return self.notify(message, "error")

    def info(self, message: str) -> Notice:
        return self.notify(message, "info")

    def _prune(self, now: float):
        self._notices = [n for n in self._notices if n.expires_at > now]

    def active(self) -> List[Notice]:
        self._prune(self.clock())
        return list(self._notices)
