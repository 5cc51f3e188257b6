import logging
import time
from collections import deque
from dataclasses import dataclass, asdict
from typing import Deque, Dict, List, Optional
from shared.config import settings

logger = logging.getLogger(__name__)

@dataclass
class Toast:
    level: str
    message: str
    ts: int

class Notifier:
    """Fire-and-forget transient messages; nothing is awaited or returned to the caller."""

    def __init__(self, history: Optional[int] = None):
        self._recent: Deque[Toast] = deque(maxlen=history or settings.notification_history)

    def _push(self, level: str, message: str) -> None:
        self._recent.append(Toast(level=level, message=message, ts=int(time.time() * 1000)))

    def success(self, message: str) -> None:
        logger.info(f"toast success: {message}")
        self._push("success", message)

    def warning(self, message: str) -> None:
        logger.warning(f"toast warning: {message}")
        self._push("warning", message)

    def error(self, message: str) -> None:
        logger.error(f"toast error: {message}")
        self._push("error", message)

    def recent(self, limit: int = 20) -> List[Dict]:
        return [asdict(t) for t in list(self._recent)[-limit:]]

    def clear(self) -> None:
        self._recent.clear()

notifier = Notifier()
