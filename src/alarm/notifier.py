"""
Notification and vibration collaborator.

Both calls are best-effort and fire-and-forget; callers swallow failures.
"""

import logging
from abc import ABC, abstractmethod
from typing import List, Sequence, Tuple

logger = logging.getLogger(__name__)


class Notifier(ABC):
    """Platform notification / haptics boundary."""
    
    @abstractmethod
    def notify(self, title: str, body: str) -> None:
        """Show a system notification."""
    
    @abstractmethod
    def vibrate(self, pattern: Sequence[int]) -> None:
        """Vibrate with an on/off pattern in milliseconds."""


class LoggingNotifier(Notifier):
    """Notifier that logs and remembers what it was asked to do."""
    
    def __init__(self):
        self.notifications: List[Tuple[str, str]] = []
        self.vibrations: List[List[int]] = []
    
    def notify(self, title: str, body: str) -> None:
        self.notifications.append((title, body))
        logger.info(f"Notification: {title} - {body}")
    
    def vibrate(self, pattern: Sequence[int]) -> None:
        self.vibrations.append(list(pattern))
        logger.info(f"Vibrate pattern {list(pattern)} ms")
