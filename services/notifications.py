import logging
import threading
import uuid
from typing import List, Optional

from models import Toast

logger = logging.getLogger(__name__)

TOAST_TYPES = ('success', 'error', 'warning', 'info')


class NotificationBus:
    """Transient messages shown as banners; each one expires on its own."""

    def __init__(self, scheduler, default_duration: float = 5.0):
        self.scheduler = scheduler
        self.default_duration = default_duration
        self._toasts: List[Toast] = []
        self._expiry = {}
        self._lock = threading.RLock()

    def push(self, type: str, title: str, message: str, duration: Optional[float] = None) -> Toast:
        if type not in TOAST_TYPES:
            raise ValueError(f'Unknown notification type: {type}')
        duration = self.default_duration if duration is None else duration
        toast = Toast(
            id=uuid.uuid4().hex,
            type=type,
            title=title,
            message=message,
            duration=duration,
            created_at=self.scheduler.now(),
        )
        with self._lock:
            self._toasts.append(toast)
            if duration and duration > 0:
                self._expiry[toast.id] = self.scheduler.call_later(duration, self.dismiss, toast.id)
        log = logger.warning if type in ('error', 'warning') else logger.info
        log('%s: %s', title, message)
        return toast

    def success(self, title, message, duration=None):
        return self.push('success', title, message, duration)

    def error(self, title, message, duration=None):
        return self.push('error', title, message, duration)

    def warning(self, title, message, duration=None):
        return self.push('warning', title, message, duration)

    def info(self, title, message, duration=None):
        return self.push('info', title, message, duration)

    def dismiss(self, toast_id: str) -> bool:
        with self._lock:
            task = self._expiry.pop(toast_id, None)
            if task is not None:
                task.cancel()
            remaining = [t for t in self._toasts if t.id != toast_id]
            removed = len(remaining) != len(self._toasts)
            self._toasts = remaining
        return removed

    def active(self) -> List[Toast]:
        with self._lock:
            return list(self._toasts)

    def clear(self):
        with self._lock:
            for task in self._expiry.values():
                task.cancel()
            self._expiry.clear()
            self._toasts = []

    def __len__(self):
        return len(self._toasts)
