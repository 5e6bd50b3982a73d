"""Deferred callbacks standing in for reader and modem latency.

Every container takes its clock and its timers from a scheduler so the
simulation can run on real threads in the server and on virtual time in tests.
"""
import datetime
import heapq
import itertools
import logging
import threading
from typing import Callable, List, Optional

logger = logging.getLogger(__name__)


class ScheduledTask:
    """Handle for a pending callback."""

    def __init__(self, scheduler, callback, args, due, interval=None):
        self._scheduler = scheduler
        self.callback = callback
        self.args = args
        self.due = due
        self.interval = interval
        self.cancelled = False
        self.timer = None

    def cancel(self):
        if self.cancelled:
            return
        self.cancelled = True
        self._scheduler._discard(self)

    def run(self):
        if self.cancelled:
            return
        try:
            self.callback(*self.args)
        except Exception:
            logger.exception('Scheduled callback %r failed', self.callback)


class Scheduler:
    def now(self) -> datetime.datetime:
        raise NotImplementedError

    def call_later(self, delay: float, callback: Callable, *args) -> ScheduledTask:
        raise NotImplementedError

    def call_every(self, interval: float, callback: Callable, *args) -> ScheduledTask:
        raise NotImplementedError

    def shutdown(self):
        raise NotImplementedError

    def _discard(self, task):
        pass


class ThreadingScheduler(Scheduler):
    """Runs callbacks on daemon ``threading.Timer`` threads."""

    def __init__(self):
        self._lock = threading.Lock()
        self._tasks = set()
        self._closed = False

    def now(self):
        return datetime.datetime.now()

    def call_later(self, delay, callback, *args):
        task = ScheduledTask(self, callback, args, self.now() + datetime.timedelta(seconds=delay))
        self._arm(task, delay)
        return task

    def call_every(self, interval, callback, *args):
        task = ScheduledTask(self, callback, args, self.now() + datetime.timedelta(seconds=interval),
                             interval=interval)
        self._arm(task, interval)
        return task

    def _arm(self, task, delay):
        with self._lock:
            if self._closed or task.cancelled:
                return
            timer = threading.Timer(delay, self._fire, args=(task,))
            timer.daemon = True
            task.timer = timer
            self._tasks.add(task)
            timer.start()

    def _fire(self, task):
        with self._lock:
            self._tasks.discard(task)
        task.run()
        if task.interval is not None and not task.cancelled:
            task.due = self.now() + datetime.timedelta(seconds=task.interval)
            self._arm(task, task.interval)

    def _discard(self, task):
        with self._lock:
            self._tasks.discard(task)
        if task.timer is not None:
            task.timer.cancel()

    def shutdown(self):
        with self._lock:
            self._closed = True
            tasks = list(self._tasks)
            self._tasks.clear()
        for task in tasks:
            task.cancelled = True
            if task.timer is not None:
                task.timer.cancel()


class ManualScheduler(Scheduler):
    """Virtual clock; callbacks only run when ``advance`` is called."""

    def __init__(self, start: Optional[datetime.datetime] = None):
        self._now = start or datetime.datetime(2024, 9, 2, 8, 0)
        self._queue: List = []
        self._counter = itertools.count()

    def now(self):
        return self._now

    def set_time(self, when: datetime.datetime):
        if when < self._now:
            raise ValueError('Virtual time cannot move backwards')
        self.advance((when - self._now).total_seconds())

    def call_later(self, delay, callback, *args):
        task = ScheduledTask(self, callback, args, self._now + datetime.timedelta(seconds=delay))
        self._push(task)
        return task

    def call_every(self, interval, callback, *args):
        if interval <= 0:
            raise ValueError('interval must be positive')
        task = ScheduledTask(self, callback, args, self._now + datetime.timedelta(seconds=interval),
                             interval=interval)
        self._push(task)
        return task

    def _push(self, task):
        heapq.heappush(self._queue, (task.due, next(self._counter), task))

    @property
    def pending(self):
        return [task for _, _, task in self._queue if not task.cancelled]

    def advance(self, seconds: float = 0):
        """Move the clock forward, running every callback that falls due."""
        target = self._now + datetime.timedelta(seconds=seconds)
        while self._queue and self._queue[0][0] <= target:
            due, _, task = heapq.heappop(self._queue)
            if task.cancelled:
                continue
            self._now = max(self._now, due)
            task.run()
            if task.interval is not None and not task.cancelled:
                task.due = due + datetime.timedelta(seconds=task.interval)
                self._push(task)
        self._now = target

    def shutdown(self):
        for _, _, task in self._queue:
            task.cancelled = True
        self._queue.clear()
