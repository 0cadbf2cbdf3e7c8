"""In-process task queue with typed handlers and background worker threads.

Producers call `enqueue(message)`; consumers are registered per message type.
A handler that raises is retried (message re-queued) up to `max_attempts`,
so delivery is at-least-once and handlers must be idempotent.
"""

from __future__ import annotations

import logging
import queue
import threading
from typing import Any, Callable, Dict, List, Optional, Tuple, Type

logger = logging.getLogger(__name__)

Handler = Callable[[Any], Any]


class TaskQueue:
    def __init__(self, *, workers: int = 2, max_attempts: int = 3, maxsize: int = 0):
        self.workers = max(1, int(workers))
        self.max_attempts = max(1, int(max_attempts))
        self._queue: "queue.Queue[Optional[Tuple[Any, int]]]" = queue.Queue(maxsize=maxsize)
        self._handlers: Dict[Type, Handler] = {}
        self._threads: List[threading.Thread] = []
        self._stats_lock = threading.Lock()
        self.processed = 0
        self.failed = 0

    def register_handler(self, message_type: Type, handler: Handler) -> None:
        self._handlers[message_type] = handler

    def enqueue(self, message: Any) -> None:
        if type(message) not in self._handlers:
            raise ValueError(f"no handler registered for {type(message).__name__}")
        self._queue.put((message, 1))

    @property
    def pending(self) -> int:
        return self._queue.qsize()

    @property
    def running(self) -> bool:
        return any(t.is_alive() for t in self._threads)

    def start(self) -> None:
        if self.running:
            return
        self._threads = []
        for i in range(self.workers):
            worker = threading.Thread(target=self._worker, name=f"TaskWorker-{i}", daemon=True)
            worker.start()
            self._threads.append(worker)
        logger.info(f"Started {len(self._threads)} task worker threads")

    def join(self) -> None:
        """Block until every enqueued message (including retries) is handled."""
        self._queue.join()

    def stop(self, timeout: Optional[float] = None) -> None:
        """Finish queued work, then stop the workers."""
        if not self._threads:
            return
        self.join()
        for _ in self._threads:
            self._queue.put(None)
        for t in self._threads:
            t.join(timeout=timeout)
        self._threads = []
        logger.info(f"Task workers stopped processed={self.processed} failed={self.failed}")

    def drain(self) -> int:
        """Handle queued messages on the calling thread until the queue is empty."""
        handled = 0
        while True:
            try:
                item = self._queue.get_nowait()
            except queue.Empty:
                return handled
            try:
                if item is not None:
                    self._dispatch(*item)
                    handled += 1
            finally:
                self._queue.task_done()

    def _worker(self) -> None:
        while True:
            item = self._queue.get()
            try:
                if item is None:
                    return
                self._dispatch(*item)
            finally:
                self._queue.task_done()

    def _dispatch(self, message: Any, attempt: int) -> None:
        handler = self._handlers[type(message)]
        try:
            handler(message)
        except Exception as e:
            if attempt < self.max_attempts:
                logger.warning(f"{type(message).__name__} attempt {attempt} failed: {e}. Re-queueing")
                self._queue.put((message, attempt + 1))
                return
            logger.error(f"{type(message).__name__} failed after {attempt} attempts: {e}")
            with self._stats_lock:
                self.failed += 1
            return
        with self._stats_lock:
            self.processed += 1
