"""
Hands out one browser session handle per worker thread.

The factory is owned by the test run (created in pytest_configure and closed
in pytest_unconfigure). Each thread binds itself with
instantiate_driver_object(); its WebDriverThread is created and registered in
the pool on first access. close_driver_objects() must only run once no thread
is using its handle any more.
"""
from __future__ import annotations

import logging
import threading

from .WebDriverThread import WebDriverThread


logger = logging.getLogger(__name__)
logger.propagate = True


class DriverNotInitializedError(RuntimeError):
    """Raised when a thread accesses its driver before instantiate_driver_object()."""


class DriverFactory:
    def __init__(self, handle_factory=WebDriverThread):
        self._handle_factory = handle_factory
        self._pool: list[WebDriverThread] = []
        self._pool_lock = threading.Lock()
        self._local = threading.local()

    @property
    def pool(self) -> list[WebDriverThread]:
        with self._pool_lock:
            return list(self._pool)

    def _register(self, handle: WebDriverThread) -> None:
        with self._pool_lock:
            self._pool.append(handle)

    def instantiate_driver_object(self) -> None:
        """
        Bind the calling thread so its next access creates a new handle.

        A handle already created on this thread is closed before the binding
        is replaced; it stays in the pool.
        """
        previous = getattr(self._local, "handle", None)
        if previous is not None:
            logger.info(
                f"Re-initializing driver of thread {threading.current_thread().name}, "
                "closing the previous session"
            )
            previous.quit_driver()
        self._local.initialized = True
        self._local.handle = None

    def current_thread(self) -> WebDriverThread:
        if not getattr(self._local, "initialized", False):
            raise DriverNotInitializedError(
                f"Driver not initialized for thread {threading.current_thread().name}; "
                "call instantiate_driver_object() first"
            )
        if self._local.handle is None:
            handle = self._handle_factory()
            self._register(handle)
            self._local.handle = handle
        return self._local.handle

    def active_thread(self) -> WebDriverThread | None:
        """The calling thread's handle if it has been created, without creating one."""
        return getattr(self._local, "handle", None)

    def get_driver(self):
        return self.current_thread().get_driver()

    def get_proxy_enabled_driver(self):
        return self.current_thread().get_proxy_enabled_driver()

    def get_proxy(self):
        return self.current_thread().get_proxy()

    def quit_driver(self) -> None:
        """Delete all cookies in the current thread's browser session."""
        self.get_driver().delete_all_cookies()

    def close_driver_objects(self) -> None:
        """Close every registered session, including those of finished threads."""
        handles = self.pool
        for handle in handles:
            handle.quit_driver()
        if handles:
            logger.info(f"Closed {len(handles)} browser session(s)")
