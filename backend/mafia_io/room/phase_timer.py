from __future__ import annotations

import asyncio
import logging
from abc import ABC, abstractmethod
from threading import RLock
from typing import Callable, Dict, Optional

logger = logging.getLogger(__name__)


class PhaseTimer(ABC):
    """Schedules at most one pending callback per key."""

    @abstractmethod
    def schedule(self, key: str, delay: float, callback: Callable[[], None]) -> None:
        pass

    @abstractmethod
    def cancel(self, key: str) -> None:
        pass

    @abstractmethod
    def cancel_all(self) -> None:
        pass


class NullPhaseTimer(PhaseTimer):
    def schedule(self, key: str, delay: float, callback: Callable[[], None]) -> None:
        return None

    def cancel(self, key: str) -> None:
        return None

    def cancel_all(self) -> None:
        return None


class AsyncioPhaseTimer(PhaseTimer):
    """``loop.call_later`` timers, safe to schedule from worker threads.

    Callbacks run on the event loop thread. Stale firings are tolerated by
    the caller, so a cancel racing a callback is harmless.
    """

    def __init__(self, loop: Optional[asyncio.AbstractEventLoop] = None) -> None:
        self._loop = loop
        self._handles: Dict[str, asyncio.TimerHandle] = {}
        self._lock = RLock()

    def bind_loop(self, loop: asyncio.AbstractEventLoop) -> None:
        self._loop = loop

    def schedule(self, key: str, delay: float, callback: Callable[[], None]) -> None:
        loop = self._loop
        if loop is None or loop.is_closed():
            logger.warning("[PhaseTimer] no event loop bound, timer %s dropped", key)
            return
        if self._on_loop_thread(loop):
            self._schedule_now(key, delay, callback)
        else:
            loop.call_soon_threadsafe(self._schedule_now, key, delay, callback)

    def cancel(self, key: str) -> None:
        with self._lock:
            handle = self._handles.pop(key, None)
        if handle is not None:
            handle.cancel()

    def cancel_all(self) -> None:
        with self._lock:
            handles = list(self._handles.values())
            self._handles.clear()
        for handle in handles:
            handle.cancel()

    def _schedule_now(self, key: str, delay: float, callback: Callable[[], None]) -> None:
        assert self._loop is not None
        self.cancel(key)

        def _fire() -> None:
            with self._lock:
                if self._handles.get(key) is handle:
                    del self._handles[key]
            try:
                callback()
            except Exception:  # noqa: BLE001
                logger.exception("[PhaseTimer] callback for %s failed", key)

        handle = self._loop.call_later(delay, _fire)
        with self._lock:
            self._handles[key] = handle

    @staticmethod
    def _on_loop_thread(loop: asyncio.AbstractEventLoop) -> bool:
        try:
            return asyncio.get_running_loop() is loop
        except RuntimeError:
            return False
