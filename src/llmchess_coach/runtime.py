"""
CoachRuntime: one asyncio loop on a daemon thread that owns a TurnOrchestrator.

Flask handlers run on worker threads; they never touch the orchestrator directly but
marshal each call onto the loop with call(), so all match state is mutated from a
single thread.
"""
from __future__ import annotations

import asyncio
import logging
import threading
from typing import Any, Callable, Optional

from .orchestrator import TurnOrchestrator

log = logging.getLogger("runtime")


class CoachRuntime:
    def __init__(self, factory: Callable[[], TurnOrchestrator] = TurnOrchestrator, call_timeout_s: float = 30.0):
        self._factory = factory
        self.call_timeout_s = call_timeout_s
        self.loop: Optional[asyncio.AbstractEventLoop] = None
        self.coach: Optional[TurnOrchestrator] = None
        self._thread: Optional[threading.Thread] = None
        self._ready = threading.Event()

    def start(self) -> "CoachRuntime":
        if self._thread is not None:
            return self
        self._thread = threading.Thread(target=self._run, name="coach-loop", daemon=True)
        self._thread.start()
        self._ready.wait()
        log.info("Coach loop started")
        return self

    def _run(self) -> None:
        self.loop = asyncio.new_event_loop()
        asyncio.set_event_loop(self.loop)
        self.coach = self._factory()
        self._ready.set()
        self.loop.run_forever()

    def stop(self) -> None:
        if self.loop is None:
            return
        self.loop.call_soon_threadsafe(self.loop.stop)
        if self._thread is not None:
            self._thread.join(timeout=5)
        self._thread = None
        self._ready.clear()

    def call(self, fn: Callable[..., Any], *args, **kwargs) -> Any:
        """Run fn(coach, *args) on the loop thread and return its result (exceptions re-raised)."""
        self.start()

        async def _invoke():
            return fn(self.coach, *args, **kwargs)

        fut = asyncio.run_coroutine_threadsafe(_invoke(), self.loop)
        return fut.result(timeout=self.call_timeout_s)
