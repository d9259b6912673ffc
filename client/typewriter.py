from __future__ import annotations

import asyncio
from typing import Callable, Dict


class TypingEngine:
    """Character-by-character reveal of a finished reply.

    Every bubble gets its own task: a chain of ``asyncio.sleep`` calls, so the
    event loop stays free between characters. Starting a bubble again, or
    calling ``cancel``/``cancel_all``, aborts whatever is still running.
    """

    def __init__(self, delay: float = 0.025):
        self.delay = delay
        self._tasks: Dict[str, asyncio.Task] = {}

    def is_active(self, bubble_id: str) -> bool:
        task = self._tasks.get(bubble_id)
        return task is not None and not task.done()

    def start(
        self,
        bubble_id: str,
        text: str,
        on_progress: Callable[[str], None],
    ) -> asyncio.Task:
        self.cancel(bubble_id)
        task = asyncio.get_running_loop().create_task(self._type(text, on_progress))
        self._tasks[bubble_id] = task
        task.add_done_callback(lambda t, key=bubble_id: self._forget(key, t))
        return task

    async def type(self, bubble_id: str, text: str, on_progress: Callable[[str], None]) -> bool:
        """Run the animation to the end; False when it was cancelled."""
        task = self.start(bubble_id, text, on_progress)
        try:
            await asyncio.shield(task)
        except asyncio.CancelledError:
            if not task.cancelled():
                # The awaiting caller itself was cancelled.
                task.cancel()
                raise
            return False
        return True

    def cancel(self, bubble_id: str) -> None:
        task = self._tasks.pop(bubble_id, None)
        if task is not None and not task.done():
            task.cancel()

    def cancel_all(self) -> None:
        for bubble_id in list(self._tasks):
            self.cancel(bubble_id)

    async def _type(self, text: str, on_progress: Callable[[str], None]) -> None:
        for i in range(1, len(text) + 1):
            on_progress(text[:i])
            if i < len(text):
                await asyncio.sleep(self.delay)

    def _forget(self, bubble_id: str, task: asyncio.Task) -> None:
        if self._tasks.get(bubble_id) is task:
            del self._tasks[bubble_id]
