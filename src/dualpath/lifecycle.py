from typing import Awaitable, Callable, Generator
import asyncio
import contextlib
import logging
import signal
import sys
import threading
from .config import INTERRUPTED_EXIT_CODE


HANDLED_SIGNALS = {
    signal.SIGINT: "SIGINT",
    signal.SIGTERM: "SIGTERM",
}
if sys.platform == "win32":
    HANDLED_SIGNALS[signal.SIGBREAK] = "SIGBREAK"


logger = logging.getLogger(__name__)


class Lifecycle:
    """
    Runs one program's main coroutine and turns an external interrupt into
    a cancellation of whatever that coroutine is currently blocked on.
    """

    def __init__(self):
        self.should_exit = False
        self._captured_signals: list[int] = []
        self._main_task: asyncio.Task | None = None
        self._loop: asyncio.AbstractEventLoop | None = None

    def run(self, main: Callable[[], Awaitable[None]]) -> int:
        return asyncio.run(self.serve(main))

    async def serve(self, main: Callable[[], Awaitable[None]]) -> int:
        self._loop = asyncio.get_running_loop()
        self._main_task = asyncio.current_task()
        with self.capture_signals():
            try:
                await main()
            except asyncio.CancelledError:
                if not self.should_exit:
                    raise
                # the cancellation came from handle_exit; consume it
                self._main_task.uncancel()
                logger.error("Interrupted")
                return INTERRUPTED_EXIT_CODE
        return 0

    @contextlib.contextmanager
    def capture_signals(self) -> Generator[None, None, None]:
        """
        Signals can only be listened to from the main thread
        """
        if threading.current_thread() is not threading.main_thread():
            yield
            return
        original_handlers = {sig: signal.signal(sig, self.handle_exit) for sig in HANDLED_SIGNALS.keys()}
        try:
            yield
        finally:
            for sig, handler in original_handlers.items():
                signal.signal(sig, handler)

    def handle_exit(self, sig: int, frame) -> None:
        self._captured_signals.append(sig)
        logger.debug("Received %s", HANDLED_SIGNALS.get(sig, sig))
        if self.should_exit:
            return
        self.should_exit = True
        if self._main_task is not None and self._loop is not None:
            self._loop.call_soon_threadsafe(self._main_task.cancel)
