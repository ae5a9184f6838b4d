import logging
import threading
from typing import Callable, Optional

logger = logging.getLogger(__name__)


class Poller:
    """
    Calls `tick` every `interval` seconds on a daemon thread until stopped.

    Once `stop()` returns no further tick will start. Calling `stop()` from
    inside a tick is allowed; the loop exits when that tick returns. Each
    start gets its own stop event, so a restart never revives a thread that
    was told to stop.
    """

    def __init__(self, tick: Callable[[], object], interval: float, name: str = "duel-sync-poller"):
        self.tick = tick
        self.interval = interval
        self.name = name
        self.stop_event = threading.Event()
        self.thread: Optional[threading.Thread] = None

    @property
    def running(self) -> bool:
        return self.thread is not None and self.thread.is_alive() and not self.stop_event.is_set()

    def start(self):
        if self.running:
            return
        self.stop_event = threading.Event()
        self.thread = threading.Thread(target=self._run, args=(self.stop_event,), name=self.name, daemon=True)
        self.thread.start()

    def stop(self, timeout: Optional[float] = None):
        self.stop_event.set()
        thread = self.thread
        if thread and thread.is_alive() and thread is not threading.current_thread():
            thread.join(timeout=timeout)

    def _run(self, stop_event: threading.Event):
        while not stop_event.wait(self.interval):
            try:
                self.tick()
            except Exception:
                logger.exception("Poll tick failed; will retry on the next interval.")
