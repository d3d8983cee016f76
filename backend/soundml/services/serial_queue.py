"""Per-analyzer serial execution context."""
import queue
import threading
from typing import Any, Callable, Optional
from soundml.core.logging import logger

_STOP = object()


class SerialQueue:
    """
    A dedicated worker thread draining a FIFO of work items.

    Work runs strictly one item at a time in submission order, so everything
    executed on the queue shares a single logical thread. There is no
    backpressure: submit() never blocks and the backlog is unbounded.
    """

    def __init__(self, name: str):
        """
        Start the worker.

        Args:
            name: Thread name, used in logs
        """
        self.name = name
        self._queue: "queue.Queue[Any]" = queue.Queue()
        self._closed = False
        self._lock = threading.Lock()
        self._thread = threading.Thread(target=self._run, name=name, daemon=True)
        self._thread.start()

    def submit(self, fn: Callable[..., None], *args: Any) -> bool:
        """
        Enqueue a call to run on the worker.

        Returns:
            False if the queue is closed and the work was dropped
        """
        with self._lock:
            if self._closed:
                return False
            self._queue.put((fn, args))
            return True

    def is_current(self) -> bool:
        """True when called from this queue's worker thread."""
        return threading.get_ident() == self._thread.ident

    def join(self, timeout: Optional[float] = None) -> bool:
        """
        Wait until every item submitted before this call has run.

        Args:
            timeout: Seconds to wait, None for no limit

        Returns:
            True if the backlog drained in time
        """
        if self.is_current():
            raise RuntimeError(f"Cannot join serial queue {self.name} from its own worker")
        done = threading.Event()
        if not self.submit(done.set):
            self._thread.join(timeout)
            return not self._thread.is_alive()
        return done.wait(timeout)

    def close(self, timeout: Optional[float] = None) -> None:
        """
        Stop accepting work, let the backlog finish, and stop the worker.

        Args:
            timeout: Seconds to wait for the worker, None for no limit
        """
        with self._lock:
            if self._closed:
                return
            self._closed = True
            self._queue.put(_STOP)
        if not self.is_current():
            self._thread.join(timeout)

    @property
    def closed(self) -> bool:
        return self._closed

    def _run(self) -> None:
        while True:
            item = self._queue.get()
            if item is _STOP:
                break
            fn, args = item
            try:
                fn(*args)
            except Exception as e:
                logger.error(f"Unhandled error on serial queue {self.name}: {e}", exc_info=True)
        logger.debug(f"Serial queue {self.name} stopped")
