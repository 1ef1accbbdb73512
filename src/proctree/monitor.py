"""Background collection loop for proctree."""

import logging
import threading
from dataclasses import dataclass
from queue import Queue

from proctree.collector import SnapshotCollector
from proctree.errors import CollectionError
from proctree.models import ProcessRecord

logger = logging.getLogger(__name__)

DEFAULT_POLL_RATE = 3.0
MIN_POLL_RATE = 0.1


@dataclass(slots=True)
class CollectionResult:
    """Outcome of one collection cycle, passed to the consumer thread."""

    generation: int
    records: list[ProcessRecord] | None = None
    error: CollectionError | None = None

    @property
    def ok(self) -> bool:
        return self.error is None


class ProcessMonitor:
    """
    Periodically collects the process table in a daemon thread.

    Results are pushed to a thread-safe Queue; building and publishing the
    tree is left to the consumer. A single worker thread runs collections
    back to back, so at most one is ever in flight. Refresh requests made
    while a collection runs coalesce into one follow-up collection.
    """

    def __init__(
        self,
        update_queue: Queue[CollectionResult],
        collector: SnapshotCollector | None = None,
        poll_rate: float = DEFAULT_POLL_RATE,
    ) -> None:
        """
        Initialize the ProcessMonitor.

        Args:
            update_queue: Thread-safe queue to push results to.
            collector: Source of process records. Defaults to psutil.
            poll_rate: Seconds between collections. Default 3.0s.
        """
        self._queue = update_queue
        self._collector = collector if collector is not None else SnapshotCollector()
        self._poll_rate = max(MIN_POLL_RATE, poll_rate)
        self._stop_event = threading.Event()
        self._wake_event = threading.Event()
        self._thread: threading.Thread | None = None
        self._generation = 0
        self._collecting = False

    @property
    def poll_rate(self) -> float:
        """Get the current poll rate."""
        return self._poll_rate

    @poll_rate.setter
    def poll_rate(self, value: float) -> None:
        """Set the poll rate."""
        self._poll_rate = max(MIN_POLL_RATE, value)

    @property
    def is_running(self) -> bool:
        """Check if the monitor thread is running."""
        return self._thread is not None and self._thread.is_alive()

    @property
    def is_stopped(self) -> bool:
        return self._stop_event.is_set()

    @property
    def is_collecting(self) -> bool:
        """True while a collection is in flight."""
        return self._collecting

    @property
    def generation(self) -> int:
        """Incremented on every start; results from older runs are stale."""
        return self._generation

    def start(self) -> None:
        """Start the monitoring thread and trigger an immediate collection."""
        if self.is_running:
            return

        self._generation += 1
        self._stop_event = threading.Event()
        self._wake_event = threading.Event()
        self._thread = threading.Thread(
            target=self._poll_loop,
            args=(self._generation, self._stop_event, self._wake_event),
            daemon=True,
            name="ProcessMonitor",
        )
        self._thread.start()
        logger.debug("process monitor started (generation %d)", self._generation)

    def stop(self, timeout: float | None = 5.0) -> None:
        """
        Stop the monitoring thread.

        An in-flight collection is not interrupted, but its result is
        dropped or marked stale.

        Args:
            timeout: How long to wait for thread to stop (seconds).
        """
        self._stop_event.set()
        self._wake_event.set()
        if self._thread is not None:
            self._thread.join(timeout=timeout)
            if self._thread.is_alive():
                logger.warning("process monitor did not stop within %s seconds", timeout)
            self._thread = None
        logger.debug("process monitor stopped")

    def request_refresh(self) -> None:
        """Collect again as soon as the current collection (if any) finishes."""
        self._wake_event.set()

    def collect_once(self, generation: int | None = None) -> CollectionResult:
        """Run a single collection on the calling thread."""
        if generation is None:
            generation = self._generation
        self._collecting = True
        try:
            records = self._collector.snapshot()
        except CollectionError as exc:
            logger.warning("process collection failed: %s", exc)
            return CollectionResult(generation=generation, error=exc)
        except Exception as exc:
            logger.exception("unexpected error during process collection")
            error = CollectionError(f"unexpected collection error: {exc}")
            return CollectionResult(generation=generation, error=error)
        finally:
            self._collecting = False
        return CollectionResult(generation=generation, records=records)

    def _poll_loop(
        self,
        generation: int,
        stop_event: threading.Event,
        wake_event: threading.Event,
    ) -> None:
        """Main polling loop running in the background thread."""
        while not stop_event.is_set():
            wake_event.clear()
            result = self.collect_once(generation)

            if stop_event.is_set():
                logger.debug("discarding collection finished after stop")
                break
            self._queue.put(result)

            # Wait for poll_rate seconds, a refresh request or a stop
            wake_event.wait(timeout=self._poll_rate)
