"""Published monitor state shared with the presentation layer."""

import logging
import os
from collections.abc import Callable
from queue import Empty, Queue

from proctree.collector import SnapshotCollector
from proctree.config import MonitorConfig
from proctree.errors import CollectionError
from proctree.lifecycle import ProcessController, TerminationResult
from proctree.models import ProcessRecord, ProcessTree
from proctree.monitor import CollectionResult, ProcessMonitor
from proctree.search import ViewMode, filter_entries
from proctree.sorting import SortKey, sort_tree
from proctree.tree import build_tree

logger = logging.getLogger(__name__)


class ProcessExplorer:
    """
    Owner of the published snapshot and the operator's view settings.

    Single-writer: only the consumer thread (the one calling
    ``apply_updates`` and the setters) mutates this object. The monitor
    thread communicates exclusively through the result queue, and a new
    snapshot is published by swapping the ``tree`` reference, so readers
    never observe a partially built tree.
    """

    def __init__(
        self,
        config: MonitorConfig | None = None,
        collector: SnapshotCollector | None = None,
        send_signal: Callable[[int, int], None] = os.kill,
    ) -> None:
        self.config = config if config is not None else MonitorConfig()
        self._queue: Queue[CollectionResult] = Queue()
        self.monitor = ProcessMonitor(
            self._queue,
            collector=collector,
            poll_rate=self.config.refresh_interval,
        )
        self.controller = ProcessController(
            send_signal=send_signal,
            on_terminated=self.monitor.request_refresh,
        )

        self.tree: ProcessTree = ProcessTree.empty()
        self.view_mode: ViewMode = self.config.view_mode
        self.sort_key: SortKey = self.config.sort_key
        self.search_text: str = ""
        self.selected_pid: int | None = None
        self.last_error: CollectionError | None = None
        self.refresh_count: int = 0
        self._loading = False

    # Lifecycle

    def start(self) -> None:
        """Start periodic collection; the first one runs immediately."""
        self._loading = not self.tree
        self.monitor.start()

    def stop(self) -> None:
        """Stop collecting. Results still in flight are discarded."""
        self.monitor.stop()
        self._loading = False

    def refresh(self) -> None:
        """Request an out-of-band collection."""
        if not self.tree and self.monitor.is_running:
            self._loading = True
        self.monitor.request_refresh()

    @property
    def is_loading(self) -> bool:
        """
        Busy while a collection runs against an empty snapshot.

        Stays set until that collection's result has been applied, so the
        flag never drops before the data is published.
        """
        if self.tree:
            return False
        return self._loading or self.monitor.is_collecting

    def apply_updates(self) -> bool:
        """
        Drain pending results and publish the newest good snapshot.

        A failed collection keeps the previous snapshot and is recorded in
        ``last_error``. Returns True if a new snapshot was published.
        """
        if not self.tree and self.monitor.is_collecting:
            self._loading = True

        latest: CollectionResult | None = None
        while True:
            try:
                result = self._queue.get_nowait()
            except Empty:
                break

            if self.monitor.is_stopped or result.generation != self.monitor.generation:
                logger.debug("dropping stale collection result")
                continue
            self._loading = False
            if result.ok:
                latest = result
                self.last_error = None
            else:
                self.last_error = result.error
                logger.warning("keeping previous snapshot: %s", result.error)

        if latest is None or latest.records is None:
            return False

        self.tree = build_tree(
            latest.records,
            sort_key=self.sort_key,
            fallback_limit=self.config.fallback_root_limit,
        )
        self.refresh_count += 1
        return True

    # View settings

    def set_sort_key(self, key: SortKey) -> None:
        if key is self.sort_key:
            return
        self.sort_key = key
        self.tree = sort_tree(self.tree, key)

    def cycle_sort(self) -> SortKey:
        """Switch to the next sort criterion and return it."""
        self.set_sort_key(self.sort_key.next())
        return self.sort_key

    def set_view_mode(self, mode: ViewMode) -> None:
        self.view_mode = mode

    def toggle_view_mode(self) -> ViewMode:
        self.view_mode = self.view_mode.toggle()
        return self.view_mode

    def set_search_text(self, text: str) -> None:
        self.search_text = text

    def visible_entries(self) -> list[ProcessRecord]:
        """Top-level entries for the current view mode and search text."""
        return filter_entries(self.tree, self.search_text, self.view_mode)

    # Selection

    def select(self, pid: int | None) -> None:
        self.selected_pid = pid

    @property
    def selected(self) -> ProcessRecord | None:
        """The selected process, if it is still in the current snapshot."""
        if self.selected_pid is None:
            return None
        return self.tree.get(self.selected_pid)

    @property
    def display_record(self) -> ProcessRecord | None:
        """The selected process, or the first visible entry."""
        selected = self.selected
        if selected is not None:
            return selected
        entries = self.visible_entries()
        return entries[0] if entries else None

    # Termination

    @staticmethod
    def can_terminate(record: ProcessRecord) -> bool:
        """Processes owned by root are never offered for termination."""
        return not record.is_root_owned

    def request_termination(self, pid: int) -> TerminationResult | None:
        """
        Terminate ``pid`` if policy allows it.

        Returns None without signalling when the pid is not in the current
        snapshot or the process is owned by root.
        """
        record = self.tree.get(pid)
        if record is None:
            logger.info("refusing to terminate unknown pid %d", pid)
            return None
        if not self.can_terminate(record):
            logger.warning("refusing to terminate root-owned process %s (%d)", record.name, pid)
            return None
        return self.controller.terminate(pid)
