"""Process termination with escalation."""

import logging
import os
import signal
from collections.abc import Callable
from enum import Enum

logger = logging.getLogger(__name__)


class TerminationResult(Enum):
    """Which signal the controller ended up sending."""

    TERMINATED = "terminated"  # SIGTERM delivered
    ESCALATED = "escalated"  # SIGTERM failed, SIGKILL attempted


class ProcessController:
    """
    Sends termination signals to processes.

    No ownership policy is enforced here; callers decide which processes
    may be terminated.
    """

    def __init__(
        self,
        send_signal: Callable[[int, int], None] = os.kill,
        on_terminated: Callable[[], None] | None = None,
    ) -> None:
        """
        Initialize the ProcessController.

        Args:
            send_signal: Function with the signature of ``os.kill``.
            on_terminated: Called after every termination attempt, used to
                trigger an immediate re-collection.
        """
        self._send_signal = send_signal
        self._on_terminated = on_terminated

    def terminate(self, pid: int) -> TerminationResult:
        """
        Ask ``pid`` to exit, escalating to SIGKILL if SIGTERM fails.

        Does not wait for the process to actually exit.
        """
        try:
            self._send_signal(pid, signal.SIGTERM)
            result = TerminationResult.TERMINATED
            logger.info("sent SIGTERM to pid %d", pid)
        except OSError as exc:
            logger.info("SIGTERM to pid %d failed (%s), sending SIGKILL", pid, exc)
            try:
                self._send_signal(pid, signal.SIGKILL)
            except OSError as kill_exc:
                logger.debug("SIGKILL to pid %d failed: %s", pid, kill_exc)
            result = TerminationResult.ESCALATED

        if self._on_terminated is not None:
            self._on_terminated()
        return result
