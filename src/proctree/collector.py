"""Process-table acquisition for proctree."""

import logging
import pwd

import psutil

from proctree.errors import CollectionError
from proctree.models import UNKNOWN_UID, ProcessRecord, RawProcess

logger = logging.getLogger(__name__)

# Attributes fetched for every process in one pass
PROCESS_ATTRS = ["pid", "ppid", "name", "uids", "exe"]


class SnapshotCollector:
    """
    Reads the full OS process table through psutil.

    Collection is a blocking call and is meant to run off the consumer
    thread (see ProcessMonitor). Per-process lookup failures degrade to
    placeholder values; only a failure of the enumeration itself raises.
    """

    def __init__(self) -> None:
        self._user_names: dict[int, str] = {}

    def collect(self) -> list[RawProcess]:
        """
        Collect one raw row per live process.

        Raises:
            CollectionError: If the process table could not be enumerated.
        """
        rows: list[RawProcess] = []
        try:
            for proc in psutil.process_iter(attrs=PROCESS_ATTRS, ad_value=None):
                try:
                    rows.append(self._read_process(proc))
                except (psutil.NoSuchProcess, psutil.ZombieProcess):
                    # Exited between enumeration and read
                    continue
        except (psutil.Error, OSError) as exc:
            raise CollectionError(f"process table query failed: {exc}") from exc
        return rows

    def _read_process(self, proc: psutil.Process) -> RawProcess:
        info = proc.info
        uids = info.get("uids")
        uid = uids.real if uids is not None else UNKNOWN_UID
        if uids is None:
            logger.debug("uid unavailable for pid %s", info.get("pid"))
        return RawProcess(
            pid=info["pid"],
            ppid=info.get("ppid") or 0,
            name=info.get("name") or "",
            uid=uid,
            path=info.get("exe") or "",
        )

    def resolve_username(self, uid: int) -> str:
        """Map a uid to a user name, falling back to the uid itself."""
        if uid < 0:
            return "?"
        name = self._user_names.get(uid)
        if name is None:
            try:
                name = pwd.getpwuid(uid).pw_name
            except KeyError:
                name = str(uid)
            self._user_names[uid] = name
        return name

    def to_records(self, rows: list[RawProcess]) -> list[ProcessRecord]:
        """Convert raw rows into records, resolving owner names."""
        return [
            ProcessRecord(
                pid=row.pid,
                ppid=row.ppid,
                name=row.name,
                username=self.resolve_username(row.uid),
                uid=row.uid,
                path=row.path,
                cpu_usage=0.0,
            )
            for row in rows
        ]

    def snapshot(self) -> list[ProcessRecord]:
        """Collect the process table and resolve it into records."""
        return self.to_records(self.collect())
