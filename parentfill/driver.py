"""
Backfill driver for rev_parent_id.

Walks the revision id range in fixed-size windows, resolves the parent of
every unpopulated revision, writes it back and waits for replicas after each
window. A completion marker makes finished runs no-ops.

Rows are written one at a time and every write is idempotent, so an aborted
run is recovered by running again from the start: populated rows are skipped.
"""

from typing import Optional

from .errors import BackfillError
from .logger import StructuredLogger, ConsoleReporter, get_logger
from .partition import iter_windows
from .resolver import resolve_parent
from .schema import (
    DEFAULT_BATCH_SIZE,
    DEFAULT_UPDATE_KEY,
    NO_PARENT,
    BackfillResult,
    Row,
    RunStatus,
)

SKIPPED_MESSAGE = "rev_parent_id column of revision table already populated."


def _is_change(stored: Optional[int], value: int) -> bool:
    # An unset column receiving the sentinel does not count as a change.
    if stored is None:
        return value != NO_PARENT
    return stored != value


class BackfillDriver:
    """
    Orchestrates one backfill over a row store.

    Collaborators are duck-typed:
    - store: check_available, min_id, max_id, count_unresolved, select_unresolved,
      select_window, select_group_context, write_parent
    - markers: is_set(key), set(key)
    - barrier: wait_for_catch_up()
    - reporter: emit(message)
    """

    def __init__(
        self,
        store,
        markers,
        barrier,
        reporter=None,
        update_key: str = DEFAULT_UPDATE_KEY,
        chunk_size: int = DEFAULT_BATCH_SIZE,
        logger: Optional[StructuredLogger] = None,
    ):
        self.store = store
        self.markers = markers
        self.barrier = barrier
        self.logger = logger if logger is not None else get_logger()
        self.reporter = reporter if reporter is not None else ConsoleReporter(logger=self.logger)
        self.update_key = update_key
        self.chunk_size = chunk_size
        self.state = RunStatus.NOT_STARTED

    def run(
        self,
        chunk_size: Optional[int] = None,
        force: bool = False,
        recompute: bool = False,
        start: Optional[int] = None,
    ) -> BackfillResult:
        """
        Populate rev_parent_id for every revision that lacks it.

        Args:
            chunk_size: Ids per window (default: the driver's chunk_size)
            force: Run even if the completion marker is already set
            recompute: Re-derive populated rows too, counting drift in changed
            start: Resume cursor; ids below it are not visited, and the
                marker is only set if none of them are still unpopulated

        Returns:
            BackfillResult with final status and counts

        Raises:
            SourceUnavailable: The revision table is missing or unreadable
            WriteFailure: A row or the completion marker could not be written
            ReplicationTimeout: The barrier gave up waiting (bounded barriers only)
        """
        size = self.chunk_size if chunk_size is None else chunk_size
        if size <= 0:
            raise ValueError(f"chunk_size must be positive, got {size}")

        if not force and self.markers.is_set(self.update_key):
            self.reporter.emit(SKIPPED_MESSAGE)
            self.logger.info("Update already applied", key=self.update_key)
            self.state = RunStatus.ALREADY_DONE
            return BackfillResult(status=RunStatus.ALREADY_DONE)

        self.state = RunStatus.RUNNING
        try:
            result = self._populate(size, recompute, start)
            # Rows below the start cursor are not visited.
            leftover = self.store.count_unresolved() if start is not None else 0
        except BackfillError as e:
            self.logger.record_error(type(e).__name__)
            self.logger.error("Backfill aborted", key=self.update_key, error=str(e))
            raise

        if leftover:
            self.reporter.emit(f"...{leftover} rows still unpopulated, not marking {self.update_key!r} as done.")
            self.logger.warning("Completion marker not set", key=self.update_key, unresolved=leftover, start=start)
        else:
            self.markers.set(self.update_key)
        self.state = result.status
        self.logger.info(
            "Backfill finished",
            key=self.update_key,
            status=result.status.value,
            count=result.count,
            changed=result.changed,
            windows=result.windows,
        )
        return result

    def _populate(self, size: int, recompute: bool, start: Optional[int]) -> BackfillResult:
        self.store.check_available()
        self.reporter.emit("Populating rev_parent_id column")

        lo = self.store.min_id()
        hi = self.store.max_id()
        if lo is None or hi is None:
            self.reporter.emit("...revision table seems to be empty, nothing to do.")
            return BackfillResult(status=RunStatus.SKIPPED_EMPTY)
        if lo <= NO_PARENT:
            raise BackfillError(
                f"rev_id {lo} collides with the no-parent sentinel {NO_PARENT}; ids must be positive"
            )

        count = 0
        changed = 0
        windows = 0
        for window in iter_windows(lo, hi, size, start=start):
            self.reporter.emit(f"...doing rev_id from {window.start} to {window.end}")
            if recompute:
                rows = self.store.select_window(window)
            else:
                rows = self.store.select_unresolved(window)

            window_changed = 0
            for row in rows:
                value = self._derive(row)
                if _is_change(row.derived_parent, value):
                    window_changed += 1
                self.store.write_parent(row.id, value)

            count += len(rows)
            changed += window_changed
            windows += 1
            self.logger.record_window(len(rows), window_changed)
            self.logger.debug(
                "Window done",
                start=window.start,
                end=window.end,
                rows=len(rows),
                changed=window_changed,
            )

            self.barrier.wait_for_catch_up()
            self.logger.record_barrier_wait()

        self.reporter.emit(f"rev_parent_id population complete ... {count} rows [{changed} changed]")
        return BackfillResult(status=RunStatus.COMPLETED, count=count, changed=changed, windows=windows)

    def _derive(self, row: Row) -> int:
        context = self.store.select_group_context(row.group_key, row.id, row.timestamp)
        parent = resolve_parent(row, context)
        return NO_PARENT if parent is None else parent
