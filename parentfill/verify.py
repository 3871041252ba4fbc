"""
Post-run verification of rev_parent_id.

Re-derives every populated parent and compares it with the stored value.
Read-only: nothing is written.
"""

from typing import List

from .partition import iter_windows
from .resolver import resolve_parent
from .schema import DEFAULT_BATCH_SIZE, NO_PARENT


def find_violations(store, chunk_size: int = DEFAULT_BATCH_SIZE, limit: int = 100) -> List[str]:
    """
    Returns a list of violation messages. Empty list means every populated
    parent matches what the resolver derives.

    Args:
        store: Row store (min_id, max_id, select_window, select_group_context)
        chunk_size: Ids read per window
        limit: Stop after this many violations
    """
    violations: List[str] = []
    store.check_available()
    lo = store.min_id()
    hi = store.max_id()
    if lo is None or hi is None:
        return violations

    for window in iter_windows(lo, hi, chunk_size):
        for row in store.select_window(window):
            if row.derived_parent is None:
                continue
            if row.derived_parent == row.id:
                violations.append(f"rev_id {row.id}: parent points to itself")
            else:
                context = store.select_group_context(row.group_key, row.id, row.timestamp)
                expected = resolve_parent(row, context)
                expected = NO_PARENT if expected is None else expected
                if expected != row.derived_parent:
                    violations.append(
                        f"rev_id {row.id}: stored parent {row.derived_parent}, expected {expected}"
                    )
            if len(violations) >= limit:
                return violations
    return violations
