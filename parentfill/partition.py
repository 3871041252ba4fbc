"""
Splits an id range into fixed-size windows.

The only state is the integer cursor, so a run can be resumed from any id.
"""

from typing import Iterator, Optional

from .schema import Window


def next_window(cursor: int, chunk_size: int) -> Window:
    """Return the window starting at cursor."""
    if chunk_size <= 0:
        raise ValueError(f"chunk_size must be positive, got {chunk_size}")
    return Window(start=cursor, end=cursor + chunk_size - 1)


def iter_windows(
    min_id: int,
    max_id: int,
    chunk_size: int,
    start: Optional[int] = None,
) -> Iterator[Window]:
    """
    Lazily yield contiguous windows covering [min_id, max_id].

    Args:
        min_id: Smallest id in the domain
        max_id: Largest id in the domain
        chunk_size: Ids per window
        start: Resume cursor (default: min_id). Ids below min_id are clamped.

    Yields:
        Window objects; the last one may extend past max_id.
    """
    if chunk_size <= 0:
        raise ValueError(f"chunk_size must be positive, got {chunk_size}")
    cursor = min_id if start is None else max(start, min_id)
    while cursor <= max_id:
        window = next_window(cursor, chunk_size)
        yield window
        cursor += chunk_size
