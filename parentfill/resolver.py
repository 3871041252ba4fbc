"""
Parent revision resolution.

Pure and deterministic: the answer depends only on the ids and timestamps of
the rows sharing the revision's page. No database access.

Rules, applied in order:
1. Among same-page rows with the same timestamp and a smaller id, the highest
   id wins.
2. Otherwise take the greatest timestamp strictly below the row's; among rows
   at that timestamp the highest id wins.
3. Otherwise there is no parent.

Timestamps carry edit order; ids only break exact ties. Because step 1 only
looks at smaller ids and step 2 only at strictly earlier timestamps, following
parents can never revisit a row.
"""

from typing import Iterable, Optional

from .schema import Row


def resolve_parent(row: Row, same_group_rows: Iterable[Row]) -> Optional[int]:
    """
    Determine the id of the revision that preceded row.

    Args:
        row: The revision being resolved
        same_group_rows: Rows of the same page (any superset is fine; other
            pages and the row itself are ignored)

    Returns:
        Parent rev_id, or None when no earlier revision qualifies
    """
    tied: Optional[int] = None
    prev_ts: Optional[str] = None
    prev_id: Optional[int] = None

    for other in same_group_rows:
        if other.group_key != row.group_key or other.id == row.id:
            continue
        if other.timestamp == row.timestamp:
            if other.id < row.id and (tied is None or other.id > tied):
                tied = other.id
        elif other.timestamp < row.timestamp:
            if prev_ts is None or other.timestamp > prev_ts:
                prev_ts = other.timestamp
                prev_id = other.id
            elif other.timestamp == prev_ts and other.id > prev_id:
                prev_id = other.id

    if tied is not None:
        return tied
    return prev_id
