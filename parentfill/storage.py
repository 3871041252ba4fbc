"""
SQL-backed row store and completion marker store.

Maps the revision table's rev_* columns onto Row records and translates
SQLAlchemy failures into the engine's error types.
"""

from datetime import datetime
from typing import List, Optional

from sqlalchemy import and_, func, inspect, or_
from sqlalchemy.exc import SQLAlchemyError

from .database import Revision, UpdateLog
from .errors import SourceUnavailable, WriteFailure
from .schema import Row, Window


def _to_row(rev: Revision) -> Row:
    return Row(
        id=rev.rev_id,
        group_key=rev.rev_page,
        timestamp=rev.rev_timestamp,
        derived_parent=rev.rev_parent_id,
    )


class SqlRowStore:
    """Row store over the revision table of one session."""

    def __init__(self, session):
        self.session = session

    def check_available(self) -> None:
        """Raise SourceUnavailable unless the revision table can be read."""
        try:
            exists = inspect(self.session.get_bind()).has_table(Revision.__tablename__)
        except SQLAlchemyError as e:
            raise SourceUnavailable(f"Row store unreachable: {e}") from e
        if not exists:
            raise SourceUnavailable("revision table does not exist")

    def min_id(self) -> Optional[int]:
        return self._scalar(func.min(Revision.rev_id))

    def max_id(self) -> Optional[int]:
        return self._scalar(func.max(Revision.rev_id))

    def count_unresolved(self) -> int:
        try:
            return self.session.query(Revision).filter(Revision.rev_parent_id.is_(None)).count()
        except SQLAlchemyError as e:
            self.session.rollback()
            raise SourceUnavailable(f"Failed to count unresolved revisions: {e}") from e

    def select_unresolved(self, window: Window) -> List[Row]:
        """Rows in window whose parent has not been populated yet."""
        return self._select(
            Revision.rev_id.between(window.start, window.end),
            Revision.rev_parent_id.is_(None),
        )

    def select_window(self, window: Window) -> List[Row]:
        """All rows in window, populated or not."""
        return self._select(Revision.rev_id.between(window.start, window.end))

    def select_group_context(self, group_key: int, before_id: int, timestamp: str) -> List[Row]:
        """
        Rows of a page needed to resolve the parent of one revision.

        Args:
            group_key: rev_page of the revision
            before_id: rev_id of the revision
            timestamp: rev_timestamp of the revision

        Returns:
            Same-timestamp rows with a smaller id, plus every row at the
            greatest timestamp strictly before timestamp
        """
        last_ts = self._scalar(
            func.max(Revision.rev_timestamp),
            Revision.rev_page == group_key,
            Revision.rev_timestamp < timestamp,
        )
        cond = and_(Revision.rev_timestamp == timestamp, Revision.rev_id < before_id)
        if last_ts is not None:
            cond = or_(cond, Revision.rev_timestamp == last_ts)
        return self._select(Revision.rev_page == group_key, cond)

    def write_parent(self, row_id: int, parent_id: int) -> None:
        try:
            self.session.query(Revision).filter(Revision.rev_id == row_id).update(
                {Revision.rev_parent_id: parent_id}, synchronize_session=False
            )
            self.session.commit()
        except SQLAlchemyError as e:
            self.session.rollback()
            raise WriteFailure(f"Failed to write parent for rev_id {row_id}: {e}", row_id=row_id) from e

    def _scalar(self, column, *criteria):
        try:
            return self.session.query(column).filter(*criteria).scalar()
        except SQLAlchemyError as e:
            self.session.rollback()
            raise SourceUnavailable(f"Failed to read revision table: {e}") from e

    def _select(self, *criteria) -> List[Row]:
        try:
            revs = self.session.query(Revision).filter(*criteria).order_by(Revision.rev_id).all()
        except SQLAlchemyError as e:
            self.session.rollback()
            raise SourceUnavailable(f"Failed to read revision table: {e}") from e
        return [_to_row(r) for r in revs]


class SqlMarkerStore:
    """Completion markers kept in the updatelog table."""

    def __init__(self, session):
        self.session = session

    def is_set(self, key: str) -> bool:
        return self.get(key) is not None

    def get(self, key: str) -> Optional[UpdateLog]:
        try:
            return self.session.query(UpdateLog).filter_by(ul_key=key).first()
        except SQLAlchemyError as e:
            self.session.rollback()
            raise SourceUnavailable(f"Failed to read updatelog: {e}") from e

    def set(self, key: str) -> None:
        try:
            self.session.merge(UpdateLog(ul_key=key, ul_value=datetime.now().strftime("%Y%m%d%H%M%S")))
            self.session.commit()
        except SQLAlchemyError as e:
            self.session.rollback()
            raise WriteFailure(f"Failed to set completion marker '{key}': {e}") from e

    def clear(self, key: str) -> bool:
        """Remove a marker so the migration runs again. Returns True if one existed."""
        try:
            deleted = self.session.query(UpdateLog).filter_by(ul_key=key).delete()
            self.session.commit()
        except SQLAlchemyError as e:
            self.session.rollback()
            raise WriteFailure(f"Failed to clear completion marker '{key}': {e}") from e
        return deleted > 0
