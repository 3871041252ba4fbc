"""
Pytest configuration and shared fixtures.
"""

import pytest
from hypothesis import HealthCheck, settings
from typing import Dict, List

from parentfill.database import Revision, init_database, get_session
from parentfill.logger import get_logger, reset_logger
from parentfill.storage import SqlRowStore


# Two pages with timestamp ties and out-of-order inserts.
SAMPLE_HISTORY = [
    (1, 10, "20200101000000"),
    (2, 10, "20200102000000"),
    (3, 20, "20200101000000"),
    (4, 10, "20200102000000"),  # same second as 2
    (5, 10, "20191231000000"),  # imported late, oldest edit of page 10
    (6, 20, "20200103000000"),
    (7, 10, "20200101120000"),  # between 1 and 2
]

SAMPLE_PARENTS = {1: 5, 2: 7, 3: 0, 4: 2, 5: 0, 6: 3, 7: 1}

# The autouse logger fixture is function scoped; it is safe to share across examples.
settings.register_profile("parentfill", suppress_health_check=[HealthCheck.function_scoped_fixture], deadline=None)
settings.load_profile("parentfill")


@pytest.fixture(autouse=True)
def quiet_logger(tmp_path):
    """Keep the global logger off the console and out of the working directory."""
    reset_logger()
    logger = get_logger(log_dir=tmp_path / "logs", enable_console=False)
    yield logger
    reset_logger()


@pytest.fixture
def db_path(tmp_path):
    """Initialized SQLite database."""
    path = tmp_path / "wiki.db"
    init_database(path)
    return path


@pytest.fixture
def db_session(db_path):
    session = get_session(db_path)
    yield session
    session.close()


@pytest.fixture
def add_revisions(db_session):
    """Insert (rev_id, rev_page, rev_timestamp[, rev_parent_id]) tuples."""
    def _add(revs):
        for rev_id, page, ts, *rest in revs:
            db_session.add(Revision(
                rev_id=rev_id,
                rev_page=page,
                rev_timestamp=ts,
                rev_parent_id=rest[0] if rest else None,
            ))
        db_session.commit()
    return _add


@pytest.fixture
def parents(db_session):
    """Read back rev_id -> rev_parent_id."""
    def _parents() -> Dict[int, int]:
        db_session.expire_all()
        return {r.rev_id: r.rev_parent_id for r in db_session.query(Revision).order_by(Revision.rev_id)}
    return _parents


class ListReporter:
    def __init__(self):
        self.lines: List[str] = []

    def emit(self, message: str):
        self.lines.append(message)


class RecordingBarrier:
    def __init__(self, events: list):
        self.events = events
        self.calls = 0

    def wait_for_catch_up(self):
        self.calls += 1
        self.events.append(("barrier",))


class RecordingStore(SqlRowStore):
    """SQL store that logs reads and writes and can fail on demand."""

    def __init__(self, session, events: list, fail_on=None, fail_with=None):
        super().__init__(session)
        self.events = events
        self.fail_on = fail_on
        self.fail_with = fail_with
        self.writes: List[tuple] = []

    def select_unresolved(self, window):
        self.events.append(("select", window.start, window.end))
        return super().select_unresolved(window)

    def select_window(self, window):
        self.events.append(("select", window.start, window.end))
        return super().select_window(window)

    def write_parent(self, row_id, parent_id):
        if self.fail_on is not None and row_id == self.fail_on:
            raise self.fail_with
        self.events.append(("write", row_id, parent_id))
        self.writes.append((row_id, parent_id))
        super().write_parent(row_id, parent_id)


@pytest.fixture
def events():
    return []


@pytest.fixture
def reporter():
    return ListReporter()


@pytest.fixture
def barrier(events):
    return RecordingBarrier(events)


@pytest.fixture
def store(db_session, events):
    return RecordingStore(db_session, events)
