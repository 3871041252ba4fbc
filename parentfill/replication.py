"""
Replication barriers.

The driver calls wait_for_catch_up() after every window so replica lag
cannot grow without bound while the backfill writes.
"""

import time
from typing import Callable, Optional

from .errors import ReplicationTimeout
from .logger import get_logger


class NullBarrier:
    """Barrier for single-database setups: returns immediately."""

    def __init__(self):
        self.calls = 0

    def wait_for_catch_up(self) -> None:
        self.calls += 1


class PollingBarrier:
    """
    Blocks until a lag probe reports the replicas are caught up.

    Without a timeout it waits indefinitely, which is the default behaviour;
    a timeout turns a stuck replica into a ReplicationTimeout.
    """

    def __init__(
        self,
        lag_probe: Callable[[], float],
        max_lag: float = 0.0,
        poll_interval: float = 1.0,
        timeout: Optional[float] = None,
        sleep: Callable[[float], None] = time.sleep,
        clock: Callable[[], float] = time.monotonic,
    ):
        """
        Args:
            lag_probe: Returns current replication lag in seconds
            max_lag: Lag at or below which replicas count as caught up
            poll_interval: Seconds between probes
            timeout: Optional upper bound on a single wait, in seconds
            sleep: Sleep function (injectable for tests)
            clock: Monotonic clock (injectable for tests)
        """
        if poll_interval <= 0:
            raise ValueError("poll_interval must be positive")
        self.lag_probe = lag_probe
        self.max_lag = max_lag
        self.poll_interval = poll_interval
        self.timeout = timeout
        self._sleep = sleep
        self._clock = clock
        self.logger = get_logger()

    def wait_for_catch_up(self) -> None:
        started = self._clock()
        polls = 0
        while True:
            lag = self.lag_probe()
            if lag <= self.max_lag:
                if polls:
                    self.logger.debug("Replicas caught up", polls=polls, lag=lag)
                return
            waited = self._clock() - started
            if self.timeout is not None and waited >= self.timeout:
                raise ReplicationTimeout(
                    f"Replication lag {lag:.1f}s still above {self.max_lag:.1f}s after {waited:.1f}s"
                )
            if polls == 0:
                self.logger.info("Waiting for replication", lag=lag, max_lag=self.max_lag)
            polls += 1
            self._sleep(self.poll_interval)
