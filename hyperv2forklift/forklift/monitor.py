# SPDX-License-Identifier: LGPL-3.0-or-later
# -*- coding: utf-8 -*-
# hyperv2forklift/forklift/monitor.py

from __future__ import annotations

import logging
import time
from dataclasses import dataclass
from enum import Enum
from typing import Any, Callable, Dict, Optional

from ..core.exceptions import MigrationFailedError, MigrationTimeoutError
from .status import MigrationSnapshot, nested_list, nested_str, render_progress

DEFAULT_INTERVAL_S = 10.0
DEFAULT_TIMEOUT_S = 15 * 60.0
PLAN_INTERVAL_S = 5.0

Fetch = Callable[[], Dict[str, Any]]
Clock = Callable[[], float]
Sleep = Callable[[float], None]
ProgressSink = Callable[[MigrationSnapshot, str], None]


class MonitorState(str, Enum):
    POLLING = "Polling"
    SUCCEEDED = "Succeeded"
    FAILED = "Failed"
    TIMED_OUT = "TimedOut"

    @property
    def terminal(self) -> bool:
        return self is not MonitorState.POLLING


@dataclass(frozen=True)
class MonitorResult:
    state: MonitorState
    ticks: int
    elapsed_s: float
    snapshot: Optional[MigrationSnapshot] = None
    message: str = ""

    @property
    def ok(self) -> bool:
        return self.state is MonitorState.SUCCEEDED


def _sleep_toward(deadline: float, interval_s: float, clock: Clock, sleep: Sleep) -> bool:
    """Sleep one interval, never past the deadline. True if the deadline has passed."""
    remaining = deadline - clock()
    if remaining > 0:
        sleep(min(interval_s, remaining))
    return clock() >= deadline


class MigrationMonitor:
    """
    Polls one Migration until it succeeds, fails or the deadline passes.

    One fetch per tick and no overlap between ticks. A fetch error propagates
    out of tick()/run() unchanged.
    """

    def __init__(
        self,
        fetch: Fetch,
        namespace: str,
        name: str,
        *,
        interval_s: float = DEFAULT_INTERVAL_S,
        timeout_s: float = DEFAULT_TIMEOUT_S,
        clock: Clock = time.monotonic,
        sleep: Sleep = time.sleep,
        on_progress: Optional[ProgressSink] = None,
        logger: Optional[logging.Logger] = None,
    ) -> None:
        if interval_s <= 0:
            raise ValueError(f"interval_s must be > 0, got: {interval_s}")
        if timeout_s <= 0:
            raise ValueError(f"timeout_s must be > 0, got: {timeout_s}")
        self.fetch = fetch
        self.namespace = namespace
        self.name = name
        self.interval_s = float(interval_s)
        self.timeout_s = float(timeout_s)
        self._clock = clock
        self._sleep = sleep
        self.logger = logger or logging.getLogger(__name__)
        self._on_progress = on_progress or self._log_progress

        self.state = MonitorState.POLLING
        self.ticks = 0
        self.snapshot: Optional[MigrationSnapshot] = None
        self._started: Optional[float] = None

    def _log_progress(self, snapshot: MigrationSnapshot, text: str) -> None:
        for line in text.splitlines():
            if line:
                self.logger.info(line)

    def start(self) -> float:
        """Start the clock on first call; returns the deadline."""
        if self._started is None:
            self._started = self._clock()
        return self._started + self.timeout_s

    @property
    def elapsed_s(self) -> float:
        if self._started is None:
            return 0.0
        return self._clock() - self._started

    @staticmethod
    def classify(snapshot: MigrationSnapshot) -> MonitorState:
        if snapshot.has_condition("Succeeded"):
            return MonitorState.SUCCEEDED
        if snapshot.has_condition("Failed"):
            return MonitorState.FAILED
        return MonitorState.POLLING

    def tick(self) -> MonitorState:
        if self.state.terminal:
            return self.state
        deadline = self.start()

        if _sleep_toward(deadline, self.interval_s, self._clock, self._sleep):
            self.state = MonitorState.TIMED_OUT
            return self.state

        obj = self.fetch()
        self.ticks += 1
        self.snapshot = MigrationSnapshot.from_object(obj)
        self.state = self.classify(self.snapshot)
        if self.state is MonitorState.POLLING:
            self._on_progress(self.snapshot, render_progress(self.snapshot))
        return self.state

    def run(self) -> MonitorResult:
        self.logger.info("Waiting for migration %s/%s (timeout %ss)", self.namespace, self.name, int(self.timeout_s))
        while not self.tick().terminal:
            pass
        return self.result()

    def result(self) -> MonitorResult:
        msg = ""
        if self.state is MonitorState.SUCCEEDED:
            msg = f"migration {self.name} succeeded"
        elif self.state is MonitorState.FAILED:
            detail = self.snapshot.failure_message if self.snapshot else ""
            msg = f"migration {self.name} failed" + (f": {detail}" if detail else "")
        elif self.state is MonitorState.TIMED_OUT:
            msg = f"timeout waiting for migration {self.name} to complete"
        return MonitorResult(
            state=self.state,
            ticks=self.ticks,
            elapsed_s=self.elapsed_s,
            snapshot=self.snapshot,
            message=msg,
        )

    def wait(self) -> MonitorResult:
        """run(), raising MigrationFailedError / MigrationTimeoutError on a bad outcome."""
        res = self.run()
        ctx = {"namespace": self.namespace, "migration": self.name, "ticks": res.ticks}
        if res.state is MonitorState.FAILED:
            raise MigrationFailedError(code=50, msg=res.message, context=ctx)
        if res.state is MonitorState.TIMED_OUT:
            raise MigrationTimeoutError(code=51, msg=res.message, context=ctx)
        self.logger.info("Migration %s succeeded", self.name)
        return res


def is_plan_ready(plan: Any) -> bool:
    if nested_str(plan, "status", "phase") == "Ready":
        return True
    for c in nested_list(plan, "status", "conditions"):
        if nested_str(c, "type") == "Ready" and nested_str(c, "status") == "True":
            return True
    return False


def wait_for_plan_ready(
    fetch: Fetch,
    namespace: str,
    name: str,
    timeout_s: float,
    interval_s: float = PLAN_INTERVAL_S,
    *,
    clock: Clock = time.monotonic,
    sleep: Sleep = time.sleep,
    logger: Optional[logging.Logger] = None,
) -> Dict[str, Any]:
    """Poll a Plan until it reports Ready. Returns the last fetched object."""
    log = logger or logging.getLogger(__name__)
    deadline = clock() + timeout_s
    while True:
        if _sleep_toward(deadline, interval_s, clock, sleep):
            raise MigrationTimeoutError(
                code=51,
                msg=f"timeout waiting for plan {name} to be ready",
                context={"namespace": namespace, "plan": name},
            )
        plan = fetch()
        if is_plan_ready(plan):
            log.info("Plan %s/%s is ready", namespace, name)
            return plan
        log.info("Plan %s not ready yet, waiting...", name)


__all__ = [
    "MigrationMonitor",
    "MonitorResult",
    "MonitorState",
    "is_plan_ready",
    "wait_for_plan_ready",
]
