from __future__ import annotations

import enum
import logging
import threading
from collections import deque
from typing import Callable, Optional

from apiprobe.checks.http_check import run_http
from apiprobe.models import CheckResult, ProbeConfig, TestResult

logger = logging.getLogger(__name__)

# (url, timeout_s, cancel) -> result, or None when discarded after cancellation
ProbeFn = Callable[[str, float, threading.Event], Optional[CheckResult]]


class RunState(str, enum.Enum):
    IDLE = "idle"
    LAUNCHING = "launching"
    CANCELLING = "cancelling"
    DRAINING = "draining"
    DONE = "done"


class ResultQueueClosed(RuntimeError):
    pass


class ResultQueue:
    """Unbounded result buffer that rejects writes once closed."""

    def __init__(self) -> None:
        self._items: deque[CheckResult] = deque()
        self._lock = threading.Lock()
        self._closed = False

    @property
    def closed(self) -> bool:
        with self._lock:
            return self._closed

    def put(self, item: CheckResult) -> None:
        with self._lock:
            if self._closed:
                raise ResultQueueClosed("result queue is closed")
            self._items.append(item)

    def close(self) -> None:
        with self._lock:
            self._closed = True

    def drain(self) -> list[CheckResult]:
        with self._lock:
            if not self._closed:
                raise RuntimeError("drain() called before close()")
            out = list(self._items)
            self._items.clear()
            return out


class ProbeRunner:
    def __init__(self, config: ProbeConfig, probe: ProbeFn = run_http) -> None:
        self.config = config
        self._probe = probe
        self.state = RunState.IDLE

    def _set_state(self, state: RunState) -> None:
        logger.debug("Runner state %s -> %s", self.state.value, state.value)
        self.state = state

    def _probe_worker(self, cancel: threading.Event, results: ResultQueue) -> None:
        try:
            res = self._probe(self.config.url, self.config.timeout_s, cancel)
        except Exception:
            logger.exception("Check against %s raised", self.config.url)
            res = None if cancel.is_set() else CheckResult(success=False)
        if res is None:
            return
        results.put(res)

    def _launch(
        self, index: int, cancel: threading.Event, results: ResultQueue
    ) -> threading.Thread:
        t = threading.Thread(
            target=self._probe_worker,
            args=(cancel, results),
            name=f"probe-{index}",
            daemon=True,
        )
        t.start()
        return t

    def run(self, cancel: threading.Event) -> TestResult:
        if self.state is not RunState.IDLE:
            raise RuntimeError("ProbeRunner instances are single-use")

        cfg = self.config
        results = ResultQueue()
        workers: list[threading.Thread] = []

        self._set_state(RunState.LAUNCHING)
        for i in range(cfg.num_checks):
            if cancel.is_set():
                break
            workers.append(self._launch(i, cancel, results))
            if i < cfg.num_checks - 1 and cancel.wait(cfg.interval_s):
                break

        if cancel.is_set():
            self._set_state(RunState.CANCELLING)
            logger.info(
                "Stop requested, launched %d of %d checks; waiting for in-flight probes",
                len(workers),
                cfg.num_checks,
            )

        # Every writer must finish before the queue is closed.
        for t in workers:
            t.join()

        self._set_state(RunState.DRAINING)
        results.close()
        test_result = TestResult(results=results.drain())

        self._set_state(RunState.DONE)
        logger.info(
            "Collected %d results from %d launched checks",
            test_result.total,
            len(workers),
        )
        return test_result


def run_tests(
    cancel: threading.Event,
    interval_s: float,
    num_checks: int,
    probe: ProbeFn = run_http,
    **overrides,
) -> TestResult:
    """Build a ProbeConfig (other fields from ``overrides`` or their defaults) and run it."""
    cfg = ProbeConfig(interval_s=interval_s, num_checks=num_checks, **overrides)
    return ProbeRunner(cfg, probe=probe).run(cancel)
