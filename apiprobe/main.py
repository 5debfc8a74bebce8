from __future__ import annotations

import argparse
import logging
import re
import signal
import threading
from contextlib import contextmanager
from typing import Iterator, Sequence

from pydantic import ValidationError

from apiprobe.config import settings
from apiprobe.models import ProbeConfig
from apiprobe.reporting import format_summary, save_results
from apiprobe.runner import ProbeRunner

logger = logging.getLogger(__name__)

_DURATION_PART = re.compile(r"(\d+(?:\.\d*)?|\.\d+)(ms|us|µs|ns|h|m|s)")
_UNIT_SECONDS = {
    "h": 3600.0,
    "m": 60.0,
    "s": 1.0,
    "ms": 1e-3,
    "us": 1e-6,
    "µs": 1e-6,
    "ns": 1e-9,
}


def parse_duration(raw: str) -> float:
    """Parse ``10s``, ``500ms``, ``1m30s`` or a bare number of seconds."""
    text = raw.strip()
    if not text:
        raise ValueError("empty duration")
    try:
        seconds = float(text)
    except ValueError:
        pos = 0
        seconds = 0.0
        for m in _DURATION_PART.finditer(text):
            if m.start() != pos:
                break
            seconds += float(m.group(1)) * _UNIT_SECONDS[m.group(2)]
            pos = m.end()
        if pos != len(text):
            raise ValueError(f"invalid duration: {raw!r}")
    if seconds < 0:
        raise ValueError(f"negative duration: {raw!r}")
    return seconds


def _duration_arg(raw: str) -> float:
    try:
        return parse_duration(raw)
    except ValueError as e:
        raise argparse.ArgumentTypeError(str(e)) from e


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="apiprobe",
        description="Probe an HTTP endpoint at a fixed interval and report the success rate.",
    )
    parser.add_argument(
        "-t",
        "--interval",
        type=_duration_arg,
        default=settings.APIPROBE_INTERVAL,
        help="Interval between check launches, e.g. 10s, 500ms, 1m (default: %(default)s)",
    )
    parser.add_argument(
        "-n",
        "--num-checks",
        type=int,
        default=settings.APIPROBE_NUM_CHECKS,
        help="Number of checks to run (default: %(default)s)",
    )
    parser.add_argument("--url", default=settings.APIPROBE_TARGET_URL, help="Target URL")
    parser.add_argument(
        "--timeout",
        type=float,
        default=settings.APIPROBE_TIMEOUT_SECONDS,
        help="Per-request timeout in seconds (default: %(default)s)",
    )
    parser.add_argument(
        "-o",
        "--output",
        default=settings.APIPROBE_RESULTS_PATH,
        help="Where to write the JSON results (default: %(default)s)",
    )
    parser.add_argument(
        "--run-timeout",
        type=_duration_arg,
        default=settings.APIPROBE_RUN_TIMEOUT,
        help="Cancel the run after this long; 0 disables (default: %(default)s)",
    )
    parser.add_argument(
        "--log-level",
        type=str.upper,
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        default=settings.APIPROBE_LOG_LEVEL,
    )
    return parser


def config_from_args(args: argparse.Namespace) -> ProbeConfig:
    return ProbeConfig(
        target_url=args.url,
        interval_s=args.interval,
        num_checks=args.num_checks,
        timeout_s=args.timeout,
        results_path=args.output,
        run_timeout_s=args.run_timeout or None,
    )


@contextmanager
def cancel_on_signals(
    cancel: threading.Event,
    signums: Sequence[int] = (signal.SIGINT, signal.SIGTERM),
) -> Iterator[threading.Event]:
    """Turn SIGINT/SIGTERM into ``cancel.set()`` for the duration of the block.

    The first signal only requests a stop and puts the previous handlers back,
    so a second one interrupts the process as usual.
    """
    previous = {}

    def _restore() -> None:
        for signum, handler in previous.items():
            signal.signal(signum, handler if handler is not None else signal.SIG_DFL)

    def _handler(signum, _frame) -> None:
        logger.info("Received %s, stopping checks", signal.Signals(signum).name)
        cancel.set()
        _restore()

    for signum in signums:
        previous[signum] = signal.signal(signum, _handler)
    try:
        yield cancel
    finally:
        _restore()


@contextmanager
def cancel_after(cancel: threading.Event, seconds: float | None) -> Iterator[threading.Event]:
    if seconds is None:
        yield cancel
        return

    def _expire() -> None:
        logger.info("Run timeout of %.1fs reached, stopping checks", seconds)
        cancel.set()

    timer = threading.Timer(seconds, _expire)
    timer.daemon = True
    timer.start()
    try:
        yield cancel
    finally:
        timer.cancel()


def main(argv: Sequence[str] | None = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)

    logging.basicConfig(
        level=args.log_level,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    try:
        cfg = config_from_args(args)
    except ValidationError as e:
        parser.error(str(e))

    logger.info(
        "Starting %d checks against %s every %.3gs", cfg.num_checks, cfg.url, cfg.interval_s
    )

    cancel = threading.Event()
    with cancel_on_signals(cancel), cancel_after(cancel, cfg.run_timeout_s):
        result = ProbeRunner(cfg).run(cancel)

    print(format_summary(result))
    save_results(result, cfg.results_path)
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
