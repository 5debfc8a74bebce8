import io
import json
import os
import signal
import tempfile
import threading
import unittest
from contextlib import redirect_stderr, redirect_stdout
from pathlib import Path
from unittest.mock import Mock, patch

from apiprobe.main import (
    build_parser,
    cancel_after,
    cancel_on_signals,
    config_from_args,
    main,
    parse_duration,
)


class ParseDurationTests(unittest.TestCase):
    def test_accepts_units_and_bare_seconds(self) -> None:
        cases = {
            "10s": 10.0,
            "500ms": 0.5,
            "1m30s": 90.0,
            "2h": 7200.0,
            "1.5s": 1.5,
            "0": 0.0,
            "3": 3.0,
            "0.25": 0.25,
        }
        for raw, expected in cases.items():
            with self.subTest(raw=raw):
                self.assertAlmostEqual(parse_duration(raw), expected)

    def test_rejects_garbage(self) -> None:
        for raw in ("", "ten", "10x", "s10", "-1", "5s junk"):
            with self.subTest(raw=raw):
                with self.assertRaises(ValueError):
                    parse_duration(raw)


class ParserTests(unittest.TestCase):
    def test_short_flags(self) -> None:
        args = build_parser().parse_args(["-t", "250ms", "-n", "4"])
        cfg = config_from_args(args)

        self.assertEqual(cfg.interval_s, 0.25)
        self.assertEqual(cfg.num_checks, 4)

    def test_zero_run_timeout_disables_deadline(self) -> None:
        args = build_parser().parse_args(["--run-timeout", "0"])
        self.assertIsNone(config_from_args(args).run_timeout_s)


class SignalTests(unittest.TestCase):
    def test_sigterm_sets_cancel_and_handler_is_restored(self) -> None:
        before = signal.getsignal(signal.SIGTERM)
        cancel = threading.Event()

        with cancel_on_signals(cancel):
            os.kill(os.getpid(), signal.SIGTERM)
            self.assertTrue(cancel.wait(1))

        self.assertEqual(signal.getsignal(signal.SIGTERM), before)

    def test_second_signal_reaches_previous_handler(self) -> None:
        seen = threading.Event()
        original = signal.signal(signal.SIGTERM, lambda signum, frame: seen.set())
        try:
            cancel = threading.Event()
            with cancel_on_signals(cancel):
                os.kill(os.getpid(), signal.SIGTERM)
                self.assertTrue(cancel.wait(1))
                self.assertFalse(seen.is_set())

                os.kill(os.getpid(), signal.SIGTERM)
                self.assertTrue(seen.wait(1))
        finally:
            signal.signal(signal.SIGTERM, original)

    def test_deadline_sets_cancel(self) -> None:
        cancel = threading.Event()
        with cancel_after(cancel, 0.01):
            self.assertTrue(cancel.wait(1))

    def test_no_deadline_leaves_cancel_alone(self) -> None:
        cancel = threading.Event()
        with cancel_after(cancel, None):
            self.assertFalse(cancel.wait(0.02))


class MainTests(unittest.TestCase):
    def test_five_successful_checks(self) -> None:
        with tempfile.TemporaryDirectory() as td:
            out_path = Path(td) / "test_results.json"
            out = io.StringIO()
            with patch(
                "apiprobe.checks.http_check.requests.get",
                return_value=Mock(status_code=200),
            ), redirect_stdout(out):
                code = main(["-n", "5", "-t", "0", "-o", str(out_path), "--run-timeout", "0"])

            self.assertEqual(code, 0)
            self.assertIn("Successful requests: 100.00%", out.getvalue())
            self.assertEqual(
                json.loads(out_path.read_text()),
                {"results": [{"success": True}] * 5},
            )

    def test_zero_checks_prints_zero_percent(self) -> None:
        with tempfile.TemporaryDirectory() as td:
            out_path = Path(td) / "test_results.json"
            out = io.StringIO()
            with redirect_stdout(out):
                code = main(["-n", "0", "-o", str(out_path)])

            self.assertEqual(code, 0)
            self.assertIn("Successful requests: 0.00%", out.getvalue())
            self.assertEqual(json.loads(out_path.read_text()), {"results": []})

    def test_write_failure_still_exits_cleanly(self) -> None:
        with tempfile.TemporaryDirectory() as td:
            out_path = Path(td) / "nope" / "test_results.json"
            out = io.StringIO()
            with patch(
                "apiprobe.checks.http_check.requests.get",
                return_value=Mock(status_code=500),
            ), redirect_stdout(out):
                code = main(["-n", "2", "-t", "0", "-o", str(out_path)])

            self.assertEqual(code, 0)
            self.assertIn("Successful requests: 0.00%", out.getvalue())
            self.assertFalse(out_path.exists())

    def test_invalid_check_count_is_a_usage_error(self) -> None:
        with redirect_stderr(io.StringIO()), self.assertRaises(SystemExit) as ctx:
            main(["-n", "-1"])
        self.assertEqual(ctx.exception.code, 2)

    def test_invalid_interval_is_a_usage_error(self) -> None:
        with redirect_stderr(io.StringIO()), self.assertRaises(SystemExit) as ctx:
            main(["-t", "soon"])
        self.assertEqual(ctx.exception.code, 2)

    def test_unbounded_waits_are_usage_errors(self) -> None:
        for argv in (
            ["-n", "2", "-t", "inf"],
            ["-n", "2", "-t", "1e10"],
            ["-n", "2", "-t", "nan"],
            ["-n", "2", "--timeout", "inf"],
            ["-n", "2", "--run-timeout", "inf"],
        ):
            with self.subTest(argv=argv):
                with redirect_stderr(io.StringIO()), self.assertRaises(SystemExit) as ctx:
                    main(argv)
                self.assertEqual(ctx.exception.code, 2)


if __name__ == "__main__":
    unittest.main()
