from __future__ import annotations

import logging
from pathlib import Path

from pydantic_core import PydanticSerializationError

from apiprobe.models import ProbeConfig, TestResult

logger = logging.getLogger(__name__)

RESULTS_FILENAME = ProbeConfig.model_fields["results_path"].default


def success_percentage(result: TestResult) -> float:
    """Share of successful probes among collected results, in percent.

    An empty result (nothing launched, or everything cancelled) yields 0.0.
    """
    if result.total == 0:
        return 0.0
    return result.successes / result.total * 100


def format_summary(result: TestResult) -> str:
    return f"Successful requests: {success_percentage(result):.2f}%"


def serialize_results(result: TestResult) -> str:
    return result.model_dump_json()


def save_results(result: TestResult, path: str | Path = RESULTS_FILENAME) -> bool:
    try:
        payload = serialize_results(result)
    except (PydanticSerializationError, ValueError, TypeError) as e:
        logger.error("Failed to serialize results to JSON: %s", e)
        return False

    try:
        Path(path).write_text(payload, encoding="utf-8")
    except OSError as e:
        logger.error("Failed to write results to %s: %s", path, e)
        return False

    logger.info("Results saved to %s", path)
    return True


def load_results(path: str | Path = RESULTS_FILENAME) -> TestResult:
    return TestResult.model_validate_json(Path(path).read_text(encoding="utf-8"))
