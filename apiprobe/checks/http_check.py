from __future__ import annotations

import logging
import threading

import requests

from apiprobe.models import CheckResult

logger = logging.getLogger(__name__)


def run_http(
    url: str, timeout_s: float, cancel: threading.Event | None = None
) -> CheckResult | None:
    """Issue one GET against ``url``.

    Returns ``None`` when ``cancel`` was set while the request was in flight;
    the caller must not report anything in that case.
    """
    try:
        r = requests.get(url, timeout=(timeout_s, timeout_s), stream=True)
    except Exception as e:
        if cancel is not None and cancel.is_set():
            return None
        logger.warning("Request to %s failed: %s", url, e)
        return CheckResult(success=False)

    try:
        if cancel is not None and cancel.is_set():
            logger.debug("Discarding response from %s after cancellation", url)
            return None
        return CheckResult(success=r.status_code == requests.codes.ok)
    finally:
        r.close()
