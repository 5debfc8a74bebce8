from __future__ import annotations

import threading
from typing import List, Optional
from pydantic import AnyHttpUrl, BaseModel, ConfigDict, Field

# Event.wait() raises OverflowError for huge timeouts
MAX_WAIT_S = min(threading.TIMEOUT_MAX, 365 * 24 * 3600.0)


class CheckResult(BaseModel):
    model_config = ConfigDict(frozen=True)

    success: bool


class TestResult(BaseModel):
    """Aggregate of one run. Built once collection has finished."""

    __test__ = False
    model_config = ConfigDict(frozen=True)

    results: List[CheckResult] = Field(default_factory=list)

    @property
    def total(self) -> int:
        return len(self.results)

    @property
    def successes(self) -> int:
        return sum(1 for r in self.results if r.success)


class ProbeConfig(BaseModel):
    model_config = ConfigDict(frozen=True, validate_default=True, allow_inf_nan=False)

    target_url: AnyHttpUrl = "https://thecatapi.com"
    interval_s: float = Field(default=10.0, ge=0, le=MAX_WAIT_S)
    num_checks: int = Field(default=10, ge=0)
    timeout_s: float = Field(default=10.0, gt=0, le=MAX_WAIT_S)
    results_path: str = Field(default="test_results.json", min_length=1)
    run_timeout_s: Optional[float] = Field(default=None, gt=0, le=MAX_WAIT_S)

    @property
    def url(self) -> str:
        return str(self.target_url)
