import os
from dotenv import load_dotenv

from apiprobe.models import ProbeConfig

load_dotenv()

_defaults = ProbeConfig()


def _optional_float(raw: str | None) -> float | None:
    if raw is None or not raw.strip():
        return None
    value = float(raw)
    return value if value > 0 else None


class Settings:
    APIPROBE_TARGET_URL: str = os.getenv("APIPROBE_TARGET_URL", _defaults.url)
    APIPROBE_INTERVAL: str = os.getenv("APIPROBE_INTERVAL", f"{_defaults.interval_s:g}s")
    APIPROBE_NUM_CHECKS: int = int(
        os.getenv("APIPROBE_NUM_CHECKS", _defaults.num_checks)
    )
    APIPROBE_TIMEOUT_SECONDS: float = float(
        os.getenv("APIPROBE_TIMEOUT_SECONDS", _defaults.timeout_s)
    )
    APIPROBE_RESULTS_PATH: str = os.getenv(
        "APIPROBE_RESULTS_PATH", _defaults.results_path
    )
    APIPROBE_RUN_TIMEOUT: float | None = _optional_float(
        os.getenv("APIPROBE_RUN_TIMEOUT")
    )
    APIPROBE_LOG_LEVEL: str = os.getenv("APIPROBE_LOG_LEVEL", "INFO")


settings = Settings()
