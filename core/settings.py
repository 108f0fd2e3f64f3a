"""Run parameters for a batch scan.

Values come from, in order of priority: command line arguments, environment
variables (optionally loaded from a ``.env`` file), then the defaults below.
"""
import logging
import os
from dataclasses import dataclass, replace
from typing import Any, Mapping, Optional

from dotenv import load_dotenv

from core.errors import ConfigurationError

logger = logging.getLogger(__name__)

DEFAULT_USER_AGENT = (
    "Mozilla/5.0 (Macintosh; Intel Mac OS X 10_15_7) AppleWebKit/537.36 "
    "(KHTML, like Gecko) Chrome/120.0.0.0 Safari/537.36"
)
SESSION_MODES = ("isolated", "pooled")

_TRUE_VALUES = {"1", "true", "yes", "on"}
_FALSE_VALUES = {"0", "false", "no", "off"}


def parse_bool(value: str, name: str = "value") -> bool:
    normalized = value.strip().lower()
    if normalized in _TRUE_VALUES:
        return True
    if normalized in _FALSE_VALUES:
        return False
    raise ConfigurationError(f"{name} must be true or false, got {value!r}")


def _parse_int(value: str, name: str) -> int:
    try:
        return int(value)
    except ValueError:
        raise ConfigurationError(f"{name} must be an integer, got {value!r}") from None


def _parse_float(value: str, name: str) -> float:
    try:
        return float(value)
    except ValueError:
        raise ConfigurationError(f"{name} must be a number, got {value!r}") from None


@dataclass(frozen=True)
class ScanSettings:
    navigation_timeout_ms: int = 30000
    headless: bool = True
    user_agent: str = DEFAULT_USER_AGENT
    concurrency_limit: int = 10
    customer_filter: Optional[str] = None
    settle_delay_ms: int = 3000 # Grace period for deferred scripts after network idle
    extractor_timeout_s: float = 10.0
    session_mode: str = "isolated"
    results_dir: str = "results"

    def __post_init__(self):
        if self.concurrency_limit < 1:
            raise ConfigurationError(f"Concurrency limit must be at least 1, got {self.concurrency_limit}")
        if self.navigation_timeout_ms <= 0:
            raise ConfigurationError(f"Navigation timeout must be positive, got {self.navigation_timeout_ms}")
        if self.settle_delay_ms < 0:
            raise ConfigurationError(f"Settle delay cannot be negative, got {self.settle_delay_ms}")
        if self.extractor_timeout_s <= 0:
            raise ConfigurationError(f"Extractor timeout must be positive, got {self.extractor_timeout_s}")
        if self.session_mode not in SESSION_MODES:
            raise ConfigurationError(
                f"Session mode must be one of {', '.join(SESSION_MODES)}, got {self.session_mode!r}"
            )

    @classmethod
    def from_env(cls, env: Optional[Mapping[str, str]] = None, dotenv_path: Optional[str] = None) -> "ScanSettings":
        """Build settings from environment variables.

        Args:
            env: Mapping to read instead of ``os.environ`` (no ``.env`` loading then)
            dotenv_path: Explicit ``.env`` file; by default one is searched for
        """
        if env is None:
            load_dotenv(dotenv_path)
            env = os.environ

        values = {}
        if env.get("BROWSER_TIMEOUT"):
            values["navigation_timeout_ms"] = _parse_int(env["BROWSER_TIMEOUT"], "BROWSER_TIMEOUT")
        if env.get("BROWSER_HEADLESS"):
            values["headless"] = parse_bool(env["BROWSER_HEADLESS"], "BROWSER_HEADLESS")
        if env.get("BROWSER_USER_AGENT"):
            values["user_agent"] = env["BROWSER_USER_AGENT"]
        if env.get("BATCH_SIZE"):
            values["concurrency_limit"] = _parse_int(env["BATCH_SIZE"], "BATCH_SIZE")
        if env.get("CUSTOMER_FILTER"):
            values["customer_filter"] = env["CUSTOMER_FILTER"]
        if env.get("SETTLE_DELAY_MS"):
            values["settle_delay_ms"] = _parse_int(env["SETTLE_DELAY_MS"], "SETTLE_DELAY_MS")
        if env.get("EXTRACTOR_TIMEOUT"):
            values["extractor_timeout_s"] = _parse_float(env["EXTRACTOR_TIMEOUT"], "EXTRACTOR_TIMEOUT")
        if env.get("SESSION_MODE"):
            values["session_mode"] = env["SESSION_MODE"].strip().lower()
        if env.get("RESULTS_DIR"):
            values["results_dir"] = env["RESULTS_DIR"]
        return cls(**values)

    def with_overrides(self, **overrides: Any) -> "ScanSettings":
        """Return a copy with every non-None override applied."""
        applied = {k: v for k, v in overrides.items() if v is not None}
        if applied:
            logger.debug(f"Overriding settings: {', '.join(sorted(applied))}")
        return replace(self, **applied)
