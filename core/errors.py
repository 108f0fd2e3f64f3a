"""Exception types shared by the scanning pipeline."""
import asyncio

from playwright.async_api import Error as PlaywrightError
from playwright.async_api import TimeoutError as PlaywrightTimeoutError


class CompetitorScanError(Exception):
    """Base class for errors raised by this package."""


class ConfigurationError(CompetitorScanError):
    """Invalid catalog or run parameters. Fatal before any scanning starts."""


class TargetError(CompetitorScanError):
    """A failure that ends the scan of a single target."""
    kind = "target"


class SessionError(TargetError):
    """The browser session could not be created or died mid-scan."""
    kind = "session"


class NavigationError(TargetError):
    kind = "navigation"


class NavigationTimeoutError(NavigationError):
    kind = "timeout"


def classify_error(exc: BaseException) -> str:
    """Map an exception to the coarse kind label stored on failed outcomes."""
    if isinstance(exc, TargetError):
        return exc.kind
    if isinstance(exc, (PlaywrightTimeoutError, asyncio.TimeoutError)):
        return "timeout"
    if isinstance(exc, PlaywrightError):
        return "automation"
    return "unexpected"
