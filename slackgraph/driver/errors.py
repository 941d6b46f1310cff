"""
errors.py: Exceptions raised by the Slack driver.

Slack answers most failures with HTTP 200 and an ``{"ok": false, "error": ...}``
envelope. SlackApiError carries that error code verbatim; SlackDecodeError is
raised when the response is not JSON or does not fit the expected shape.
Transport failures (httpx / aiohttp) are not wrapped.
"""

from typing import Optional


class SlackError(RuntimeError):
    """Base class for driver errors."""


class SlackApiError(SlackError):
    """Slack returned ``ok: false``."""

    def __init__(self, error: str, method: str = "") -> None:
        self.error = error
        self.method = method
        where = f" ({method})" if method else ""
        super().__init__(f"Slack API error{where}: {error}")


class SlackDecodeError(SlackError):
    """The response body could not be decoded into the expected model."""

    def __init__(self, message: str, raw: Optional[str] = None) -> None:
        self.raw = raw
        super().__init__(message)
