# =============================================================================
# core/errors.py  —  Exception hierarchy
# =============================================================================
#
# Three failure families cross module boundaries:
#   - ConfigError   bad environment at startup (fatal, exit code 1)
#   - ShodanError   anything that went wrong talking to the upstream API
#                   (recovered at the lookup pipeline boundary)
#   - GatewayError  common base, so callers can catch "ours" in one clause
#
# Argument validation errors are pydantic's own ValidationError; they never
# leave the pipeline.
# =============================================================================

from typing import Any, Optional


class GatewayError(Exception):
    """Base class for every error raised by this project."""


class ConfigError(GatewayError):
    """Raised when the environment holds an unusable setting."""


class ShodanError(GatewayError):
    """An upstream request failed.

    Covers network errors, timeouts, non-2xx statuses and bodies that are not
    the JSON we expected.  ``str(error)`` is the text returned to the client.
    """

    def __init__(
        self,
        message: str,
        status_code: Optional[int] = None,
        details: Any = None,
    ) -> None:
        super().__init__(message)
        self.message = message
        self.status_code = status_code
        self.details = details

    def __repr__(self) -> str:
        return f"ShodanError({self.message!r}, status_code={self.status_code!r})"
