from __future__ import annotations

from enum import Enum
from typing import Optional


class ErrorKind(str, Enum):
    """Failure categories of the locale subsystem."""

    UNKNOWN_LOCALE = "unknown_locale"
    RESOURCE_RESOLUTION_FAILURE = "resource_resolution_failure"
    MISSING_KEY = "missing_key"


class LocaleError(Exception):
    kind: ErrorKind = ErrorKind.RESOURCE_RESOLUTION_FAILURE

    def __init__(self, code: Optional[str], message: str = "") -> None:
        self.code = code
        super().__init__(message or f"{self.kind.value}: {code}")


class UnknownLocaleError(LocaleError):
    kind = ErrorKind.UNKNOWN_LOCALE

    def __init__(self, code: Optional[str]) -> None:
        super().__init__(code, f"Unknown locale: {code!r}")


class ResourceResolutionError(LocaleError):
    kind = ErrorKind.RESOURCE_RESOLUTION_FAILURE
