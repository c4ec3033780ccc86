from __future__ import annotations

from typing import Any


class ScreenSyncError(Exception):
    """Base class for screensync errors."""

    def __init__(self, message: str, error_code: str | None = None, details: dict[str, Any] | None = None) -> None:
        super().__init__(message)
        self.error_code = error_code or "ERROR"
        self.details = details or {}

    def to_dict(self) -> dict[str, Any]:
        return {"error_code": self.error_code, "message": str(self), "details": self.details}


class ConfigError(ScreenSyncError):
    """Missing or invalid configuration. Fatal before any pass starts."""

    def __init__(self, message: str, key: str | None = None) -> None:
        details = {"key": key} if key else {}
        super().__init__(message, "CONFIG_ERROR", details)


class TransformError(ScreenSyncError):
    """The executor could not produce one output. Recoverable per file/profile."""

    def __init__(self, message: str, path: str | None = None, code: int | None = None) -> None:
        details: dict[str, Any] = {}
        if path:
            details["path"] = path
        if code is not None:
            details["code"] = code
        super().__init__(message, "TRANSFORM_ERROR", details)


class FilesystemError(ScreenSyncError):
    """An entry could not be read or removed. Recoverable per entry."""

    def __init__(self, message: str, path: str | None = None) -> None:
        super().__init__(message, "FILESYSTEM_ERROR", {"path": path} if path else {})
