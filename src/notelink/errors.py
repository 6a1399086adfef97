"""Exception types for notelink.

Only ConfigurationError ever reaches a caller of the public API. The other
errors are raised internally and absorbed where the degraded result is
well-defined (fallback discovery, skipped files).
"""

from __future__ import annotations

import json
from pathlib import Path
from typing import Any


class NotelinkError(Exception):
    """Base class for notelink errors."""

    code = "NOTELINK_ERROR"

    def __init__(self, message: str, details: dict[str, Any] | None = None) -> None:
        self.message = message
        self.details = details or {}
        super().__init__(message)

    def to_json(self) -> str:
        payload: dict[str, Any] = {"error": self.code, "message": self.message}
        if self.details:
            payload["details"] = self.details
        return json.dumps(payload, default=str)


class ConfigurationError(NotelinkError):
    """Raised when configuration is missing or invalid."""

    code = "CONFIGURATION_ERROR"


class DiscoveryError(NotelinkError):
    """Raised when the external search tool is missing, fails, or times out."""

    code = "DISCOVERY_ERROR"

    def __init__(self, tool: str, reason: str) -> None:
        self.tool = tool
        self.reason = reason
        super().__init__(f"{tool}: {reason}", {"tool": tool, "reason": reason})


class ParseError(NotelinkError):
    """Raised when a markdown file cannot be read."""

    code = "PARSE_ERROR"

    def __init__(self, path: Path, message: str) -> None:
        self.path = path
        super().__init__(f"{path}: {message}", {"path": str(path)})
