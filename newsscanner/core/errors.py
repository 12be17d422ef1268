from __future__ import annotations

from dataclasses import dataclass
from typing import Optional


class ScannerError(Exception):
    """Base class for scanner failures."""


class RetrievalError(ScannerError):
    """Every proxy attempt for one URL failed."""

    def __init__(self, reason: str, kind: str = "other", url: Optional[str] = None) -> None:
        self.reason = reason
        self.kind = kind
        self.url = url
        super().__init__(f"Failed to retrieve content. Reason: {reason}")


class ExtractionError(ScannerError):
    """No selector or fallback produced usable text."""


class ClassificationError(ScannerError):
    """The classifier call failed or returned malformed JSON."""


class ScanInputError(ScannerError, ValueError):
    """Structural input error that aborts a scan before any network activity."""


@dataclass(frozen=True)
class DiscoveryDegradation:
    """Why link discovery fell back to the structural strategy. Logged, never raised."""

    source: str
    reason: str
    error: Optional[str] = None


__all__ = [
    "ScannerError",
    "RetrievalError",
    "ExtractionError",
    "ClassificationError",
    "ScanInputError",
    "DiscoveryDegradation",
]
