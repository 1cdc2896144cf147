"""
Error taxonomy for graph reconciliation.
"""

from __future__ import annotations

from collections.abc import Iterable
from typing import Any


class BridgeError(Exception):
    """Base class for every error raised by the bridge."""


class MetadataUnavailableError(BridgeError):
    """Raised when structural inspection of a type cannot be performed."""

    def __init__(self, subject: Any, reason: str | None = None):
        self.subject = subject
        self.reason = reason
        msg = f"Cannot read type metadata for {subject!r}"
        if reason:
            msg += f": {reason}"
        super().__init__(msg)


class NotFoundError(BridgeError):
    """Raised when no candidate exists for a requested key."""

    def __init__(self, key: Any, detail: str | None = None):
        self.key = key
        msg = f"No binding found for {key}"
        if detail:
            msg += f" ({detail})"
        super().__init__(msg)


class AmbiguousBindingError(BridgeError):
    """Raised when several equally valid candidates match a request."""

    def __init__(self, key: Any, candidates: Iterable[str]):
        self.key = key
        self.candidates = list(candidates)
        names = ", ".join(self.candidates) if self.candidates else "<none>"
        super().__init__(f"Ambiguous binding for {key}: candidates [{names}], none marked primary")


class UnsatisfiedDependencyError(NotFoundError):
    """Raised when neither graph can satisfy an injection point."""

    def __init__(self, key: Any, injection_point: Any):
        self.injection_point = injection_point
        super().__init__(key, f"required by {injection_point}")


class CircularDependencyError(BridgeError):
    """Raised when construction re-enters a key that is still being built."""

    def __init__(self, cycle: list[Any]):
        self.cycle = cycle
        cycle_str = " -> ".join(str(key) for key in cycle)
        super().__init__(f"Circular dependency detected: {cycle_str}")


class ConflictingBindingError(BridgeError):
    """Raised at merge time when two providers compete for the same key."""

    def __init__(self, key: Any, sources: Iterable[Any]):
        self.key = key
        self.sources = list(sources)
        sources_str = ", ".join(str(source) for source in self.sources)
        super().__init__(f"Conflicting bindings for {key} from [{sources_str}]")
