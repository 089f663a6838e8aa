"""Exception hierarchy for evmenu sessions."""

from __future__ import annotations

from typing import Any, Optional, Sequence


class MenuSessionError(RuntimeError):
    """Base class for every fatal session error."""


class ConstructionError(MenuSessionError):
    """Raised when log records describe a malformed target or action."""


class ResolutionError(MenuSessionError):
    """Raised when a selector, contract or instance cannot be resolved."""


class ArtifactError(MenuSessionError):
    """Raised when compiled contract artifacts cannot be loaded."""


class ExecutionError(MenuSessionError):
    """Raised when the execution engine reports a failed call.

    ``error_name`` and ``error_args`` carry the decoded revert payload when it
    matches a known error fragment.
    """

    def __init__(
        self,
        message: str,
        *,
        error_name: Optional[str] = None,
        error_args: Sequence[Any] = (),
        data: bytes = b"",
    ) -> None:
        super().__init__(message)
        self.error_name = error_name
        self.error_args = tuple(error_args)
        self.data = data


__all__ = [
    "ArtifactError",
    "ConstructionError",
    "ExecutionError",
    "MenuSessionError",
    "ResolutionError",
]
