from __future__ import annotations

from typing import Any, Dict, List, Optional


class LiveDiffError(Exception):
    """Base class for failures raised by the diff/patch stream protocol."""


class EngineError(LiveDiffError):
    """The diff/patch engine could not compute or apply a patch."""


class DiffComputationError(EngineError):
    pass


class PatchApplicationError(EngineError):
    """A patch did not resolve against the reconstructed document."""

    def __init__(self, message: str, *, patch: Optional[List[Dict[str, Any]]] = None) -> None:
        super().__init__(message)
        self.patch = list(patch) if patch is not None else []


class ProtocolViolationError(PatchApplicationError):
    """A patch-only envelope arrived before the initial snapshot."""
