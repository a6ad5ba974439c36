from __future__ import annotations

from typing import Any, Protocol

import jsonpatch
import jsonpointer

from livediff.envelope import Patch
from livediff.errors import DiffComputationError, PatchApplicationError

_APPLY_ERRORS = (
    jsonpatch.JsonPatchException,
    jsonpointer.JsonPointerException,
    TypeError,
    KeyError,
    IndexError,
    ValueError,
)


class PatchEngine(Protocol):
    """Structural diff/patch collaborator used by producers and consumers."""

    def diff(self, previous: Any, current: Any) -> Patch:
        ...

    def apply(self, target: Any, patch: Patch) -> Any:
        ...


class JsonPatchEngine:
    """RFC 6902 engine backed by python-json-patch."""

    def diff(self, previous: Any, current: Any) -> Patch:
        return compute_patch(previous, current)

    def apply(self, target: Any, patch: Patch) -> Any:
        return apply_patch(target, patch)


def compute_patch(previous: Any, current: Any) -> Patch:
    """Return the operations turning ``previous`` into ``current``.

    Structurally equal inputs give an empty list.
    """
    try:
        return list(jsonpatch.make_patch(previous, current).patch)
    except (TypeError, ValueError) as exc:
        raise DiffComputationError(f"Could not diff values: {exc}") from exc


def apply_patch(target: Any, patch: Patch) -> Any:
    """Apply ``patch`` to ``target`` in place, operation by operation.

    Returns the resulting document. It is ``target`` itself unless an
    operation replaced the document root.
    """
    if not patch:
        return target
    try:
        return jsonpatch.apply_patch(target, patch, in_place=True)
    except _APPLY_ERRORS as exc:
        raise PatchApplicationError(f"Patch does not apply: {exc}", patch=patch) from exc


default_engine = JsonPatchEngine()
