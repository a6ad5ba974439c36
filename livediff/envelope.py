from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, ClassVar, Dict, List, Mapping, Optional, Union

from pydantic import BaseModel, ConfigDict, Field

ENVELOPE_PATCH_KEY = "patch"
ENVELOPE_DATA_KEY = "data"

Patch = List[Dict[str, Any]]


class PatchOp(str, Enum):
    """RFC 6902 operation vocabulary."""

    ADD = "add"
    REMOVE = "remove"
    REPLACE = "replace"
    MOVE = "move"
    COPY = "copy"
    TEST = "test"


class PatchOperation(BaseModel):
    """One structural edit: a verb applied at a JSON pointer."""

    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    op: PatchOp
    path: str
    value: Optional[Any] = None
    from_: Optional[str] = Field(default=None, alias="from")

    @classmethod
    def from_raw(cls, raw: Mapping[str, Any]) -> "PatchOperation":
        return cls.model_validate(dict(raw))

    def to_dict(self) -> Dict[str, Any]:
        payload: Dict[str, Any] = {"op": self.op.value, "path": self.path}
        if self.op in (PatchOp.ADD, PatchOp.REPLACE, PatchOp.TEST):
            payload["value"] = self.value
        if self.op in (PatchOp.MOVE, PatchOp.COPY):
            payload["from"] = self.from_
        return payload


@dataclass(slots=True)
class InitialEnvelope:
    kind: ClassVar[str] = "initial"

    data: Any
    patch: Patch = field(default_factory=list)


@dataclass(slots=True)
class DeltaEnvelope:
    kind: ClassVar[str] = "delta"

    patch: Patch = field(default_factory=list)


@dataclass(slots=True)
class UnrecognizedMessage:
    kind: ClassVar[str] = "unrecognized"

    raw: Any


DecodedMessage = Union[InitialEnvelope, DeltaEnvelope, UnrecognizedMessage]


def initial_envelope(data: Any) -> Dict[str, Any]:
    return {ENVELOPE_DATA_KEY: data, ENVELOPE_PATCH_KEY: []}


def delta_envelope(patch: Patch) -> Dict[str, Any]:
    return {ENVELOPE_PATCH_KEY: patch}


def is_envelope(value: Any) -> bool:
    """True when ``value`` is a mapping carrying a ``patch`` list."""
    if not isinstance(value, Mapping):
        return False
    return isinstance(value.get(ENVELOPE_PATCH_KEY), list)


def decode_envelope(value: Any) -> DecodedMessage:
    """Classify a received message once, at the wire boundary.

    The initial envelope is recognised by the presence of the ``data`` key,
    whatever its value: ``{"data": None, "patch": []}`` seeds the state with
    ``None`` while ``{"patch": []}`` is an empty delta.
    """
    if not is_envelope(value):
        return UnrecognizedMessage(raw=value)
    patch = list(value[ENVELOPE_PATCH_KEY])
    if ENVELOPE_DATA_KEY in value:
        return InitialEnvelope(data=value[ENVELOPE_DATA_KEY], patch=patch)
    return DeltaEnvelope(patch=patch)


def encode_envelope(message: DecodedMessage) -> Any:
    if isinstance(message, InitialEnvelope):
        return {ENVELOPE_DATA_KEY: message.data, ENVELOPE_PATCH_KEY: list(message.patch)}
    if isinstance(message, DeltaEnvelope):
        return delta_envelope(list(message.patch))
    return message.raw


def describe_patch(patch: Patch) -> List[str]:
    lines: List[str] = []
    for raw in patch:
        try:
            operation = PatchOperation.from_raw(raw)
        except (TypeError, ValueError):
            lines.append(f"INVALID {raw!r}")
            continue
        lines.append(f"{operation.op.value.upper()} {operation.path}")
    return lines
