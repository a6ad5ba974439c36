"""Snapshot-diff-patch synchronisation of JSON values over ordered streams."""

from livediff.config import JsonDiffConfig, resolve_include
from livediff.consumer import PatchConsumer, ReconstructedState, patch_stream
from livediff.engine import JsonPatchEngine, PatchEngine, apply_patch, compute_patch
from livediff.envelope import (
    DeltaEnvelope,
    InitialEnvelope,
    PatchOp,
    PatchOperation,
    UnrecognizedMessage,
    decode_envelope,
    delta_envelope,
    encode_envelope,
    initial_envelope,
    is_envelope,
)
from livediff.errors import (
    DiffComputationError,
    EngineError,
    LiveDiffError,
    PatchApplicationError,
    ProtocolViolationError,
)
from livediff.producer import DiffProducer, diff_stream

__all__ = [
    "DeltaEnvelope",
    "DiffComputationError",
    "DiffProducer",
    "EngineError",
    "InitialEnvelope",
    "JsonDiffConfig",
    "JsonPatchEngine",
    "LiveDiffError",
    "PatchApplicationError",
    "PatchConsumer",
    "PatchEngine",
    "PatchOp",
    "PatchOperation",
    "ProtocolViolationError",
    "ReconstructedState",
    "UnrecognizedMessage",
    "apply_patch",
    "compute_patch",
    "decode_envelope",
    "delta_envelope",
    "diff_stream",
    "encode_envelope",
    "initial_envelope",
    "is_envelope",
    "patch_stream",
    "resolve_include",
]
