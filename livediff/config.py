from __future__ import annotations

import inspect
from dataclasses import dataclass
from typing import Any, Awaitable, Callable, Mapping, Optional, Union

DEFAULT_ORDER = 1_000_000
DEFAULT_META_KEY = "json_diff"

IncludePredicate = Callable[[Any], Union[bool, Awaitable[bool]]]
Include = Union[bool, IncludePredicate]


@dataclass(slots=True)
class JsonDiffConfig:
    """Activation policy and ordering for the json diff plugins."""

    include: Include = False
    order: int = DEFAULT_ORDER
    meta_key: str = DEFAULT_META_KEY
    warn_on_unrecognized: bool = True

    @classmethod
    def from_mapping(cls, raw: Optional[Mapping[str, Any]]) -> "JsonDiffConfig":
        cfg = raw if isinstance(raw, Mapping) else {}
        include = cfg.get("include", False)
        if not callable(include):
            include = _as_bool(include, default=False)
        meta_key = cfg.get("meta_key")
        return cls(
            include=include,
            order=_as_int(cfg.get("order"), default=DEFAULT_ORDER),
            meta_key=meta_key.strip() if isinstance(meta_key, str) and meta_key.strip() else DEFAULT_META_KEY,
            warn_on_unrecognized=_as_bool(cfg.get("warn_on_unrecognized"), default=True),
        )


async def resolve_include(include: Include, options: Any) -> bool:
    """Evaluate a bool, sync predicate or async predicate for one call."""
    if not callable(include):
        return bool(include)
    result = include(options)
    if inspect.isawaitable(result):
        result = await result
    return bool(result)


def _as_bool(value: Any, *, default: bool) -> bool:
    if value is None:
        return default
    if isinstance(value, bool):
        return value
    if isinstance(value, str):
        normalized = value.strip().lower()
        if normalized in {"1", "true", "yes", "on"}:
            return True
        if normalized in {"0", "false", "no", "off", ""}:
            return False
        return default
    return bool(value)


def _as_int(value: Any, *, default: int) -> int:
    if value is None:
        return default
    try:
        return int(value)
    except Exception:
        return default
