from __future__ import annotations

import asyncio
from typing import Any, AsyncIterator, Dict, List, Mapping

from livediff_rpc.procedures import Procedure, Router, procedure


def _as_int(value: Any, *, default: int) -> int:
    try:
        return int(value)
    except Exception:
        return default


def _as_float(value: Any, *, default: float) -> float:
    try:
        return float(value)
    except Exception:
        return default


def _options(raw: Any) -> Mapping[str, Any]:
    return raw if isinstance(raw, Mapping) else {}


@procedure(meta={"json_diff": True})
async def counter(input: Any, context: Dict[str, Any]) -> AsyncIterator[Dict[str, Any]]:
    """Counts up to ``limit``, repeating every value once."""
    options = _options(input)
    limit = max(0, _as_int(options.get("limit"), default=5))
    interval = max(0.0, _as_float(options.get("interval"), default=0.5))
    for step in range(limit * 2):
        yield {"count": step // 2}
        if interval:
            await asyncio.sleep(interval)


@procedure()
async def board(input: Any, context: Dict[str, Any]) -> AsyncIterator[Dict[str, Any]]:
    """Task board snapshots; only diffed when the handler includes all streams."""
    options = _options(input)
    interval = max(0.0, _as_float(options.get("interval"), default=0.5))
    names = [str(name) for name in options.get("tasks", ["design", "build", "ship"])]
    tasks: List[Dict[str, Any]] = []
    yield {"title": "board", "tasks": [dict(task) for task in tasks]}
    for name in names:
        tasks.append({"name": name, "done": False})
        yield {"title": "board", "tasks": [dict(task) for task in tasks]}
        if interval:
            await asyncio.sleep(interval)
    for task in tasks:
        task["done"] = True
        yield {"title": "board", "tasks": [dict(task) for task in tasks]}
        if interval:
            await asyncio.sleep(interval)


@procedure()
async def ping(input: Any, context: Dict[str, Any]) -> Dict[str, Any]:
    return {"pong": True, "input": input, "transport": context.get("transport")}


def build_demo_router() -> Router:
    procedures: Dict[str, Procedure] = {
        "counter": counter,
        "board": board,
        "ping": ping,
    }
    return Router(procedures)
