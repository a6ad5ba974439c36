from __future__ import annotations

import logging
from typing import Any, AsyncIterable, AsyncIterator, Dict, Optional

from livediff.engine import PatchEngine, default_engine
from livediff.envelope import delta_envelope, initial_envelope

logger = logging.getLogger(__name__)

_ABSENT = object()


class DiffProducer:
    """Turns successive snapshots of one stream into envelopes.

    The first snapshot is sent whole, every later one as a patch against the
    snapshot before it. Snapshots are never mutated here.
    """

    def __init__(self, *, engine: Optional[PatchEngine] = None) -> None:
        self._engine = engine or default_engine
        self._previous: Any = _ABSENT
        self.count = 0

    @property
    def started(self) -> bool:
        return self._previous is not _ABSENT

    def encode(self, value: Any) -> Dict[str, Any]:
        if self._previous is _ABSENT:
            envelope = initial_envelope(value)
        else:
            envelope = delta_envelope(self._engine.diff(self._previous, value))
        self._previous = value
        self.count += 1
        logger.debug(
            "envelope=%s kind=%s ops=%s",
            self.count,
            "initial" if self.count == 1 else "delta",
            len(envelope["patch"]),
        )
        return envelope


async def diff_stream(
    source: AsyncIterable[Any],
    *,
    engine: Optional[PatchEngine] = None,
) -> AsyncIterator[Dict[str, Any]]:
    """Yield one envelope per snapshot pulled from ``source``."""
    producer = DiffProducer(engine=engine)
    iterator = source.__aiter__()
    try:
        async for value in iterator:
            yield producer.encode(value)
    finally:
        await close_upstream(iterator)


async def close_upstream(iterator: Any) -> None:
    aclose = getattr(iterator, "aclose", None)
    if callable(aclose):
        await aclose()
