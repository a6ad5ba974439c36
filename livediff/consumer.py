from __future__ import annotations

import copy
import logging
from typing import Any, AsyncIterable, AsyncIterator, Optional

from livediff.engine import PatchEngine, default_engine
from livediff.envelope import (
    DecodedMessage,
    DeltaEnvelope,
    InitialEnvelope,
    Patch,
    decode_envelope,
    describe_patch,
)
from livediff.errors import PatchApplicationError, ProtocolViolationError
from livediff.producer import close_upstream

logger = logging.getLogger(__name__)


class ReconstructedState:
    """Exclusively owned document rebuilt from one envelope stream.

    Seeds and patch operands are deep-copied on the way in, so the document
    never shares structure with the sender and can be patched in place.
    Readers get ``value`` and must treat it as read-only.
    """

    def __init__(self, *, engine: Optional[PatchEngine] = None) -> None:
        self._engine = engine or default_engine
        self._value: Any = None
        self.established = False
        self.failed = False
        self.revision = 0

    @property
    def value(self) -> Any:
        return self._value

    def seed(self, data: Any) -> Any:
        self._value = copy.deepcopy(data)
        self.established = True
        self.failed = False
        self.revision = 0
        return self._value

    def apply(self, patch: Patch) -> Any:
        if not self.established:
            raise ProtocolViolationError(
                "Received a patch before the initial snapshot.",
                patch=patch,
            )
        if self.failed:
            raise PatchApplicationError(
                "State is unusable after a failed patch; a new initial snapshot is required.",
                patch=patch,
            )
        try:
            self._value = self._engine.apply(self._value, copy.deepcopy(patch))
        except PatchApplicationError:
            # operations before the failing one were already applied in place
            self.failed = True
            raise
        self.revision += 1
        return self._value


class PatchConsumer:
    """Maps received messages to reconstructed snapshots for one stream."""

    def __init__(
        self,
        *,
        engine: Optional[PatchEngine] = None,
        warn_on_unrecognized: bool = True,
    ) -> None:
        self.state = ReconstructedState(engine=engine)
        self.warn_on_unrecognized = warn_on_unrecognized
        self.received = 0
        self.passthrough = 0

    def process(self, message: Any) -> Any:
        return self.dispatch(decode_envelope(message))

    def dispatch(self, decoded: DecodedMessage) -> Any:
        """Handle an already decoded message; unrecognized ones come back raw."""
        self.received += 1

        if isinstance(decoded, InitialEnvelope):
            return self.state.seed(decoded.data)

        if isinstance(decoded, DeltaEnvelope):
            if logger.isEnabledFor(logging.DEBUG):
                logger.debug("revision=%s ops=%s", self.state.revision + 1, describe_patch(decoded.patch))
            return self.state.apply(decoded.patch)

        self.passthrough += 1
        if self.warn_on_unrecognized:
            logger.warning(
                "Passing through message without a patch list (type=%s)",
                type(decoded.raw).__name__,
            )
        return decoded.raw


async def patch_stream(
    messages: AsyncIterable[Any],
    *,
    engine: Optional[PatchEngine] = None,
    warn_on_unrecognized: bool = True,
) -> AsyncIterator[Any]:
    """Yield the reconstructed snapshot after each received message."""
    consumer = PatchConsumer(engine=engine, warn_on_unrecognized=warn_on_unrecognized)
    iterator = messages.__aiter__()
    try:
        async for message in iterator:
            yield consumer.process(message)
    finally:
        await close_upstream(iterator)
