from __future__ import annotations

import logging
from typing import Any, AsyncIterator, Dict, Optional

from livediff.config import JsonDiffConfig
from livediff.consumer import PatchConsumer
from livediff.engine import PatchEngine
from livediff.envelope import UnrecognizedMessage, decode_envelope
from livediff.producer import close_upstream
from livediff_rpc.frames import FRAME_PAYLOAD_KEY
from livediff_rpc.interceptors import InterceptorOptions, is_async_iterator
from livediff_rpc.link import ClientResponse, LinkOptions

logger = logging.getLogger(__name__)


class JsonDiffLinkPlugin:
    """Rebuilds full values from the envelopes sent by the ``json_diff`` plugin.

    Every streamed call gets its own reconstructed state, so concurrent
    subscriptions never share a document.
    """

    name = "json_diff_link"

    def __init__(
        self,
        *,
        order: Optional[int] = None,
        warn_on_unrecognized: bool = True,
        engine: Optional[PatchEngine] = None,
    ) -> None:
        self.order = JsonDiffConfig().order if order is None else order
        self.warn_on_unrecognized = warn_on_unrecognized
        self.engine = engine

    def init(self, options: LinkOptions) -> None:
        options.client_interceptors.append(self._intercept)

    async def _intercept(self, options: InterceptorOptions) -> ClientResponse:
        response: ClientResponse = await options.next()

        async def _body() -> Any:
            body = await response.body()
            if not is_async_iterator(body):
                return body
            return self._reconstruct(body)

        return ClientResponse(body=_body, headers=dict(response.headers))

    async def _reconstruct(self, frames: Any) -> AsyncIterator[Any]:
        consumer = PatchConsumer(engine=self.engine, warn_on_unrecognized=self.warn_on_unrecognized)
        try:
            async for frame in frames:
                yield self._map_frame(consumer, frame)
        finally:
            await close_upstream(frames)

    def _map_frame(self, consumer: PatchConsumer, frame: Any) -> Any:
        if not isinstance(frame, dict) or FRAME_PAYLOAD_KEY not in frame:
            logger.warning("Received frame without %s property", FRAME_PAYLOAD_KEY)
            return frame

        decoded = decode_envelope(frame[FRAME_PAYLOAD_KEY])
        state = consumer.dispatch(decoded)
        if isinstance(decoded, UnrecognizedMessage):
            return frame
        return {**frame, FRAME_PAYLOAD_KEY: state}


def create_plugin(config: Optional[Dict[str, Any]] = None) -> JsonDiffLinkPlugin:
    cfg = JsonDiffConfig.from_mapping(config)
    return JsonDiffLinkPlugin(order=cfg.order, warn_on_unrecognized=cfg.warn_on_unrecognized)
