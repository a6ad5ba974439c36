from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any, AsyncIterator, Awaitable, Callable, Dict, Iterable, List, Optional, Protocol

from livediff.plugins.interfaces import LinkPlugin
from livediff.producer import close_upstream
from livediff_rpc.frames import FRAME_PAYLOAD_KEY
from livediff_rpc.interceptors import Interceptor, InterceptorOptions, is_async_iterator, run_interceptors

logger = logging.getLogger(__name__)


class RemoteError(RuntimeError):
    """The server reported a failure for the call."""


@dataclass(slots=True)
class ClientResponse:
    """Response handle; ``body()`` yields a value or an async iterator of frames."""

    body: Callable[[], Awaitable[Any]]
    headers: Dict[str, Any] = field(default_factory=dict)


class Transport(Protocol):
    async def request(self, path: str, input: Any) -> ClientResponse:
        ...


@dataclass(slots=True)
class LinkOptions:
    client_interceptors: List[Interceptor] = field(default_factory=list)


class RpcLink:
    """Client end of the RPC: transport plus plugin-registered interceptors."""

    def __init__(
        self,
        transport: Transport,
        *,
        plugins: Optional[Iterable[LinkPlugin]] = None,
        options: Optional[LinkOptions] = None,
    ) -> None:
        self.transport = transport
        self.options = options or LinkOptions()
        self.plugins = sorted(plugins or [], key=lambda plugin: getattr(plugin, "order", 0))
        for plugin in self.plugins:
            plugin.init(self.options)
            logger.info("link plugin=%s order=%s", getattr(plugin, "name", "?"), getattr(plugin, "order", 0))

    async def call(self, path: str, input: Any = None, context: Optional[Dict[str, Any]] = None) -> ClientResponse:
        async def _request() -> ClientResponse:
            return await self.transport.request(path, input)

        options = InterceptorOptions(path=path, input=input, context=dict(context or {}))
        return await run_interceptors(self.options.client_interceptors, options, _request)

    async def fetch(self, path: str, input: Any = None, context: Optional[Dict[str, Any]] = None) -> Any:
        """Single-shot call; raises ``TypeError`` if the server answered with a stream."""
        response = await self.call(path, input, context)
        body = await response.body()
        if is_async_iterator(body):
            await close_upstream(body)
            raise TypeError(f"Procedure '{path}' returned a stream; use subscribe().")
        return body

    async def subscribe(
        self,
        path: str,
        input: Any = None,
        context: Optional[Dict[str, Any]] = None,
    ) -> AsyncIterator[Any]:
        """Yield the payload of every frame the server streams back."""
        response = await self.call(path, input, context)
        body = await response.body()
        if not is_async_iterator(body):
            yield body
            return
        try:
            async for frame in body:
                yield _unwrap(frame)
        finally:
            await close_upstream(body)


def _unwrap(frame: Any) -> Any:
    if isinstance(frame, dict) and FRAME_PAYLOAD_KEY in frame:
        return frame[FRAME_PAYLOAD_KEY]
    return frame
