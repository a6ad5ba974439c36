from __future__ import annotations

import argparse
import asyncio
import json
import logging
import sys
from typing import Any, AsyncIterator, Callable, Optional

import websockets

from livediff.logs import configure_logging
from livediff.plugins import PluginLoader
from livediff_rpc.frames import EVENT_DONE, EVENT_ERROR, EVENT_RESULT, FRAME_PAYLOAD_KEY, frame_event
from livediff_rpc.link import ClientResponse, RemoteError, RpcLink

logger = logging.getLogger(__name__)


class WebSocketTransport:
    """Opens one websocket per call against a ``livediff_rpc.server`` app."""

    def __init__(
        self,
        base_url: str,
        *,
        open_timeout: float = 5.0,
        ping_interval: Optional[float] = 20.0,
        ping_timeout: Optional[float] = 20.0,
        connect: Optional[Callable[..., Any]] = None,
    ) -> None:
        self.base_url = str(base_url).rstrip("/")
        self.open_timeout = open_timeout
        self.ping_interval = ping_interval
        self.ping_timeout = ping_timeout
        self._connect = connect or websockets.connect

    def url_for(self, path: str) -> str:
        return f"{self.base_url}/ws/{str(path).strip('/')}"

    async def request(self, path: str, input: Any) -> ClientResponse:
        async def _body() -> Any:
            ws = await self._connect(
                self.url_for(path),
                open_timeout=self.open_timeout,
                ping_interval=self.ping_interval,
                ping_timeout=self.ping_timeout,
            )
            try:
                await ws.send(json.dumps({"input": input}))
                first = await _recv_frame(ws)
            except BaseException:
                await ws.close()
                raise

            event = frame_event(first)
            if event == EVENT_RESULT:
                await ws.close()
                return first.get(FRAME_PAYLOAD_KEY)
            if event == EVENT_ERROR:
                await ws.close()
                raise RemoteError(str(first.get("message", "remote error")))
            return self._frames(ws, first)

        return ClientResponse(body=_body, headers={"path": path})

    @staticmethod
    async def _frames(ws: Any, first: Any) -> AsyncIterator[Any]:
        try:
            frame = first
            while True:
                event = frame_event(frame)
                if event == EVENT_DONE:
                    return
                if event == EVENT_ERROR:
                    raise RemoteError(str(frame.get("message", "remote error")))
                yield frame
                frame = await _recv_frame(ws)
        finally:
            await ws.close()


async def _recv_frame(ws: Any) -> Any:
    raw = await ws.recv()
    if isinstance(raw, (bytes, bytearray)):
        raw = raw.decode("utf-8")
    return json.loads(raw)


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Subscribe to a livediff procedure and print each state.")
    parser.add_argument("path", type=str)
    parser.add_argument("--url", type=str, default="ws://127.0.0.1:8020")
    parser.add_argument("--input", type=str, default="null", help="JSON encoded procedure input.")
    parser.add_argument("--plugin", action="append", default=None, help="Link plugin module (repeatable).")
    parser.add_argument("--limit", type=int, default=0, help="Stop after this many states (0 = no limit).")
    parser.add_argument("--log-level", type=str, default="warning")
    parser.add_argument("--log-path", type=str, default=None)
    return parser


async def _run(args: argparse.Namespace, input: Any) -> int:
    configure_logging(log_path=args.log_path, level=args.log_level)
    plugins, errors = PluginLoader(args.plugin if args.plugin is not None else ["json_diff_link"]).load()
    for error in errors:
        logger.error("plugin=%s %s", error.module_name, error.error)
    if errors:
        return 2

    link = RpcLink(WebSocketTransport(args.url), plugins=plugins)
    received = 0
    stream = link.subscribe(args.path, input)
    try:
        async for state in stream:
            sys.stdout.write(json.dumps(state, ensure_ascii=True, sort_keys=True) + "\n")
            sys.stdout.flush()
            received += 1
            if args.limit > 0 and received >= args.limit:
                break
    except RemoteError as exc:
        logger.error("remote error path=%s: %s", args.path, exc)
        return 1
    finally:
        await stream.aclose()
    return 0


def main() -> None:
    parser = _build_parser()
    args = parser.parse_args()
    try:
        input = json.loads(args.input)
    except ValueError as exc:
        parser.error(f"--input must be JSON: {exc}")
    raise SystemExit(asyncio.run(_run(args, input)))


if __name__ == "__main__":
    main()
