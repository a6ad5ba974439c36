from __future__ import annotations

import copy
import unittest
from typing import Any, AsyncIterator, Dict, Iterable, List

from livediff.errors import ProtocolViolationError
from livediff_plugins.json_diff import JsonDiffHandlerPlugin, create_plugin
from livediff_plugins.json_diff_link import JsonDiffLinkPlugin
from livediff_rpc.handler import Handler
from livediff_rpc.interceptors import InterceptorOptions, is_async_iterator
from livediff_rpc.link import ClientResponse, RpcLink
from livediff_rpc.procedures import Procedure, Router, procedure


async def _aiter(values: Iterable[Any]) -> AsyncIterator[Any]:
    for value in values:
        yield value


def _build_router() -> Router:
    @procedure(meta={"json_diff": True})
    async def flagged(input: Any, context: Dict[str, Any]) -> AsyncIterator[Any]:
        for value in input:
            yield value

    async def plain(input: Any, context: Dict[str, Any]) -> AsyncIterator[Any]:
        for value in input:
            yield value

    def single(input: Any, context: Dict[str, Any]) -> Any:
        return {"echo": input}

    return Router(
        {
            "flagged": flagged,
            "plain": Procedure(handler=plain),
            "single": Procedure(handler=single),
        }
    )


class _FrameTransport:
    """Replays prepared frames, as the websocket transport would deliver them."""

    def __init__(self, frames: List[Any], *, single: Any = None) -> None:
        self.frames = frames
        self.single = single
        self.requests: List[tuple] = []

    async def request(self, path: str, input: Any) -> ClientResponse:
        self.requests.append((path, input))

        async def _body() -> Any:
            if self.single is not None:
                return self.single
            return _aiter(copy.deepcopy(self.frames))

        return ClientResponse(body=_body)


COUNTS = [{"count": 0}, {"count": 1}, {"count": 1}, {"count": 2}]


class TestJsonDiffHandlerPlugin(unittest.IsolatedAsyncioTestCase):
    async def _collect(self, handler: Handler, path: str, input: Any) -> List[Any]:
        result = await handler.call(path, input)
        self.assertTrue(is_async_iterator(result))
        return [item async for item in result]

    async def test_metadata_flag_enables_diffing(self) -> None:
        handler = Handler(_build_router(), plugins=[JsonDiffHandlerPlugin()])

        envelopes = await self._collect(handler, "flagged", COUNTS)

        self.assertEqual(envelopes[0], {"data": {"count": 0}, "patch": []})
        self.assertEqual(envelopes[2], {"patch": []})
        self.assertEqual(len(envelopes), 4)

    async def test_unflagged_streams_are_untouched_by_default(self) -> None:
        handler = Handler(_build_router(), plugins=[JsonDiffHandlerPlugin()])

        self.assertEqual(await self._collect(handler, "plain", COUNTS), COUNTS)

    async def test_include_true_diffs_every_stream(self) -> None:
        handler = Handler(_build_router(), plugins=[JsonDiffHandlerPlugin(include=True)])

        envelopes = await self._collect(handler, "plain", COUNTS)

        self.assertIn("data", envelopes[0])
        self.assertTrue(all("data" not in envelope for envelope in envelopes[1:]))

    async def test_single_values_are_never_diffed(self) -> None:
        handler = Handler(_build_router(), plugins=[JsonDiffHandlerPlugin(include=True)])

        self.assertEqual(await handler.call("single", 3), {"echo": 3})

    async def test_async_predicate_is_evaluated_once_per_call(self) -> None:
        seen: List[str] = []

        async def include(options: InterceptorOptions) -> bool:
            seen.append(options.path)
            return options.path == "plain"

        handler = Handler(_build_router(), plugins=[JsonDiffHandlerPlugin(include=include)])

        envelopes = await self._collect(handler, "plain", COUNTS)
        self.assertIn("data", envelopes[0])
        self.assertEqual(seen, ["plain"])

        flagged = await self._collect(handler, "flagged", COUNTS)
        self.assertIn("data", flagged[0])
        self.assertEqual(seen, ["plain"])

    async def test_create_plugin_reads_config(self) -> None:
        plugin = create_plugin({"include": True, "order": 3})

        self.assertIsInstance(plugin, JsonDiffHandlerPlugin)
        self.assertTrue(plugin.include)
        self.assertEqual(plugin.order, 3)

    async def test_outer_interceptors_see_envelopes(self) -> None:
        class _Recorder:
            name = "recorder"
            order = 0

            def __init__(self) -> None:
                self.results: List[Any] = []

            def init(self, options: Any) -> None:
                options.client_interceptors.append(self._intercept)

            async def _intercept(self, options: InterceptorOptions) -> Any:
                result = await options.next()
                self.results.append(result)
                return result

        recorder = _Recorder()
        handler = Handler(_build_router(), plugins=[JsonDiffHandlerPlugin(), recorder])

        self.assertEqual([plugin.name for plugin in handler.plugins], ["recorder", "json_diff"])
        envelopes = await self._collect(handler, "flagged", COUNTS)
        self.assertEqual(len(recorder.results), 1)
        self.assertEqual(envelopes[0], {"data": {"count": 0}, "patch": []})


class TestJsonDiffLinkPlugin(unittest.IsolatedAsyncioTestCase):
    async def _envelope_frames(self, values: List[Any]) -> List[Any]:
        handler = Handler(_build_router(), plugins=[JsonDiffHandlerPlugin()])
        result = await handler.call("flagged", values)
        return [{"event": "message", "json": envelope} async for envelope in result]

    async def test_reconstructs_streamed_values(self) -> None:
        frames = await self._envelope_frames(COUNTS)
        link = RpcLink(_FrameTransport(frames), plugins=[JsonDiffLinkPlugin()])

        states = [copy.deepcopy(state) async for state in link.subscribe("flagged", COUNTS)]

        self.assertEqual(states, COUNTS)

    async def test_each_call_has_its_own_state(self) -> None:
        first_frames = await self._envelope_frames([{"room": "a", "n": 1}, {"room": "a", "n": 2}])
        second_frames = await self._envelope_frames([{"room": "b", "n": 9}])
        link_a = RpcLink(_FrameTransport(first_frames), plugins=[JsonDiffLinkPlugin()])
        link_b = RpcLink(_FrameTransport(second_frames), plugins=[JsonDiffLinkPlugin()])

        stream_a = link_a.subscribe("flagged")
        stream_b = link_b.subscribe("flagged")
        self.assertEqual(await stream_a.__anext__(), {"room": "a", "n": 1})
        self.assertEqual(await stream_b.__anext__(), {"room": "b", "n": 9})
        self.assertEqual(await stream_a.__anext__(), {"room": "a", "n": 2})
        await stream_a.aclose()
        await stream_b.aclose()

    async def test_frames_without_payload_pass_through(self) -> None:
        frames = [
            {"event": "message", "json": {"data": {"count": 0}, "patch": []}},
            {"event": "message"},
            {"event": "message", "json": {"unrelated": True}},
            {"event": "message", "json": {"patch": [{"op": "replace", "path": "/count", "value": 1}]}},
        ]
        link = RpcLink(_FrameTransport(frames), plugins=[JsonDiffLinkPlugin()])

        response = await link.call("flagged")
        body = await response.body()
        with self.assertLogs("livediff_plugins.json_diff_link", level="WARNING"):
            mapped = [copy.deepcopy(frame) async for frame in body]

        self.assertEqual(mapped[0], {"event": "message", "json": {"count": 0}})
        self.assertEqual(mapped[1], {"event": "message"})
        self.assertEqual(mapped[2], {"event": "message", "json": {"unrelated": True}})
        self.assertEqual(mapped[3], {"event": "message", "json": {"count": 1}})

    async def test_patch_before_initial_is_terminal(self) -> None:
        frames = [{"event": "message", "json": {"patch": [{"op": "replace", "path": "/count", "value": 5}]}}]
        link = RpcLink(_FrameTransport(frames), plugins=[JsonDiffLinkPlugin()])

        with self.assertRaises(ProtocolViolationError):
            async for _ in link.subscribe("flagged"):
                pass

    async def test_single_value_body_is_untouched(self) -> None:
        link = RpcLink(_FrameTransport([], single={"pong": True}), plugins=[JsonDiffLinkPlugin()])

        self.assertEqual(await link.fetch("ping"), {"pong": True})


if __name__ == "__main__":
    unittest.main()
