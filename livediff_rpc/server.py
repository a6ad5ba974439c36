from __future__ import annotations

import argparse
import logging
from typing import Any, Dict, List, Optional

from fastapi import FastAPI, HTTPException, WebSocket, WebSocketDisconnect

from livediff.logs import configure_logging
from livediff.plugins import PluginLoader
from livediff.producer import close_upstream
from livediff_rpc.frames import RpcRequest, done_frame, error_frame, message_frame, result_frame
from livediff_rpc.handler import Handler
from livediff_rpc.interceptors import is_async_iterator
from livediff_rpc.procedures import ProcedureNotFound, Router

logger = logging.getLogger(__name__)


def create_app(handler: Handler) -> FastAPI:
    app = FastAPI(
        title="livediff RPC",
        description="Procedures over HTTP (single value) and websocket (single value or stream).",
        version="0.1.0",
    )
    app.state.handler = handler

    @app.get("/api/health")
    async def health() -> dict:
        return {
            "status": "ok",
            "procedures": handler.router.paths(),
            "plugins": [str(getattr(plugin, "name", "")) for plugin in handler.plugins],
        }

    @app.post("/rpc/{path:path}")
    async def rpc_call(path: str, request: RpcRequest) -> dict:
        try:
            result = await handler.call(path, request.input, context={"transport": "http"})
        except ProcedureNotFound as exc:
            raise HTTPException(status_code=404, detail=str(exc)) from exc
        if is_async_iterator(result):
            await close_upstream(result)
            raise HTTPException(status_code=400, detail=f"Procedure '{path}' streams; use /ws/{path}.")
        return result_frame(result)

    @app.websocket("/ws/{path:path}")
    async def ws_call(websocket: WebSocket, path: str) -> None:
        await websocket.accept()
        try:
            request = RpcRequest.model_validate(await websocket.receive_json())
        except WebSocketDisconnect:
            return
        except ValueError as exc:
            await websocket.send_json(error_frame(f"Invalid request: {exc}"))
            await websocket.close()
            return

        try:
            result = await handler.call(path, request.input, context={"transport": "websocket"})
            if is_async_iterator(result):
                await _stream(websocket, result)
                await websocket.send_json(done_frame())
            else:
                await websocket.send_json(result_frame(result))
        except WebSocketDisconnect:
            logger.info("client disconnected path=%s", path)
            return
        except Exception as exc:
            logger.warning("call failed path=%s error=%s", path, exc)
            await websocket.send_json(error_frame(str(exc)))
        await websocket.close()

    return app


async def _stream(websocket: WebSocket, iterator: Any) -> None:
    try:
        async for item in iterator:
            await websocket.send_json(message_frame(item))
    finally:
        await close_upstream(iterator)


def build_handler(
    router: Router,
    *,
    plugin_modules: Optional[List[str]] = None,
    plugin_config: Optional[Dict[str, Dict[str, Any]]] = None,
) -> Handler:
    plugins, errors = PluginLoader(plugin_modules or [], plugin_config=plugin_config).load()
    for error in errors:
        logger.error("plugin=%s %s", error.module_name, error.error)
    return Handler(router, plugins=plugins)


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Run the livediff demo RPC server.")
    parser.add_argument("--host", type=str, default="127.0.0.1")
    parser.add_argument("--port", type=int, default=8020)
    parser.add_argument("--plugin", action="append", default=None, help="Handler plugin module (repeatable).")
    parser.add_argument("--include-all", action="store_true", help="Diff every stream, not just flagged ones.")
    parser.add_argument("--log-level", type=str, default="info")
    parser.add_argument("--log-path", type=str, default=None)
    return parser


def main() -> None:
    parser = _build_parser()
    args = parser.parse_args()
    configure_logging(log_path=args.log_path, level=args.log_level)

    from livediff_rpc.demo import build_demo_router

    plugin_modules = args.plugin if args.plugin is not None else ["json_diff"]
    handler = build_handler(
        build_demo_router(),
        plugin_modules=plugin_modules,
        plugin_config={"json_diff": {"include": args.include_all}},
    )
    app = create_app(handler)
    import uvicorn

    uvicorn.run(
        app,
        host=args.host,
        port=max(1, int(args.port)),
        log_level=str(args.log_level),
    )


if __name__ == "__main__":
    main()
