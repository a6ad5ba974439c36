"""Minimal RPC host: procedures, interceptor chains, websocket server and client."""

from livediff_rpc.handler import Handler, HandlerOptions
from livediff_rpc.interceptors import InterceptorOptions, is_async_iterator, run_interceptors
from livediff_rpc.link import ClientResponse, LinkOptions, RemoteError, RpcLink
from livediff_rpc.procedures import Procedure, ProcedureNotFound, Router, procedure

__all__ = [
    "ClientResponse",
    "Handler",
    "HandlerOptions",
    "InterceptorOptions",
    "LinkOptions",
    "Procedure",
    "ProcedureNotFound",
    "RemoteError",
    "Router",
    "RpcLink",
    "is_async_iterator",
    "procedure",
    "run_interceptors",
]
