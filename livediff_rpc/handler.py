from __future__ import annotations

import inspect
import logging
from dataclasses import dataclass, field
from typing import Any, Dict, Iterable, List, Optional

from livediff.plugins.interfaces import HandlerPlugin
from livediff_rpc.interceptors import Interceptor, InterceptorOptions, run_interceptors
from livediff_rpc.procedures import Router

logger = logging.getLogger(__name__)


@dataclass(slots=True)
class HandlerOptions:
    client_interceptors: List[Interceptor] = field(default_factory=list)


class Handler:
    """Dispatches calls to router procedures through the interceptor chain."""

    def __init__(
        self,
        router: Router,
        *,
        plugins: Optional[Iterable[HandlerPlugin]] = None,
        options: Optional[HandlerOptions] = None,
    ) -> None:
        self.router = router
        self.options = options or HandlerOptions()
        self.plugins = sorted(plugins or [], key=lambda plugin: getattr(plugin, "order", 0))
        for plugin in self.plugins:
            plugin.init(self.options)
            logger.info("handler plugin=%s order=%s", getattr(plugin, "name", "?"), getattr(plugin, "order", 0))

    async def call(self, path: str, input: Any = None, context: Optional[Dict[str, Any]] = None) -> Any:
        """Return the procedure's value, or its async iterator for streams."""
        proc = self.router.resolve(path)
        call_context = dict(context or {})

        async def _invoke() -> Any:
            result = proc.handler(input, call_context)
            if inspect.isawaitable(result):
                result = await result
            return result

        options = InterceptorOptions(path=path, input=input, context=call_context, procedure=proc)
        return await run_interceptors(self.options.client_interceptors, options, _invoke)
