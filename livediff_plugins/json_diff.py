from __future__ import annotations

import logging
from typing import Any, Dict, Optional

from livediff.config import Include, JsonDiffConfig, resolve_include
from livediff.engine import PatchEngine
from livediff.producer import diff_stream
from livediff_rpc.handler import HandlerOptions
from livediff_rpc.interceptors import InterceptorOptions, is_async_iterator

logger = logging.getLogger(__name__)


class JsonDiffHandlerPlugin:
    """Sends streamed procedure results as an initial snapshot followed by patches.

    Initial message: ``{"data": ..., "patch": []}``; updates: ``{"patch": [...]}``.
    A procedure opts in with ``meta={"json_diff": True}``, which takes priority
    over ``include``. Single-value results are never touched.
    """

    name = "json_diff"

    def __init__(
        self,
        *,
        include: Include = False,
        order: Optional[int] = None,
        meta_key: Optional[str] = None,
        engine: Optional[PatchEngine] = None,
    ) -> None:
        defaults = JsonDiffConfig()
        self.include = include
        self.order = defaults.order if order is None else order
        self.meta_key = meta_key or defaults.meta_key
        self.engine = engine

    def init(self, options: HandlerOptions) -> None:
        options.client_interceptors.append(self._intercept)

    async def _intercept(self, options: InterceptorOptions) -> Any:
        meta = options.procedure.meta if options.procedure is not None else {}
        included = meta.get(self.meta_key) is True or await resolve_include(self.include, options)
        if not included:
            return await options.next()

        result = await options.next()
        if not is_async_iterator(result):
            return result

        logger.debug("json diff enabled path=%s", options.path)
        return diff_stream(result, engine=self.engine)


def create_plugin(config: Optional[Dict[str, Any]] = None) -> JsonDiffHandlerPlugin:
    cfg = JsonDiffConfig.from_mapping(config)
    return JsonDiffHandlerPlugin(include=cfg.include, order=cfg.order, meta_key=cfg.meta_key)
