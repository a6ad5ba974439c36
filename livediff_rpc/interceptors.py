from __future__ import annotations

from dataclasses import dataclass, field, replace
from typing import Any, Awaitable, Callable, Dict, Optional, Sequence

from livediff_rpc.procedures import Procedure

NextCall = Callable[[], Awaitable[Any]]


async def _unset_next() -> Any:
    raise RuntimeError("Interceptor chain was not wired.")


@dataclass(slots=True)
class InterceptorOptions:
    """What an interceptor sees for one call; ``next`` runs the rest of the chain."""

    path: str
    input: Any = None
    context: Dict[str, Any] = field(default_factory=dict)
    procedure: Optional[Procedure] = None
    next: NextCall = _unset_next


Interceptor = Callable[[InterceptorOptions], Awaitable[Any]]


async def run_interceptors(
    interceptors: Sequence[Interceptor],
    options: InterceptorOptions,
    call: NextCall,
) -> Any:
    """Run ``call`` wrapped by ``interceptors``; the first one is outermost."""
    chain = list(interceptors)

    async def _dispatch(index: int) -> Any:
        if index >= len(chain):
            return await call()

        async def _next() -> Any:
            return await _dispatch(index + 1)

        return await chain[index](replace(options, next=_next))

    return await _dispatch(0)


def is_async_iterator(value: Any) -> bool:
    return callable(getattr(value, "__aiter__", None)) and callable(getattr(value, "__anext__", None))
