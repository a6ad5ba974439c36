from __future__ import annotations

from typing import Any, Protocol


class HandlerPlugin(Protocol):
    """Server-side plugin; registers interceptors on the handler options."""

    name: str
    order: int

    def init(self, options: Any) -> None:
        ...


class LinkPlugin(Protocol):
    """Client-side plugin; registers interceptors on the link options."""

    name: str
    order: int

    def init(self, options: Any) -> None:
        ...
