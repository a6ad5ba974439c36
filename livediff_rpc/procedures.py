from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Callable, Dict, List, Mapping, Optional

ProcedureHandler = Callable[[Any, Dict[str, Any]], Any]


class ProcedureNotFound(LookupError):
    def __init__(self, path: str) -> None:
        super().__init__(f"No procedure registered at '{path}'.")
        self.path = path


@dataclass(slots=True)
class Procedure:
    """A callable endpoint plus the metadata plugins read to decide behaviour."""

    handler: ProcedureHandler
    meta: Dict[str, Any] = field(default_factory=dict)


def procedure(*, meta: Optional[Mapping[str, Any]] = None) -> Callable[[ProcedureHandler], Procedure]:
    def _wrap(handler: ProcedureHandler) -> Procedure:
        return Procedure(handler=handler, meta=dict(meta or {}))

    return _wrap


class Router:
    def __init__(self, procedures: Optional[Mapping[str, Procedure]] = None) -> None:
        self._procedures: Dict[str, Procedure] = {}
        for path, proc in (procedures or {}).items():
            self.add(path, proc)

    def add(self, path: str, proc: Procedure) -> None:
        normalized = _normalize_path(path)
        if not normalized:
            raise ValueError("Procedure path must be non-empty.")
        if not isinstance(proc, Procedure):
            proc = Procedure(handler=proc)
        self._procedures[normalized] = proc

    def resolve(self, path: str) -> Procedure:
        proc = self._procedures.get(_normalize_path(path))
        if proc is None:
            raise ProcedureNotFound(path)
        return proc

    def paths(self) -> List[str]:
        return sorted(self._procedures)


def _normalize_path(path: Any) -> str:
    return str(path or "").strip().strip("/").replace("/", ".")
