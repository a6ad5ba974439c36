from __future__ import annotations

import importlib
import logging
from dataclasses import dataclass
from typing import Any, Dict, Iterable, List, Optional, Tuple

logger = logging.getLogger(__name__)

PLUGIN_PACKAGE = "livediff_plugins"


@dataclass(slots=True)
class PluginLoadError:
    module_name: str
    error: str


class PluginLoader:
    """Resolves plugin modules by name and builds them via ``create_plugin``."""

    def __init__(
        self,
        module_names: Iterable[str],
        *,
        plugin_config: Optional[Dict[str, Dict[str, Any]]] = None,
    ) -> None:
        self.module_names = [str(name).strip() for name in module_names if str(name).strip()]
        self.plugin_config = plugin_config or {}

    def load(self) -> Tuple[List[Any], List[PluginLoadError]]:
        plugins: List[Any] = []
        errors: List[PluginLoadError] = []
        for requested_name in self.module_names:
            loaded, error = self._load_one(requested_name)
            if loaded is not None:
                plugins.append(loaded)
            elif error is not None:
                logger.warning("plugin=%s load failed: %s", error.module_name, error.error)
                errors.append(error)
        return plugins, errors

    def _load_one(self, requested_name: str) -> Tuple[Optional[Any], Optional[PluginLoadError]]:
        module, module_name, import_error = self._import(requested_name)
        if module is None:
            return None, PluginLoadError(module_name=requested_name, error=import_error)

        factory = getattr(module, "create_plugin", None)
        if not callable(factory):
            return None, PluginLoadError(
                module_name=requested_name,
                error=f"Module '{module_name}' is missing callable create_plugin(config).",
            )

        config = self.plugin_config.get(requested_name) or self.plugin_config.get(module_name) or {}
        try:
            plugin = factory(config)
        except Exception as exc:
            return None, PluginLoadError(
                module_name=requested_name,
                error=f"create_plugin failed for '{module_name}': {exc}",
            )

        missing = [attr for attr in ("name", "order") if not hasattr(plugin, attr)]
        if not callable(getattr(plugin, "init", None)):
            missing.append("init(options)")
        if missing:
            return None, PluginLoadError(
                module_name=requested_name,
                error=f"Plugin from '{module_name}' lacks {', '.join(missing)}.",
            )
        return plugin, None

    def _import(self, requested_name: str) -> Tuple[Optional[Any], str, str]:
        """Import the first candidate that exists; a candidate that fails inside its own import stops the search."""
        candidates = self._module_candidates(requested_name)
        last_error: Optional[BaseException] = None
        for module_name in candidates:
            try:
                return importlib.import_module(module_name), module_name, ""
            except ModuleNotFoundError as exc:
                last_error = exc
                if not _is_missing_candidate(module_name, exc):
                    break
            except ImportError as exc:
                last_error = exc
                break
        return None, requested_name, f"Could not import plugin module (tried {candidates}): {last_error}"

    @staticmethod
    def _module_candidates(requested_name: str) -> List[str]:
        if "." in requested_name:
            return [requested_name]
        return [requested_name, f"{PLUGIN_PACKAGE}.{requested_name}"]


def _is_missing_candidate(module_name: str, exc: ModuleNotFoundError) -> bool:
    missing = exc.name or ""
    return module_name == missing or module_name.startswith(missing + ".")
