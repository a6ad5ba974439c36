from __future__ import annotations

import logging
import sys
import tempfile
import unittest
from pathlib import Path

from livediff.config import DEFAULT_ORDER, JsonDiffConfig, resolve_include
from livediff.logs import PACKAGE_LOGGERS, close_logger, configure_logging
from livediff.plugins.loader import PluginLoader


class TestJsonDiffConfig(unittest.TestCase):
    def test_defaults(self) -> None:
        cfg = JsonDiffConfig.from_mapping(None)
        self.assertFalse(cfg.include)
        self.assertEqual(cfg.order, DEFAULT_ORDER)
        self.assertEqual(cfg.meta_key, "json_diff")
        self.assertTrue(cfg.warn_on_unrecognized)

    def test_tolerant_coercion(self) -> None:
        cfg = JsonDiffConfig.from_mapping(
            {"include": "yes", "order": "5", "meta_key": "  live  ", "warn_on_unrecognized": "off"}
        )
        self.assertTrue(cfg.include)
        self.assertEqual(cfg.order, 5)
        self.assertEqual(cfg.meta_key, "live")
        self.assertFalse(cfg.warn_on_unrecognized)

        fallback = JsonDiffConfig.from_mapping({"order": "not-an-int", "meta_key": ""})
        self.assertEqual(fallback.order, DEFAULT_ORDER)
        self.assertEqual(fallback.meta_key, "json_diff")

    def test_callable_include_is_kept(self) -> None:
        def predicate(_: object) -> bool:
            return True

        self.assertIs(JsonDiffConfig.from_mapping({"include": predicate}).include, predicate)


class TestResolveInclude(unittest.IsolatedAsyncioTestCase):
    async def test_bool_sync_and_async_predicates(self) -> None:
        async def async_predicate(options: str) -> bool:
            return options == "stream"

        self.assertTrue(await resolve_include(True, None))
        self.assertFalse(await resolve_include(False, None))
        self.assertTrue(await resolve_include(lambda options: options == "stream", "stream"))
        self.assertTrue(await resolve_include(async_predicate, "stream"))
        self.assertFalse(await resolve_include(async_predicate, "other"))


class TestPluginLoader(unittest.TestCase):
    def test_loader_returns_errors_without_crashing(self) -> None:
        loader = PluginLoader(["json_diff", "json_diff_link", "missing_plugin_module_xyz"])
        plugins, errors = loader.load()

        self.assertEqual([getattr(plugin, "name", "") for plugin in plugins], ["json_diff", "json_diff_link"])
        self.assertEqual(len(errors), 1)
        self.assertEqual(errors[0].module_name, "missing_plugin_module_xyz")
        self.assertIn("Could not import plugin module", errors[0].error)

    def test_plugin_config_is_passed_to_factory(self) -> None:
        loader = PluginLoader(
            ["livediff_plugins.json_diff"],
            plugin_config={"livediff_plugins.json_diff": {"include": "true", "order": 7}},
        )
        plugins, errors = loader.load()

        self.assertEqual(errors, [])
        self.assertTrue(plugins[0].include)
        self.assertEqual(plugins[0].order, 7)

    def test_failing_import_inside_plugin_is_reported(self) -> None:
        with tempfile.TemporaryDirectory(prefix="livediff_plugins_") as temp_dir:
            (Path(temp_dir) / "broken_diff_plugin.py").write_text(
                "import livediff_missing_dependency_xyz\n", encoding="utf-8"
            )
            sys.path.insert(0, temp_dir)
            try:
                plugins, errors = PluginLoader(["broken_diff_plugin"]).load()
            finally:
                sys.path.remove(temp_dir)
                sys.modules.pop("broken_diff_plugin", None)

        self.assertEqual(plugins, [])
        self.assertIn("Could not import plugin module", errors[0].error)
        self.assertIn("livediff_missing_dependency_xyz", errors[0].error)

    def test_module_without_factory_is_reported(self) -> None:
        plugins, errors = PluginLoader(["livediff.envelope"]).load()

        self.assertEqual(plugins, [])
        self.assertIn("create_plugin", errors[0].error)


class TestLogging(unittest.TestCase):
    def tearDown(self) -> None:
        for name in PACKAGE_LOGGERS:
            logger = logging.getLogger(name)
            close_logger(logger)
            logger.propagate = True
            logger.setLevel(logging.NOTSET)

    def test_package_loggers_share_one_file(self) -> None:
        with tempfile.TemporaryDirectory(prefix="livediff_logs_") as temp_dir:
            log_path = Path(temp_dir) / "logs" / "livediff.log"
            loggers = configure_logging(log_path=log_path, level="debug")

            self.assertEqual([logger.name for logger in loggers], list(PACKAGE_LOGGERS))
            logging.getLogger("livediff.consumer").debug("consumer line")
            logging.getLogger("livediff_rpc.server").info("server line")
            for logger in loggers:
                close_logger(logger)

            text = log_path.read_text(encoding="utf-8")
            self.assertIn("DEBUG livediff.consumer consumer line", text)
            self.assertIn("INFO livediff_rpc.server server line", text)


if __name__ == "__main__":
    unittest.main()
