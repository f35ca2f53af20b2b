from __future__ import annotations

import logging
import tempfile
import unittest
from logging.handlers import RotatingFileHandler
from pathlib import Path

from contentpath.logging_utils import (
    _CONFIGURED_ATTR,
    PACKAGE_LOGGER,
    configure_contentpath_logging,
    parse_log_level,
)
from contentpath.resolver import UriResolver
from tests.fixtures.fake_host import make_host


class ConfigureLoggingTests(unittest.TestCase):
    def setUp(self) -> None:
        self.tmp = tempfile.TemporaryDirectory()
        self.root = Path(self.tmp.name)
        self.log_file = self.root / "logs" / "contentpath.log"
        self.root_logger = logging.getLogger()
        self.saved_handlers = list(self.root_logger.handlers)
        self.saved_level = self.root_logger.level

    def tearDown(self) -> None:
        for handler in self.root_logger.handlers:
            if handler not in self.saved_handlers:
                handler.close()
        self.root_logger.handlers[:] = self.saved_handlers
        self.root_logger.setLevel(self.saved_level)
        logging.getLogger(PACKAGE_LOGGER).setLevel(logging.NOTSET)
        if hasattr(self.root_logger, _CONFIGURED_ATTR):
            delattr(self.root_logger, _CONFIGURED_ATTR)
        logging.captureWarnings(False)
        self.tmp.cleanup()

    def _log_text(self) -> str:
        for handler in self.root_logger.handlers:
            handler.flush()
        return self.log_file.read_text(encoding="utf-8")

    def test_installs_rotating_file_handler_once(self) -> None:
        configure_contentpath_logging(self.log_file)
        handlers_after_first = list(self.root_logger.handlers)
        configure_contentpath_logging(self.log_file, level="WARNING")

        self.assertEqual(self.root_logger.handlers, handlers_after_first)
        self.assertTrue(any(isinstance(h, RotatingFileHandler) for h in handlers_after_first))
        self.assertEqual(logging.getLogger(PACKAGE_LOGGER).level, logging.WARNING)

    def test_debug_level_records_resolution_decisions(self) -> None:
        configure_contentpath_logging(self.log_file, level="DEBUG")
        resolver = UriResolver(make_host(self.root))

        resolver.resolve("file:///sdcard/DCIM/a.jpg")
        logging.getLogger("mcp.server.lowlevel").debug("protocol chatter")

        text = self._log_text()
        self.assertIn("Resolved file:///sdcard/DCIM/a.jpg via file_path", text)
        self.assertNotIn("protocol chatter", text)
        self.assertEqual(self.root_logger.level, logging.INFO)

    def test_default_level_omits_resolution_decisions(self) -> None:
        configure_contentpath_logging(self.log_file)
        resolver = UriResolver(make_host(self.root))

        resolver.resolve("file:///sdcard/DCIM/a.jpg")
        logging.getLogger("contentpath.resolver").info("info still written")

        text = self._log_text()
        self.assertNotIn("Resolved file:///sdcard/DCIM/a.jpg", text)
        self.assertIn("info still written", text)


class ParseLogLevelTests(unittest.TestCase):
    def test_names_numbers_and_garbage(self) -> None:
        self.assertEqual(parse_log_level("debug"), logging.DEBUG)
        self.assertEqual(parse_log_level(" Warning "), logging.WARNING)
        self.assertEqual(parse_log_level("15"), 15)
        self.assertEqual(parse_log_level(logging.ERROR), logging.ERROR)
        self.assertEqual(parse_log_level("chatty"), logging.INFO)
        self.assertEqual(parse_log_level(None, default=logging.ERROR), logging.ERROR)


if __name__ == "__main__":
    unittest.main()
