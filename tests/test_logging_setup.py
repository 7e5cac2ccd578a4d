from __future__ import annotations

import io
import logging
import unittest

from cf_reconciler.logging_setup import (
    CONSOLE_FORMAT,
    CustomFormatter,
    LogColors,
    parse_level,
    setup_logging,
)


class CustomFormatterTests(unittest.TestCase):
    def test_every_level_has_a_colored_format(self) -> None:
        for level in (logging.DEBUG, logging.INFO, logging.WARNING, logging.ERROR, logging.CRITICAL):
            self.assertIn(level, CustomFormatter.COLOR_FORMAT)
            self.assertIn(LogColors.MAGENTA + "%(name)s", CustomFormatter.COLOR_FORMAT[level])
        self.assertEqual(CustomFormatter.FORMAT, CONSOLE_FORMAT)

    def test_format_includes_message(self) -> None:
        record = logging.LogRecord("cf", logging.WARNING, __file__, 1, "retrying %s", ("GET",), None)
        text = CustomFormatter().format(record)
        self.assertIn("retrying GET", text)
        self.assertIn(LogColors.YELLOW, text)


class SetupLoggingTests(unittest.TestCase):
    def setUp(self) -> None:
        root = logging.getLogger()
        handlers, level = list(root.handlers), root.level

        def restore() -> None:
            root.handlers[:] = handlers
            root.setLevel(level)

        self.addCleanup(restore)

    def test_parse_level(self) -> None:
        self.assertEqual(parse_level("debug"), logging.DEBUG)
        self.assertEqual(parse_level(" WARNING "), logging.WARNING)
        self.assertEqual(parse_level("nonsense"), logging.INFO)
        self.assertEqual(parse_level(None, logging.ERROR), logging.ERROR)
        self.assertEqual(parse_level(logging.DEBUG), logging.DEBUG)

    def test_replaces_handlers_and_writes_to_stream(self) -> None:
        stream = io.StringIO()
        setup_logging(level="INFO", colored=False, stream=stream)
        setup_logging(level="INFO", colored=False, stream=stream)

        root = logging.getLogger()
        self.assertEqual(len(root.handlers), 1)
        self.assertEqual(root.level, logging.INFO)

        logging.info("Created zone %s", "example.com")
        logging.debug("hidden")
        output = stream.getvalue()
        self.assertIn("Created zone example.com", output)
        self.assertNotIn("hidden", output)


if __name__ == "__main__":
    unittest.main()
