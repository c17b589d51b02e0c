import unittest
import logging
import os
import tempfile
from logging.handlers import RotatingFileHandler
from call_bridge.config.logging_config import configure_logging

class TestLoggingConfig(unittest.TestCase):
    def test_configure_logging(self):
        # Test that the function returns a logger
        logger = configure_logging("INFO")
        self.assertIsInstance(logger, logging.Logger)

        # Test that the logger has the correct name
        self.assertEqual(logger.name, "call_bridge")

        # Test that the logger has the correct level
        self.assertEqual(logger.level, logging.INFO)

        # Test that the logger has the correct handlers and format
        self.assertGreaterEqual(len(logger.handlers), 1)  # At least one handler (console)
        handler = logger.handlers[0]  # Check first handler (should be console handler)
        self.assertIsInstance(handler, logging.StreamHandler)
        formatter = handler.formatter
        self.assertEqual(formatter._fmt, "%(asctime)s - %(name)s - %(levelname)s - %(message)s")

        # Bridge logs stay out of the root logger
        self.assertFalse(logger.propagate)

    def test_level_from_argument(self):
        logger = configure_logging("debug")
        self.assertEqual(logger.level, logging.DEBUG)

    def test_reconfiguring_replaces_handlers(self):
        first = len(configure_logging("INFO").handlers)
        second = len(configure_logging("INFO").handlers)
        self.assertEqual(first, second)

    def test_stdout_only_when_file_disabled(self):
        logger = configure_logging("INFO", log_file="")
        self.assertEqual(len(logger.handlers), 1)

    def test_rotating_file_handler(self):
        with tempfile.TemporaryDirectory() as tmp:
            path = os.path.join(tmp, "nested", "bridge.log")
            logger = configure_logging("INFO", log_file=path)
            file_handlers = [h for h in logger.handlers if isinstance(h, RotatingFileHandler)]
            self.assertEqual(len(file_handlers), 1)
            self.assertTrue(os.path.isdir(os.path.dirname(path)))
            configure_logging("INFO", log_file="")  # release the file before cleanup

    def test_client_libraries_are_quieted(self):
        configure_logging("DEBUG", log_file="")
        self.assertEqual(logging.getLogger("websockets").level, logging.WARNING)


if __name__ == "__main__":
    unittest.main()
