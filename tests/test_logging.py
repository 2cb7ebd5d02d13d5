"""
Unit tests for tubeio.logging module.
"""

import syslog

from tubeio import logging


class TestEncode:

    def test_format_args(self):
        assert logging._encode("%s: %d bytes", ("tube", 3)) == "\ufefftube: 3 bytes"

    def test_bad_format_args(self):
        msg = logging._encode("%d", ("not a number",))
        assert "had format TypeError" in msg

    def test_line_endings_flattened(self):
        assert logging._encode("one\r\ntwo", ()) == "\ufeffone two"


class TestPriority:

    def test_loglevel_restores(self):
        before = logging.get_priority()
        with logging.LogLevel("DEBUG"):
            assert logging.get_priority() == syslog.LOG_DEBUG
            logging.traffic("recv", b"x" * 100, "test")
            logging.traffic("send", b"short", "test")
        assert logging.get_priority() == before

    def test_logger_priority_name(self):
        logger = logging.get_logger("tubeio-test")
        assert logging.get_logger("tubeio-test") is logger
        with logging.LogLevel("INFO"):
            assert logger.priority == "INFO"
        logger.close()

# vim:ts=4:sw=4:softtabstop=4:smarttab:expandtab
