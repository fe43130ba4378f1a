import io
import logging

from peg_monitor.logger import TRACE, ColoredFormatter, resolve_level, setup_logging


def test_resolve_level():
    assert resolve_level("trace") == TRACE
    assert resolve_level("DEBUG") == logging.DEBUG
    assert resolve_level("warning") == logging.WARNING
    assert resolve_level("chatty") == logging.INFO


def test_formatter_colors_only_when_enabled():
    record = logging.LogRecord("peg_monitor", logging.WARNING, __file__, 1, "hi", None, None)

    plain = ColoredFormatter("%(levelname)s %(message)s", "%H", use_color=False)
    colored = ColoredFormatter("%(levelname)s %(message)s", "%H", use_color=True)

    assert plain.format(record) == "WARNING hi"
    assert "\033[" in colored.format(record)
    assert record.levelname == "WARNING"


def test_setup_logging_writes_plain_text_to_non_tty_stream():
    stream = io.StringIO()

    setup_logging("debug", stream=stream)
    logging.getLogger("peg_monitor.test").debug("quote fetched")

    assert "DEBUG - quote fetched" in stream.getvalue()
    assert "\033[" not in stream.getvalue()
    assert logging.getLogger("urllib3").level == logging.WARNING
