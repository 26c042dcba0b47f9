import logging
import re
import sys

_ANSI_RE = re.compile(r"\x1b\[[0-9;]*m")


def strip_ansi(text: str) -> str:
    return _ANSI_RE.sub("", text)


class TimingStreamHandler(logging.StreamHandler):
    """
    Stream handler for timing lines. Defaults to stdout, switches the stream to
    UTF-8 (durations use "µs") and drops ANSI colors when the stream is not a
    terminal, unless ``strip_colors`` says otherwise.
    """

    def __init__(self, stream=None, strip_colors=None):
        super().__init__(stream or sys.stdout)
        reconfigure = getattr(self.stream, "reconfigure", None)
        if reconfigure is not None:
            reconfigure(encoding="utf-8")
        if strip_colors is None:
            isatty = getattr(self.stream, "isatty", None)
            strip_colors = not (isatty and isatty())
        self.strip_colors = strip_colors

    def format(self, record):
        message = super().format(record)
        if self.strip_colors:
            message = strip_ansi(message)
        return message


def configure_logging(level=logging.INFO, name="chrono", stream=None, strip_colors=None) -> logging.Logger:
    """Attach a TimingStreamHandler to the ``chrono`` logger once."""
    log = logging.getLogger(name)
    log.setLevel(level)
    if not any(isinstance(h, TimingStreamHandler) for h in log.handlers):
        handler = TimingStreamHandler(stream, strip_colors=strip_colors)
        handler.setFormatter(logging.Formatter("%(message)s"))
        log.addHandler(handler)
        log.propagate = False
    return log
