import logging

import pytest

from chrono.config import Config


class LineSink:
    """Printf-style sink that keeps every line it is handed."""

    def __init__(self):
        self.lines = []

    def __call__(self, fmt, *args):
        self.lines.append(fmt % args)


@pytest.fixture
def sink():
    return LineSink()


@pytest.fixture
def chatty_config(sink):
    return Config(
        warning_threshold=20,
        error_threshold=150,
        log_all_requests=True,
        logger=sink,
        colorize=False,
    )


class ListHandler(logging.Handler):
    def __init__(self):
        super().__init__(logging.DEBUG)
        self.records = []

    def emit(self, record):
        self.records.append(record)


@pytest.fixture
def log_records():
    """Attach a collecting handler straight to a named logger."""
    attached = []

    def attach(name):
        log = logging.getLogger(name)
        handler = ListHandler()
        attached.append((log, handler, log.level))
        log.addHandler(handler)
        log.setLevel(logging.DEBUG)
        return handler.records

    yield attach

    for log, handler, level in attached:
        log.removeHandler(handler)
        log.setLevel(level)
