import enum
import logging
import sys
import time
from dataclasses import dataclass, field
from datetime import datetime, timedelta
from typing import List, Optional

logger = logging.getLogger(__name__)

DEFAULT_LOGGER_NAME = "chrono"
TIMESTAMP_FORMAT = "%Y/%m/%d - %H:%M:%S"

_COLOR_MAP = {
    "ERROR": "\033[31m",  # red
    "WARN": "\033[33m",   # yellow
    "INFO": "\033[32m",   # green
}
_DEFAULT_COLOR = "\033[32m"
_RESET = "\033[0m"

_ZERO = timedelta(0)


class LogLevel(str, enum.Enum):
    INFO = "INFO"
    WARN = "WARN"
    ERROR = "ERROR"

    @property
    def severity(self) -> int:
        return _SEVERITY[self]

    @property
    def logging_level(self) -> int:
        return _LOGGING_LEVELS[self]

    def __str__(self):
        return self.value


_SEVERITY = {LogLevel.INFO: 0, LogLevel.WARN: 1, LogLevel.ERROR: 2}
_LOGGING_LEVELS = {
    LogLevel.INFO: logging.INFO,
    LogLevel.WARN: logging.WARNING,
    LogLevel.ERROR: logging.ERROR,
}


@dataclass
class RequestRecord:
    """What a host binding extracts from a finished request/response pair."""

    status: int
    duration: timedelta
    client_addr: str
    method: str
    path: str
    user_agent: Optional[str] = None
    errors: List[str] = field(default_factory=list)


def determine_log_level(duration: timedelta, config) -> LogLevel:
    """
    Classify a request duration against the configured thresholds.
    The error tier is checked first, so a duration past both is ERROR.
    A threshold of zero or less turns its tier off.
    """
    if config.error_threshold > _ZERO and duration >= config.error_threshold:
        return LogLevel.ERROR
    if config.warning_threshold > _ZERO and duration >= config.warning_threshold:
        return LogLevel.WARN
    return LogLevel.INFO


def level_color(level) -> str:
    return _COLOR_MAP.get(str(level), _DEFAULT_COLOR)


def should_skip(path: str, config) -> bool:
    return path in config.skip_paths


def format_duration(duration: timedelta) -> str:
    micros = duration // timedelta(microseconds=1)
    if micros < 1000:
        return f"{micros}µs"
    if round(micros / 1000, 2) < 1000:
        return f"{micros / 1000:.2f}ms"
    return f"{micros / 1_000_000:.2f}s"


def format_line(record: RequestRecord, level: LogLevel, colorize: bool = True, now: Optional[datetime] = None) -> str:
    now = now or datetime.now()
    if colorize:
        tag = f"{level_color(level)}[{level.value}]{_RESET}"
    else:
        tag = f"[{level.value}]"

    line = "%s %s | %3d | %13s | %15s | %-7s %s" % (
        tag,
        now.strftime(TIMESTAMP_FORMAT),
        record.status,
        format_duration(record.duration),
        record.client_addr,
        record.method,
        record.path,
    )

    if record.user_agent:
        line += f" | {record.user_agent}"
    if record.errors:
        line += " | " + "; ".join(record.errors)
    return line


def _attach_default_output():
    # Nothing configured: write to stderr like a bare print-style logger would.
    from chrono.log_handlers import configure_logging

    configure_logging(name=DEFAULT_LOGGER_NAME, stream=sys.stderr)


def emit(line: str, level: LogLevel, config) -> None:
    """
    Hand a formatted line to the configured sink.

    A ``logging.Logger`` sink is called at the level matching ``level``;
    any other callable is called printf-style as ``sink("%s", line)``.
    A missing sink falls back to the ``chrono`` logger, which gets a stderr
    handler when no logging has been set up. Failures raised by the sink
    are reported here and never reach the caller.
    """
    sink = config.logger
    if sink is None:
        sink = logging.getLogger(DEFAULT_LOGGER_NAME)
    try:
        if isinstance(sink, logging.Logger):
            if sink.name == DEFAULT_LOGGER_NAME and not sink.hasHandlers():
                _attach_default_output()
            sink.log(level.logging_level, "%s", line)
        else:
            sink("%s", line)
    except Exception:
        logger.warning("Timing log sink %r failed", sink, exc_info=True)


def log_request(record: RequestRecord, config) -> Optional[str]:
    """Classify, filter, format and emit one request. Returns the emitted line."""
    level = determine_log_level(record.duration, config)
    if not config.log_all_requests and level is LogLevel.INFO:
        return None
    line = format_line(record, level, colorize=config.colorize)
    emit(line, level, config)
    return line


def measure(fn, *args, **kwargs):
    start = time.perf_counter()
    result = fn(*args, **kwargs)
    return result, timedelta(seconds=time.perf_counter() - start)


async def measure_async(fn, *args, **kwargs):
    start = time.perf_counter()
    result = await fn(*args, **kwargs)
    return result, timedelta(seconds=time.perf_counter() - start)
