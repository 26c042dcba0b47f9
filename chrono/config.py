import dataclasses
import logging
import os
import threading
from dataclasses import dataclass, field
from datetime import timedelta
from typing import Any, Callable, FrozenSet, Optional, Union

from dotenv import dotenv_values

from chrono.timing import DEFAULT_LOGGER_NAME

logger = logging.getLogger(__name__)

DEFAULT_WARNING_THRESHOLD = timedelta(milliseconds=500)
DEFAULT_ERROR_THRESHOLD = timedelta(milliseconds=2000)

Sink = Union[logging.Logger, Callable[..., Any]]


def coerce_duration(value, default: timedelta = timedelta(0)) -> timedelta:
    """Accept a timedelta or a number of milliseconds."""
    if isinstance(value, timedelta):
        return value
    if value is None:
        return default
    try:
        return timedelta(milliseconds=float(value))
    except (TypeError, ValueError):
        logger.warning("Ignoring unparseable duration %r, using %s", value, default)
        return default


def _default_logger() -> logging.Logger:
    return logging.getLogger(DEFAULT_LOGGER_NAME)


@dataclass
class Config:
    """
    Settings for the timing middleware.

    Build one at startup and hand it to a middleware; the middleware keeps its
    own copy. Changing a config that live traffic already reads is not
    synchronized: go through a ConfigHolder for that.
    """

    enabled: bool = True
    warning_threshold: timedelta = DEFAULT_WARNING_THRESHOLD
    error_threshold: timedelta = DEFAULT_ERROR_THRESHOLD
    log_all_requests: bool = False
    skip_paths: FrozenSet[str] = frozenset()
    logger: Optional[Sink] = field(default_factory=_default_logger)
    colorize: bool = True
    log_user_agent: bool = True
    trust_forwarded_headers: bool = False

    def __post_init__(self):
        self.warning_threshold = coerce_duration(self.warning_threshold)
        self.error_threshold = coerce_duration(self.error_threshold)
        self.skip_paths = _split_paths(self.skip_paths)
        if isinstance(self.logger, str):
            self.logger = logging.getLogger(self.logger)

    def enable(self):
        self.enabled = True

    def disable(self):
        self.enabled = False

    def add_skip_path(self, path: str):
        self.skip_paths = self.skip_paths | {path}

    def copy(self, **changes) -> "Config":
        return dataclasses.replace(self, **changes)


def default_config() -> Config:
    return Config()


class ConfigHolder:
    """
    Live configuration of a middleware, read once per request.

    Readers get an immutable-by-convention snapshot; writers replace the
    whole snapshot under a lock, so a request never sees a half-applied
    change.
    """

    def __init__(self, config: Optional[Config] = None):
        self._lock = threading.Lock()
        self._config = (config or default_config()).copy()

    @property
    def current(self) -> Config:
        return self._config

    def swap(self, config: Config) -> Config:
        new = config.copy()
        with self._lock:
            previous, self._config = self._config, new
        logger.debug("Timing config swapped: enabled=%s", new.enabled)
        return previous

    def update(self, **changes) -> Config:
        with self._lock:
            new = self._config.copy(**changes)
            self._config = new
        return new

    def enable(self) -> Config:
        return self.update(enabled=True)

    def disable(self) -> Config:
        return self.update(enabled=False)

    def add_skip_path(self, path: str) -> Config:
        with self._lock:
            new = self._config.copy(skip_paths=self._config.skip_paths | {path})
            self._config = new
        return new


def as_holder(config) -> ConfigHolder:
    if isinstance(config, ConfigHolder):
        return config
    return ConfigHolder(config)


def _env_bool(environ, name: str, default: bool) -> bool:
    v = environ.get(name, "").strip().lower()
    if v in ("1", "true", "yes"):
        return True
    if v in ("0", "false", "no"):
        return False
    return default


def _split_paths(value) -> FrozenSet[str]:
    if isinstance(value, str):
        value = value.split(",")
    return frozenset(p.strip() for p in value or () if p and p.strip())


def config_from_env(prefix: str = "CHRONO_", environ=None, env_file=None) -> Config:
    """
    Build a Config from environment variables such as CHRONO_ENABLED,
    CHRONO_WARNING_THRESHOLD_MS or CHRONO_SKIP_PATHS (comma separated).
    Values from ``env_file`` are used where the environment has none.
    Unset or unparseable values keep their defaults.
    """
    env = os.environ if environ is None else environ
    if env_file:
        env = {**{k: v for k, v in dotenv_values(env_file).items() if v is not None}, **env}
    base = default_config()

    logger_name = env.get(prefix + "LOGGER", "").strip()
    return Config(
        enabled=_env_bool(env, prefix + "ENABLED", base.enabled),
        warning_threshold=coerce_duration(env.get(prefix + "WARNING_THRESHOLD_MS"), base.warning_threshold),
        error_threshold=coerce_duration(env.get(prefix + "ERROR_THRESHOLD_MS"), base.error_threshold),
        log_all_requests=_env_bool(env, prefix + "LOG_ALL_REQUESTS", base.log_all_requests),
        skip_paths=_split_paths(env.get(prefix + "SKIP_PATHS", "")),
        logger=logging.getLogger(logger_name) if logger_name else base.logger,
        colorize=_env_bool(env, prefix + "COLORIZE", base.colorize),
        log_user_agent=_env_bool(env, prefix + "LOG_USER_AGENT", base.log_user_agent),
        trust_forwarded_headers=_env_bool(env, prefix + "TRUST_FORWARDED_HEADERS", base.trust_forwarded_headers),
    )


def config_from_settings(settings=None) -> Config:
    """Build a Config from the ``CHRONO`` dict in Django settings."""
    if settings is None:
        from django.conf import settings

    options = getattr(settings, "CHRONO", None) or {}
    base = default_config()
    return Config(
        enabled=options.get("ENABLED", base.enabled),
        warning_threshold=coerce_duration(options.get("WARNING_THRESHOLD"), base.warning_threshold),
        error_threshold=coerce_duration(options.get("ERROR_THRESHOLD"), base.error_threshold),
        log_all_requests=options.get("LOG_ALL_REQUESTS", base.log_all_requests),
        skip_paths=_split_paths(options.get("SKIP_PATHS")),
        logger=options.get("LOGGER", base.logger),
        colorize=options.get("COLORIZE", base.colorize),
        log_user_agent=options.get("LOG_USER_AGENT", base.log_user_agent),
        trust_forwarded_headers=options.get("TRUST_FORWARDED_HEADERS", base.trust_forwarded_headers),
    )
