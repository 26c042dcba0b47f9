from chrono.config import Config, ConfigHolder, config_from_env, config_from_settings, default_config
from chrono.timing import LogLevel, RequestRecord, determine_log_level, format_line, log_request

__all__ = [
    "Config",
    "ConfigHolder",
    "LogLevel",
    "RequestRecord",
    "config_from_env",
    "config_from_settings",
    "default_config",
    "determine_log_level",
    "format_line",
    "log_request",
]
