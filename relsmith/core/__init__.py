"""Core types: results, errors, TOML loading."""

from .config import ConfigError, parse_toml
from .errors import AssemblyError, ErrorCode, filesystem_error
from .result import Err, Ok, Result, collect

__all__ = [
    # config
    "ConfigError",
    "parse_toml",
    # errors
    "AssemblyError",
    "ErrorCode",
    "filesystem_error",
    # result
    "Err",
    "Ok",
    "Result",
    "collect",
]
