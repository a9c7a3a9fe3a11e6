"""Output abstraction layer."""

from .console import (
    ConsoleProtocol,
    MockConsole,
    RichConsole,
    Style,
)
from .reporter import Reporter

__all__ = [
    "ConsoleProtocol",
    "MockConsole",
    "Reporter",
    "RichConsole",
    "Style",
]
