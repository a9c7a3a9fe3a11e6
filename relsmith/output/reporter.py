"""Build reporter.

A ``Reporter`` is threaded explicitly through every pipeline stage that needs
to say something. It forwards to a console and keeps the warnings emitted
during one build so they can be returned with the result.
"""

from __future__ import annotations

from dataclasses import dataclass, field

from .console import ConsoleProtocol, MockConsole


def _empty_warnings() -> list[str]:
    return []


@dataclass
class Reporter:
    console: ConsoleProtocol
    verbose: bool = False
    _warnings: list[str] = field(default_factory=_empty_warnings)

    @classmethod
    def silent(cls) -> Reporter:
        """Reporter that only records (handy for library callers and tests)."""
        return cls(console=MockConsole())

    @property
    def warnings(self) -> tuple[str, ...]:
        return tuple(self._warnings)

    def info(self, message: str) -> None:
        self.console.info(message)

    def success(self, message: str) -> None:
        self.console.success(message)

    def debug(self, message: str) -> None:
        if self.verbose:
            self.console.debug(message)

    def warn(self, message: str) -> None:
        self._warnings.append(message)
        self.console.warning(message)
