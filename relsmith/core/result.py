"""Result type for explicit error handling.

Every pipeline stage returns either ``Ok(value)`` or ``Err(error)``. Stages
never raise for expected failures, so a caller can short-circuit with a plain
``isinstance`` check:

    resolved = resolve(release.name, release.requested, index, reporter=reporter)
    if isinstance(resolved, Err):
        return resolved
    components = resolved.value
"""

from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass


@dataclass(frozen=True, slots=True)
class Ok[T]:
    value: T


@dataclass(frozen=True, slots=True)
class Err[E]:
    """A failed result; ``error`` is usually an ``AssemblyError``."""

    error: E


type Result[T, E] = Ok[T] | Err[E]


def collect[T, E](results: Iterable[Result[T, E]]) -> Result[tuple[T, ...], E]:
    """Gather Ok values in order; the first Err wins."""
    values: list[T] = []
    for result in results:
        if isinstance(result, Err):
            return result
        values.append(result.value)
    return Ok(tuple(values))
