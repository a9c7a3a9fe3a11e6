"""Version diff between two release snapshots."""

from __future__ import annotations

from collections.abc import Sequence
from dataclasses import dataclass


@dataclass(frozen=True, slots=True)
class VersionDiff:
    """Components grouped by what an upgrade must do with them.

    The three lists are pairwise disjoint and sorted by name. Names present on
    both sides with the same version need no instruction and are listed only in
    ``unaffected``.
    """

    added: tuple[tuple[str, str], ...] = ()
    changed: tuple[tuple[str, str, str], ...] = ()
    removed: tuple[tuple[str, str], ...] = ()
    unaffected: tuple[tuple[str, str], ...] = ()

    @property
    def is_empty(self) -> bool:
        return not (self.added or self.changed or self.removed)

    def names(self) -> frozenset[str]:
        return frozenset(
            [n for n, _ in self.added]
            + [n for n, _, _ in self.changed]
            + [n for n, _ in self.removed]
            + [n for n, _ in self.unaffected]
        )


def diff_components(
    old: Sequence[tuple[str, str]], new: Sequence[tuple[str, str]]
) -> VersionDiff:
    """Partition two ``(name, version)`` snapshots.

    Example:
        >>> d = diff_components([("a", "1.0"), ("b", "2.0")],
        ...                     [("a", "1.0"), ("b", "2.1"), ("c", "1.0")])
        >>> d.added, d.changed, d.removed
        ((('c', '1.0'),), (('b', '2.0', '2.1'),), ())
    """
    old_versions = dict(old)
    new_versions = dict(new)
    shared = old_versions.keys() & new_versions.keys()

    changed = tuple(
        (name, old_versions[name], new_versions[name])
        for name in sorted(shared)
        if old_versions[name] != new_versions[name]
    )
    unaffected = tuple(
        (name, new_versions[name])
        for name in sorted(shared)
        if old_versions[name] == new_versions[name]
    )
    added = tuple(
        (name, new_versions[name]) for name in sorted(new_versions.keys() - old_versions.keys())
    )
    removed = tuple(
        (name, old_versions[name]) for name in sorted(old_versions.keys() - new_versions.keys())
    )
    return VersionDiff(added=added, changed=changed, removed=removed, unaffected=unaffected)
