"""Filesystem helpers.

Everything here returns ``Result`` values carrying filesystem errors tagged with
the operation and path, except the two raw atomic writers which raise
``OSError`` like the stdlib calls they wrap.
"""

from __future__ import annotations

import json
import os
import shutil
import tempfile
from pathlib import Path

from relsmith.core.errors import AssemblyError, filesystem_error
from relsmith.core.result import Err, Ok, Result

__all__ = [
    "atomic_write_bytes",
    "atomic_write_text",
    "backup_file",
    "read_json",
    "stage_directory",
    "write_json",
]


def atomic_write_bytes(path: Path, content: bytes) -> None:
    """Write bytes to path atomically using temp file + replace."""
    path.parent.mkdir(parents=True, exist_ok=True)

    fd, tmp_name = tempfile.mkstemp(
        prefix=f".{path.name}.",
        suffix=".tmp",
        dir=str(path.parent),
    )
    tmp_path = Path(tmp_name)

    try:
        with os.fdopen(fd, "wb") as handle:
            handle.write(content)
            handle.flush()
            os.fsync(handle.fileno())
        os.replace(tmp_path, path)
    finally:
        if tmp_path.exists():
            tmp_path.unlink(missing_ok=True)


def atomic_write_text(path: Path, content: str, *, encoding: str = "utf-8") -> None:
    atomic_write_bytes(path, content.encode(encoding))


def write_json(path: Path, payload: object) -> Result[None, AssemblyError]:
    """Write a JSON document (2-space indent, trailing newline) atomically."""
    try:
        atomic_write_text(path, json.dumps(payload, indent=2) + "\n")
    except OSError as e:
        return Err(filesystem_error("write", path, e))
    return Ok(None)


def read_json(path: Path) -> Result[object, AssemblyError]:
    """Read a JSON document.

    A missing or unreadable file is a filesystem error; invalid JSON is
    reported as a malformed descriptor.
    """
    try:
        text = path.read_text(encoding="utf-8")
    except OSError as e:
        return Err(filesystem_error("read", path, e))

    try:
        return Ok(json.loads(text))
    except json.JSONDecodeError as e:
        return Err(
            AssemblyError(
                kind="malformed_descriptor",
                message=f"invalid JSON in {path.name}: {e}",
                path=path,
            )
        )


def backup_file(path: Path, *, suffix: str = ".bak") -> Result[Path, AssemblyError]:
    """Rename path to ``<path><suffix>``, replacing an older backup."""
    target = path.with_name(path.name + suffix)
    try:
        path.replace(target)
    except OSError as e:
        return Err(filesystem_error("backup", path, e))
    return Ok(target)


def _remove_symlink_or_dir(path: Path) -> None:
    if path.is_symlink() or path.is_file():
        path.unlink()
    elif path.exists():
        shutil.rmtree(path)


def stage_directory(
    src: Path,
    dest: Path,
    *,
    entries: tuple[str, ...],
    symlink: bool = False,
) -> Result[None, AssemblyError]:
    """Place a component directory at dest.

    With ``symlink`` the whole directory is linked (dev mode). Otherwise only the
    top-level ``entries`` that exist in src are copied, following symlinks.
    Any previous content at dest is removed first.
    """
    try:
        _remove_symlink_or_dir(dest)
    except OSError as e:
        return Err(filesystem_error("remove", dest, e))

    if symlink:
        try:
            dest.parent.mkdir(parents=True, exist_ok=True)
            dest.symlink_to(src.resolve(), target_is_directory=True)
        except OSError as e:
            return Err(filesystem_error("symlink", dest, e))
        return Ok(None)

    try:
        dest.mkdir(parents=True, exist_ok=True)
    except OSError as e:
        return Err(filesystem_error("mkdir", dest, e))

    for name in entries:
        child = src / name
        if not child.exists():
            continue
        target = dest / name
        try:
            if child.is_dir():
                shutil.copytree(child, target, symlinks=False, dirs_exist_ok=True)
            else:
                shutil.copy2(child, target)
        except OSError as e:
            # shutil.Error (an OSError) aggregates per-file failures
            return Err(filesystem_error("copy", child, e))

    return Ok(None)
