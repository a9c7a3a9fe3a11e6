"""Platform helpers (filesystem)."""

from .files import (
    atomic_write_bytes,
    atomic_write_text,
    backup_file,
    read_json,
    stage_directory,
    write_json,
)

__all__ = [
    "atomic_write_bytes",
    "atomic_write_text",
    "backup_file",
    "read_json",
    "stage_directory",
    "write_json",
]
