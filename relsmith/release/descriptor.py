"""Release descriptor files (``<name>.rel``).

A descriptor pins the exact component versions of one release:

    {
      "schema": 1,
      "release": {"name": "shop", "version": "0.2.0"},
      "runtime": "14.1",
      "components": [["kernel", "9.0"], ["shop", "0.2.0", "permanent"]]
    }
"""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path

from relsmith.core.errors import AssemblyError
from relsmith.core.result import Err, Ok, Result
from relsmith.core.structured import as_obj_list, as_str_dict, get_int, get_str, get_table
from relsmith.platform.files import read_json, write_json

from .component import StartType, parse_start_type

DESCRIPTOR_SCHEMA = 1


@dataclass(frozen=True, slots=True)
class DescriptorEntry:
    name: str
    version: str
    start_type: StartType | None = None

    def to_payload(self) -> list[str]:
        if self.start_type is None:
            return [self.name, self.version]
        return [self.name, self.version, str(self.start_type)]


@dataclass(frozen=True, slots=True)
class ReleaseDescriptor:
    name: str
    version: str
    runtime_version: str
    entries: tuple[DescriptorEntry, ...]

    def name_versions(self) -> list[tuple[str, str]]:
        return [(e.name, e.version) for e in self.entries]

    def to_payload(self) -> dict[str, object]:
        return {
            "schema": DESCRIPTOR_SCHEMA,
            "release": {"name": self.name, "version": self.version},
            "runtime": self.runtime_version,
            "components": [e.to_payload() for e in self.entries],
        }


def _malformed(path: Path, message: str) -> Err[AssemblyError]:
    return Err(AssemblyError(kind="malformed_descriptor", message=message, path=path))


def _parse_entry(item: object) -> DescriptorEntry | None:
    parts = as_obj_list(item)
    if parts is None or len(parts) not in (2, 3):
        return None
    name, version = parts[0], parts[1]
    if not isinstance(name, str) or not isinstance(version, str):
        return None
    if len(parts) == 2:
        return DescriptorEntry(name, version)
    start_type = parse_start_type(parts[2])
    if start_type is None:
        return None
    return DescriptorEntry(name, version, start_type)


def parse_descriptor(obj: object, *, path: Path) -> Result[ReleaseDescriptor, AssemblyError]:
    data = as_str_dict(obj)
    if data is None:
        return _malformed(path, "release descriptor root must be a JSON object")

    schema = get_int(data, "schema")
    if schema != DESCRIPTOR_SCHEMA:
        return _malformed(path, f"unsupported descriptor schema: {schema}")

    header = get_table(data, "release") or {}
    name = get_str(header, "name")
    version = get_str(header, "version")
    if name is None or version is None:
        return _malformed(path, "descriptor is missing release name or version")

    items = as_obj_list(data.get("components"))
    if items is None:
        return _malformed(path, "descriptor is missing components[]")

    entries: list[DescriptorEntry] = []
    for item in items:
        entry = _parse_entry(item)
        if entry is None:
            return _malformed(path, f"malformed component entry: {item!r}")
        entries.append(entry)

    runtime = data.get("runtime")
    return Ok(
        ReleaseDescriptor(
            name=name,
            version=version,
            runtime_version=runtime if isinstance(runtime, str) else "",
            entries=tuple(entries),
        )
    )


def read_descriptor(path: Path) -> Result[ReleaseDescriptor, AssemblyError]:
    if not path.is_file():
        return Err(
            AssemblyError(
                kind="missing_descriptor",
                message=f"release descriptor not found: {path}",
                path=path,
            )
        )
    raw = read_json(path)
    if isinstance(raw, Err):
        return raw
    return parse_descriptor(raw.value, path=path)


def write_descriptor(path: Path, descriptor: ReleaseDescriptor) -> Result[None, AssemblyError]:
    return write_json(path, descriptor.to_payload())
