"""Release model.

A ``Release`` starts as a name/version pair plus the components it requests
and is refined by environment merge, configuration and resolution, each step
returning a new frozen value. All output paths derive from
``profile.output_dir``.
"""

from __future__ import annotations

from dataclasses import dataclass, replace
from pathlib import Path

from .component import MODULES_DIR, Component, StartType
from .descriptor import DescriptorEntry, ReleaseDescriptor
from .profile import Profile, UpgradeSource

type ComponentRequest = str | tuple[str, StartType | str] | Component

# Components that keep their start type in the clean-start descriptor,
# together with the profile's runtime component.
CLEAN_START_COMPONENTS = frozenset({"kernel", "stdlib"})
CONSOLIDATED_DIR = "consolidated"


@dataclass(frozen=True, slots=True)
class Release:
    name: str
    version: str
    requested: tuple[ComponentRequest, ...] = ()
    components: tuple[Component, ...] = ()
    profile: Profile = Profile()
    env: str | None = None

    @classmethod
    def new(
        cls,
        name: str,
        version: str,
        requested: tuple[ComponentRequest, ...] = (),
        *,
        build_dir: Path = Path("_build"),
    ) -> Release:
        output_dir = build_dir / "rel" / name
        return cls(
            name=name,
            version=version,
            requested=requested,
            profile=Profile(output_dir=output_dir),
        )

    # -- flags ---------------------------------------------------------------

    @property
    def is_upgrade(self) -> bool:
        return self.profile.is_upgrade

    @property
    def upgrade_from(self) -> UpgradeSource | None:
        return self.profile.upgrade_from

    @property
    def output_dir(self) -> Path:
        return self.profile.output_dir

    # -- derived paths -------------------------------------------------------

    @property
    def bin_path(self) -> Path:
        return (self.output_dir / "bin").absolute()

    @property
    def version_path(self) -> Path:
        return (self.output_dir / "releases" / self.version).absolute()

    @property
    def lib_path(self) -> Path:
        return (self.output_dir / "lib").absolute()

    @property
    def archive_path(self) -> Path:
        if self.profile.executable:
            return self.bin_path / f"{self.name}.run"
        return self.version_path / f"{self.name}.tar.gz"

    @property
    def descriptor_path(self) -> Path:
        return self.version_path / f"{self.name}.rel"

    def release_path(self, version: str) -> Path:
        return (self.output_dir / "releases" / version).absolute()

    def component_lib_path(self, name: str, version: str) -> Path:
        return self.lib_path / f"{name}-{version}"

    # -- derived values ------------------------------------------------------

    def with_components(self, components: tuple[Component, ...]) -> Release:
        return replace(self, components=components)

    def with_profile(self, profile: Profile) -> Release:
        return replace(self, profile=profile)

    def to_descriptor(self) -> ReleaseDescriptor:
        return ReleaseDescriptor(
            name=self.name,
            version=self.version,
            runtime_version=self.profile.runtime_version or "",
            entries=tuple(
                DescriptorEntry(c.name, c.version, c.start_type) for c in self.components
            ),
        )

    def clean_start(self) -> Release:
        """The release with every non-core component demoted to load-only."""
        keep = CLEAN_START_COMPONENTS | {self.profile.runtime_component}
        components = tuple(
            c if c.name in keep else c.with_start_type(StartType.LOAD)
            for c in self.components
        )
        return replace(self, components=components)

    def code_paths(self) -> list[Path]:
        """Module search paths for every component, staged copy first."""
        paths: list[Path] = []
        for c in self.components:
            paths.append(self.component_lib_path(c.name, c.version) / MODULES_DIR)
            paths.append(c.path / MODULES_DIR)
        return paths
