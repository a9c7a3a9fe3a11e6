"""Release assembly.

- component / resolver: installed components and the dependency closure
- profile / model / config / configure: the release and its build settings
- descriptor / diff: release snapshots and what changed between two of them
- appup / synthesizer: per-component upgrade instructions
- script / linker / relup: boot scripts and the release-wide upgrade plan
- assembler: the pipeline tying it together
"""

from __future__ import annotations

from .assembler import AssemblyResult, assemble, pre_assemble
from .component import Component, ComponentIndex, StartType
from .config import ProjectConfig, load_project_config
from .diff import VersionDiff, diff_components
from .model import Release
from .profile import LATEST, Profile, ProfileOverride, merge_profile
from .resolver import resolve

__all__ = [
    "LATEST",
    "AssemblyResult",
    "Component",
    "ComponentIndex",
    "Profile",
    "ProfileOverride",
    "ProjectConfig",
    "Release",
    "StartType",
    "VersionDiff",
    "assemble",
    "diff_components",
    "load_project_config",
    "merge_profile",
    "pre_assemble",
    "resolve",
]
