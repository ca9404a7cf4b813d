"""Compose the dependency manifest of a higher-level package on top of the native wheel.

Third-party requirements are kept in declaration order (first occurrence wins); the
native extension is always a direct file reference to the staged wheel, never a
registry name.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

import yaml

from vectorlink_tooling.builder import staged_wheels
from vectorlink_tooling.errors import DependencyUnresolvableError, MultipleArtifactsError
from vectorlink_tooling.helpers import normalize_dist_name, parse_wheel_filename, requirement_name

log = logging.getLogger(__name__)

# vectorlink-vectorize runtime stack.
DEFAULT_DEPENDENCIES: list[str] = [
    "numpy",
    "torch",
    "transformers",
    "accelerate",
    "sentence-transformers",
    "boto3",
    "pybars3",
]


@dataclass
class ComposedManifest:
    name: str
    native: str
    native_wheel: Path
    dependencies: list[str] = field(default_factory=list)

    def native_requirement(self) -> str:
        return f"{self.native} @ {self.native_wheel.resolve().as_uri()}"

    def requirements(self) -> list[str]:
        return [*self.dependencies, self.native_requirement()]

    def to_dict(self) -> dict[str, Any]:
        return {
            "name": self.name,
            "dependencies": list(self.dependencies),
            "native": {"name": self.native, "wheel": str(self.native_wheel)},
        }

    def write(self, path: Path) -> Path:
        """Write a pip requirements file (one requirement per line)."""
        path.parent.mkdir(parents=True, exist_ok=True)
        lines = [f"# {self.name} dependencies (native extension resolved locally)"]
        lines.extend(self.requirements())
        path.write_text("\n".join(lines) + "\n")
        return path

    def dump_yaml(self) -> str:
        return yaml.safe_dump(self.to_dict(), default_flow_style=False, sort_keys=False)


def dedupe_requirements(requirements: list[str]) -> list[str]:
    """Drop repeats by normalized name, keeping the first declaration."""
    seen: set[str] = set()
    out: list[str] = []
    for req in requirements:
        key = normalize_dist_name(requirement_name(req))
        if key in seen:
            continue
        seen.add(key)
        out.append(req.strip())
    return out


def compose(
    name: str,
    dependencies: list[str],
    native: str,
    staging_dir: Path,
) -> ComposedManifest:
    """Manifest for name: dependencies plus native resolved to its staged wheel.

    Raises DependencyUnresolvableError when no wheel for native is staged (build skipped or failed).
    """
    native_key = normalize_dist_name(native)
    deps = [
        d for d in dedupe_requirements(dependencies)
        if normalize_dist_name(requirement_name(d)) != native_key
    ]
    wheels = [
        w for w in staged_wheels(staging_dir)
        if normalize_dist_name(parse_wheel_filename(w.name)["name"]) == native_key
    ]
    if not wheels:
        msg = f"{native} has no locally built wheel in {staging_dir}; run the native build first"
        raise DependencyUnresolvableError(msg)
    if len(wheels) > 1:
        names = ", ".join(w.name for w in wheels)
        msg = f"Several {native} wheels staged: {names}"
        raise MultipleArtifactsError(msg, stage="compose")
    log.debug("resolved %s -> %s", native, wheels[0])
    return ComposedManifest(name=name, native=native, native_wheel=wheels[0], dependencies=deps)
