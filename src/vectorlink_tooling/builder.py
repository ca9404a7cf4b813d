"""Build one workspace crate into one wheel with maturin and stage it.

The crate is selected by package name and/or manifest path and must resolve to exactly
one member. maturin runs against a fresh CARGO_TARGET_DIR (seeded from the workspace
cache when given), so the wheels it leaves there belong to this build only.
"""

from __future__ import annotations

import logging
import shutil
import tempfile
from dataclasses import dataclass
from pathlib import Path

from vectorlink_tooling.cache import ArtifactSet, WorkspaceCache
from vectorlink_tooling.errors import (
    BuildFailedError,
    MultipleArtifactsError,
    SelectorAmbiguousError,
    SelectorNotFoundError,
    StagingConflictError,
)
from vectorlink_tooling.helpers import normalize_dist_name, parse_wheel_filename, toml_string
from vectorlink_tooling.tools import MaturinTool
from vectorlink_tooling.workspace import Member, Workspace

log = logging.getLogger(__name__)

WHEEL_GLOB = "*.whl"


@dataclass(frozen=True)
class BuildUnitSelector:
    package_name: str | None = None
    manifest_path: Path | None = None

    def describe(self) -> str:
        parts = []
        if self.package_name:
            parts.append(f"package {self.package_name}")
        if self.manifest_path:
            parts.append(f"manifest {self.manifest_path}")
        return ", ".join(parts) or "no selector"


@dataclass(frozen=True)
class TargetConfig:
    release: bool = True
    strip: bool = True
    manylinux: str = "off"
    lock_policy: str = "frozen"


@dataclass(frozen=True)
class InstallableArtifact:
    path: Path
    distribution: str
    version: str
    python_tag: str
    abi_tag: str
    platform_tag: str

    @classmethod
    def from_path(cls, path: Path) -> InstallableArtifact:
        parts = parse_wheel_filename(path.name)
        return cls(
            path=path,
            distribution=parts["name"],
            version=parts["version"],
            python_tag=parts["python"],
            abi_tag=parts["abi"],
            platform_tag=parts["platform"],
        )


def resolve_selector(workspace: Workspace, selector: BuildUnitSelector) -> Member:
    """Exactly one member matching selector. Raises SelectorNotFoundError or SelectorAmbiguousError."""
    candidates = list(workspace.members)
    if selector.manifest_path is not None:
        manifest = selector.manifest_path
        if not manifest.is_absolute():
            manifest = workspace.root / manifest
        manifest = manifest.resolve()
        # A virtual root manifest selects every member.
        if not (manifest == workspace.manifest_path and workspace.is_virtual()):
            candidates = [m for m in candidates if m.manifest_path == manifest]
    if selector.package_name:
        candidates = [m for m in candidates if m.name == selector.package_name]

    if not candidates:
        msg = f"No workspace member matches {selector.describe()}"
        raise SelectorNotFoundError(msg)
    if len(candidates) > 1:
        names = ", ".join(m.name for m in candidates)
        msg = f"{selector.describe()} matches {len(candidates)} members: {names}"
        raise SelectorAmbiguousError(msg)
    return candidates[0]


def distribution_name(member: Member) -> str:
    """Wheel distribution name: [project] name from the crate's pyproject.toml, else the crate name."""
    pyproject = member.directory / "pyproject.toml"
    name = None
    if pyproject.is_file():
        name = toml_string(pyproject.read_text(), "project", "name")
    return normalize_dist_name(name or member.name)


def staged_wheels(staging_dir: Path) -> list[Path]:
    """*.whl files in staging_dir with a valid wheel file name; anything else is skipped."""
    if not staging_dir.is_dir():
        return []
    wheels: list[Path] = []
    for p in sorted(staging_dir.glob(WHEEL_GLOB)):
        if not p.is_file():
            continue
        try:
            parse_wheel_filename(p.name)
        except ValueError:
            log.warning("ignoring %s: not a valid wheel file name", p)
            continue
        wheels.append(p)
    return wheels


class NativeExtensionBuilder:
    def __init__(self, maturin: MaturinTool, cache: WorkspaceCache | None = None) -> None:
        self.maturin = maturin
        self.cache = cache

    def prepare_staging(self, staging_dir: Path, clean: bool = False) -> None:
        """Create staging_dir. Existing wheels raise StagingConflictError unless clean, which empties it."""
        stale = staged_wheels(staging_dir)
        if stale:
            if not clean:
                names = ", ".join(p.name for p in stale)
                msg = f"{staging_dir} already contains {names}; clear it or rebuild with clean"
                raise StagingConflictError(msg)
            print(f"🧹 Clearing {len(stale)} stale artifact(s) from {staging_dir}")
            shutil.rmtree(staging_dir)
        staging_dir.mkdir(parents=True, exist_ok=True)

    def build(
        self,
        workspace: Workspace,
        selector: BuildUnitSelector,
        target: TargetConfig,
        staging_dir: Path,
        artifacts: ArtifactSet | None = None,
        clean: bool = False,
    ) -> InstallableArtifact:
        member = resolve_selector(workspace, selector)
        self.prepare_staging(staging_dir, clean=clean)
        dist = distribution_name(member)

        with tempfile.TemporaryDirectory(prefix="vectorlink-build.") as work:
            target_dir = Path(work) / "target"
            if artifacts is not None and self.cache is not None:
                self.cache.materialize(artifacts, target_dir)
                log.debug("seeded %s from cache entry %s", target_dir, artifacts.key)
            print(f"🔨 Building {member.name} with maturin")
            result = self.maturin.build(
                workspace.root,
                member.manifest_path,
                target_dir,
                lock_policy=target.lock_policy,
                manylinux=target.manylinux,
                strip=target.strip,
                release=target.release,
            )
            if not result.ok:
                msg = f"maturin build failed for {member.name} (exit {result.returncode})"
                raise BuildFailedError(msg, output=result.output)

            wheels = [
                w
                for w in staged_wheels(target_dir / "wheels")
                if normalize_dist_name(parse_wheel_filename(w.name)["name"]) == dist
            ]
            if not wheels:
                msg = f"maturin reported success but produced no {dist} wheel"
                raise BuildFailedError(msg, output=result.output)
            if len(wheels) > 1:
                names = ", ".join(w.name for w in wheels)
                msg = f"maturin produced {len(wheels)} {dist} wheels: {names}"
                raise MultipleArtifactsError(msg, stage="build")

            dst = staging_dir / wheels[0].name
            shutil.copy2(wheels[0], dst)
        print(f"📦 Staged {dst.name} -> {staging_dir}")
        return InstallableArtifact.from_path(dst)
