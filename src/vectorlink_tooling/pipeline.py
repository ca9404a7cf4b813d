"""Linear cache -> build -> install -> compose pipeline.

Each stage reads what earlier stages put on PipelineResult and must succeed before
the next one starts. The first PipelineError aborts the run; nothing is retried.
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

from vectorlink_tooling.builder import (
    BuildUnitSelector,
    InstallableArtifact,
    NativeExtensionBuilder,
    TargetConfig,
    resolve_selector,
)
from vectorlink_tooling.cache import ArtifactSet, WorkspaceCache
from vectorlink_tooling.composer import ComposedManifest, compose
from vectorlink_tooling.config import config_path
from vectorlink_tooling.errors import PipelineError
from vectorlink_tooling.installer import InstalledTree, PackageInstaller
from vectorlink_tooling.tools import CargoTool, MaturinTool, PipTool
from vectorlink_tooling.workspace import Workspace

log = logging.getLogger(__name__)


@dataclass
class Toolset:
    cargo: Any = field(default_factory=CargoTool)
    maturin: Any = field(default_factory=MaturinTool)
    pip: Any = field(default_factory=PipTool)


@dataclass
class PipelineContext:
    project_root: Path
    config: dict[str, Any]
    tools: Toolset

    @property
    def workspace_root(self) -> Path:
        return config_path(self.project_root, self.config["workspace_dir"])

    @property
    def staging_dir(self) -> Path:
        return config_path(self.project_root, self.config["staging_dir"])

    @property
    def prefix(self) -> Path:
        return config_path(self.project_root, self.config["prefix"])

    @property
    def cache(self) -> WorkspaceCache:
        return WorkspaceCache(config_path(self.project_root, self.config["cache_dir"]))

    def output_paths(self) -> list[Path]:
        """Every location the pipeline writes to: cache, staging, prefix and composed manifest."""
        paths = [
            config_path(self.project_root, self.config["cache_dir"]),
            self.staging_dir,
            self.prefix,
        ]
        spec = self.config.get("compose")
        if spec and spec.get("output"):
            paths.append(config_path(self.project_root, spec["output"]))
        return paths

    def load_workspace(self) -> Workspace:
        return Workspace.load(self.workspace_root, output_paths=self.output_paths())

    def selector(self) -> BuildUnitSelector:
        manifest = self.config.get("manifest_path")
        return BuildUnitSelector(
            package_name=self.config.get("package") or None,
            manifest_path=Path(manifest) if manifest else None,
        )

    def target(self) -> TargetConfig:
        return TargetConfig(
            release=self.config["release"],
            strip=self.config["strip"],
            manylinux=self.config["manylinux"],
            lock_policy=self.config["lock_policy"],
        )


@dataclass
class PipelineResult:
    workspace: Workspace | None = None
    artifacts: ArtifactSet | None = None
    artifact: InstallableArtifact | None = None
    installed: InstalledTree | None = None
    manifest: ComposedManifest | None = None
    completed: list[str] = field(default_factory=list)


def stage_cache(ctx: PipelineContext, result: PipelineResult) -> None:
    result.workspace = ctx.load_workspace()
    # Fail on a bad selector before paying for a workspace build.
    resolve_selector(result.workspace, ctx.selector())
    prebuild = ctx.config["prebuild"]
    result.artifacts = ctx.cache.prebuild(
        result.workspace,
        ctx.tools.cargo,
        units=None if prebuild == "all" else prebuild,
        lock_policy=ctx.config["lock_policy"],
        release=ctx.config["release"],
    )


def stage_build(ctx: PipelineContext, result: PipelineResult) -> None:
    builder = NativeExtensionBuilder(ctx.tools.maturin, cache=ctx.cache)
    result.artifact = builder.build(
        result.workspace,
        ctx.selector(),
        ctx.target(),
        ctx.staging_dir,
        artifacts=result.artifacts,
        clean=ctx.config["clean_staging"],
    )


def stage_install(ctx: PipelineContext, result: PipelineResult) -> None:
    installer = PackageInstaller(ctx.tools.pip)
    result.installed = installer.install(ctx.staging_dir, ctx.prefix)


def stage_compose(ctx: PipelineContext, result: PipelineResult) -> None:
    spec = ctx.config["compose"]
    result.manifest = compose(spec["name"], spec["dependencies"], spec["native"], ctx.staging_dir)
    if spec.get("output"):
        out = result.manifest.write(config_path(ctx.project_root, spec["output"]))
        print(f"📝 Wrote {out}")


def plan(config: dict[str, Any]) -> list[tuple[str, Callable[[PipelineContext, PipelineResult], None]]]:
    """Ordered stages for config. install and compose are optional."""
    stages: list[tuple[str, Callable[[PipelineContext, PipelineResult], None]]] = [
        ("cache", stage_cache),
        ("build", stage_build),
    ]
    if config.get("install"):
        stages.append(("install", stage_install))
    if config.get("compose"):
        stages.append(("compose", stage_compose))
    return stages


def run_pipeline(
    project_root: Path,
    config: dict[str, Any],
    tools: Toolset | None = None,
) -> PipelineResult:
    """Run every planned stage in order. Re-raises the first PipelineError with its stage set."""
    ctx = PipelineContext(project_root=project_root, config=config, tools=tools or Toolset())
    result = PipelineResult()
    for name, stage in plan(config):
        log.info("stage %s", name)
        try:
            stage(ctx, result)
        except PipelineError as e:
            e.stage = e.stage or name
            log.debug("stage %s failed: %s", name, e)
            raise
        result.completed.append(name)
    return result
