"""Cargo workspace -> maturin wheel -> offline install orchestration. Consumed by vectorlink builds."""

from .builder import BuildUnitSelector, InstallableArtifact, NativeExtensionBuilder, TargetConfig
from .cache import ArtifactSet, WorkspaceCache, cache_key
from .composer import ComposedManifest, compose
from .installer import InstalledTree, PackageInstaller
from .pipeline import PipelineResult, Toolset, run_pipeline
from .workspace import Workspace

__all__ = [
    "ArtifactSet",
    "BuildUnitSelector",
    "ComposedManifest",
    "InstallableArtifact",
    "InstalledTree",
    "NativeExtensionBuilder",
    "PackageInstaller",
    "PipelineResult",
    "TargetConfig",
    "Toolset",
    "Workspace",
    "WorkspaceCache",
    "cache_key",
    "compose",
    "run_pipeline",
]
