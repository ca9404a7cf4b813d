"""Pipeline error taxonomy. Every failure carries the stage it came from and the tool output verbatim."""

from __future__ import annotations


class PipelineError(Exception):
    """Base for all orchestration failures."""

    default_stage: str | None = None

    def __init__(self, message: str, *, stage: str | None = None, output: str = "") -> None:
        super().__init__(message)
        self.message = message
        self.stage = stage or self.default_stage
        self.output = output

    def __str__(self) -> str:
        if self.stage:
            return f"[{self.stage}] {self.message}"
        return self.message


class ConfigError(PipelineError):
    default_stage = "config"


class LockMismatchError(PipelineError):
    """Cargo.lock is missing or would have to be rewritten."""

    default_stage = "cache"


class CompileError(PipelineError):
    """A workspace member failed to compile; nothing was published."""

    default_stage = "cache"


class SelectorNotFoundError(PipelineError):
    default_stage = "build"


class SelectorAmbiguousError(PipelineError):
    default_stage = "build"


class BuildFailedError(PipelineError):
    default_stage = "build"


class StagingConflictError(PipelineError):
    """Staging dir already holds an artifact from an earlier run."""

    default_stage = "build"


class NoArtifactError(PipelineError):
    default_stage = "install"


class MultipleArtifactsError(PipelineError):
    default_stage = "install"


class NetworkFallbackForbiddenError(PipelineError):
    """pip needed something not present locally and may not reach an index."""

    default_stage = "install"


class InstallFailedError(PipelineError):
    default_stage = "install"


class DependencyUnresolvableError(PipelineError):
    """The native dependency has no locally built wheel."""

    default_stage = "compose"
