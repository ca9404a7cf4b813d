"""Narrow wrappers around the external tools (cargo, maturin, pip).

Each tool turns typed inputs into a fixed argv and runs it as an opaque subprocess.
Stages only see ToolResult, so tests can pass any object with the same methods.
"""

from __future__ import annotations

import logging
import os
import subprocess
import sys
from collections.abc import Sequence
from dataclasses import dataclass, field
from pathlib import Path

log = logging.getLogger(__name__)

LOCK_POLICIES = ("frozen", "locked")


@dataclass
class ToolResult:
    returncode: int
    stdout: str = ""
    stderr: str = ""
    argv: list[str] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        return self.returncode == 0

    @property
    def output(self) -> str:
        """stdout and stderr as one block for error reports."""
        return "\n".join(s for s in (self.stdout, self.stderr) if s)


def _run(
    argv: Sequence[str],
    cwd: Path | None = None,
    env: dict[str, str] | None = None,
) -> ToolResult:
    full_env = None
    if env:
        full_env = dict(os.environ)
        full_env.update(env)
    log.debug("run %s (cwd=%s)", " ".join(argv), cwd)
    r = subprocess.run(
        list(argv),
        cwd=str(cwd) if cwd is not None else None,
        env=full_env,
        capture_output=True,
        text=True,
    )
    return ToolResult(r.returncode, r.stdout or "", r.stderr or "", list(argv))


def lock_flag(policy: str) -> str:
    """--frozen or --locked. Both forbid rewriting Cargo.lock."""
    if policy not in LOCK_POLICIES:
        msg = f"Unknown lock policy: {policy} (use {' or '.join(LOCK_POLICIES)})"
        raise ValueError(msg)
    return f"--{policy}"


class CargoTool:
    """cargo build for the workspace cache stage."""

    def __init__(self, executable: str = "cargo") -> None:
        self.executable = executable

    def build_argv(
        self,
        lock_policy: str = "frozen",
        packages: Sequence[str] | None = None,
        release: bool = True,
    ) -> list[str]:
        argv = [self.executable, "build", lock_flag(lock_policy)]
        if release:
            argv.append("--release")
        if packages:
            for p in packages:
                argv.extend(["-p", p])
        else:
            argv.append("--workspace")
        return argv

    def build(
        self,
        workspace_root: Path,
        target_dir: Path,
        lock_policy: str = "frozen",
        packages: Sequence[str] | None = None,
        release: bool = True,
    ) -> ToolResult:
        argv = self.build_argv(lock_policy, packages, release)
        return _run(argv, cwd=workspace_root, env={"CARGO_TARGET_DIR": str(target_dir)})


class MaturinTool:
    """maturin build for one crate into a wheel."""

    def __init__(self, executable: str = "maturin") -> None:
        self.executable = executable

    def build_argv(
        self,
        manifest_path: Path,
        lock_policy: str = "frozen",
        manylinux: str = "off",
        strip: bool = True,
        release: bool = True,
    ) -> list[str]:
        argv = [self.executable, "build", lock_flag(lock_policy), "--manylinux", manylinux]
        if strip:
            argv.append("--strip")
        if release:
            argv.append("--release")
        argv.extend(["-m", str(manifest_path)])
        return argv

    def build(
        self,
        workspace_root: Path,
        manifest_path: Path,
        target_dir: Path,
        lock_policy: str = "frozen",
        manylinux: str = "off",
        strip: bool = True,
        release: bool = True,
    ) -> ToolResult:
        argv = self.build_argv(manifest_path, lock_policy, manylinux, strip, release)
        return _run(argv, cwd=workspace_root, env={"CARGO_TARGET_DIR": str(target_dir)})


class PipTool:
    """pip install restricted to local wheels (no index, no cache)."""

    def __init__(self, executable: Sequence[str] | None = None) -> None:
        self.executable = list(executable) if executable else [sys.executable, "-m", "pip"]

    def install_argv(self, wheel: Path, prefix: Path, find_links: Path) -> list[str]:
        return [
            *self.executable,
            "install",
            str(wheel),
            "--no-index",
            "--find-links",
            str(find_links),
            "--no-warn-script-location",
            "--no-cache-dir",
            "--prefix",
            str(prefix),
        ]

    def install(self, wheel: Path, prefix: Path, find_links: Path) -> ToolResult:
        return _run(self.install_argv(wheel, prefix, find_links))
