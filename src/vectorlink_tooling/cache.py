"""Content-addressed store of compiled workspace artifacts.

Layout under the store root:

    entries/<key>/manifest.json   written before publish
    entries/<key>/target/         CARGO_TARGET_DIR of the cargo build
    tmp/<key-prefix>.<random>/    in-flight builds and entries being deleted

An entry is published by renaming a complete temp dir into entries/, so readers
never see a partial entry. A second writer for the same key loses the rename,
drops its temp dir and returns the published entry.
"""

from __future__ import annotations

import json
import logging
import shutil
import tempfile
import time
from collections.abc import Sequence
from dataclasses import dataclass, replace
from datetime import datetime
from pathlib import Path

from vectorlink_tooling.errors import CompileError, LockMismatchError, SelectorNotFoundError
from vectorlink_tooling.helpers import sha256_text
from vectorlink_tooling.tools import LOCK_POLICIES, CargoTool
from vectorlink_tooling.workspace import Workspace

log = logging.getLogger(__name__)

MANIFEST_NAME = "manifest.json"

# cargo stderr fragments meaning the lock would have to change.
LOCK_MARKERS = (
    "needs to be updated but",
    "cannot update the lock file",
)


@dataclass(frozen=True)
class ArtifactSet:
    """A published cache entry."""

    key: str
    path: Path
    workspace_hash: str
    lock_policy: str
    units: tuple[str, ...]
    release: bool
    created: str
    reused: bool = False

    @property
    def target_dir(self) -> Path:
        return self.path / "target"

    @classmethod
    def from_manifest(cls, path: Path) -> ArtifactSet:
        data = json.loads((path / MANIFEST_NAME).read_text())
        return cls(
            key=data["key"],
            path=path,
            workspace_hash=data["workspace_hash"],
            lock_policy=data["lock_policy"],
            units=tuple(data.get("units") or ()),
            release=bool(data.get("release", True)),
            created=data.get("created", ""),
        )


def cache_key(
    workspace: Workspace,
    lock_policy: str = "frozen",
    units: Sequence[str] | None = None,
    release: bool = True,
) -> str:
    """Key over workspace content hash, lock policy, unit selection and profile."""
    selection = ",".join(sorted(set(units))) if units else "all"
    profile = "release" if release else "debug"
    return sha256_text(workspace.content_hash, lock_policy, selection, profile)


class WorkspaceCache:
    def __init__(self, root: Path) -> None:
        self.root = Path(root).expanduser()

    @property
    def entries_dir(self) -> Path:
        return self.root / "entries"

    @property
    def tmp_dir(self) -> Path:
        return self.root / "tmp"

    def entry_dir(self, key: str) -> Path:
        return self.entries_dir / key

    def _ensure_dirs(self) -> None:
        self.entries_dir.mkdir(parents=True, exist_ok=True)
        self.tmp_dir.mkdir(parents=True, exist_ok=True)

    def lookup(self, key: str) -> ArtifactSet | None:
        """Published entry for key, or None."""
        path = self.entry_dir(key)
        if not (path / MANIFEST_NAME).is_file():
            return None
        return ArtifactSet.from_manifest(path)

    def prebuild(
        self,
        workspace: Workspace,
        cargo: CargoTool,
        units: Sequence[str] | None = None,
        lock_policy: str = "frozen",
        release: bool = True,
    ) -> ArtifactSet:
        """Return the entry for this workspace state, compiling only on a miss.

        units: package names to prebuild; None or empty means the whole workspace.
        Raises LockMismatchError, SelectorNotFoundError or CompileError; nothing is
        published on failure.
        """
        if lock_policy not in LOCK_POLICIES:
            msg = f"Lock policy {lock_policy!r} would allow Cargo.lock updates; use frozen or locked"
            raise LockMismatchError(msg)
        if workspace.lock_text() is None:
            msg = f"{workspace.lockfile} not found; a committed lock is required"
            raise LockMismatchError(msg)
        units = list(units or [])
        key = cache_key(workspace, lock_policy, units, release)
        existing = self.lookup(key)
        if existing is not None:
            print(f"♻️  Reusing cached workspace build {key[:12]}")
            return replace(existing, reused=True)

        unknown = [u for u in units if u not in workspace.member_names()]
        if unknown:
            msg = f"Not workspace members: {', '.join(unknown)}"
            raise SelectorNotFoundError(msg, stage="cache")

        self._ensure_dirs()
        tmp = Path(tempfile.mkdtemp(prefix=f"{key[:12]}.", dir=self.tmp_dir))
        try:
            label = ", ".join(units) if units else "workspace"
            print(f"🔨 Building {label} ({lock_policy}) into cache {key[:12]}")
            result = cargo.build(
                workspace.root,
                tmp / "target",
                lock_policy=lock_policy,
                packages=units or None,
                release=release,
            )
            if not result.ok:
                if any(m in result.stderr for m in LOCK_MARKERS):
                    msg = f"{workspace.lockfile} is out of date and may not be rewritten"
                    raise LockMismatchError(msg, output=result.output)
                msg = f"cargo build failed (exit {result.returncode})"
                raise CompileError(msg, output=result.output)

            manifest = {
                "key": key,
                "workspace_root": str(workspace.root),
                "workspace_hash": workspace.content_hash,
                "lock_policy": lock_policy,
                "units": sorted(units),
                "release": release,
                "created": datetime.now().isoformat(),
            }
            (tmp / MANIFEST_NAME).write_text(json.dumps(manifest, indent=2))
            dest = self.entry_dir(key)
            try:
                tmp.rename(dest)
            except OSError:
                if self.lookup(key) is None:
                    raise
                log.info("cache entry %s already published by another writer", key)
            published = self.lookup(key)
            if published is None:
                msg = f"Cache entry {key} vanished after publish"
                raise CompileError(msg)
            print(f"✅ Cached workspace build {key[:12]}")
            return published
        finally:
            if tmp.exists():
                shutil.rmtree(tmp, ignore_errors=True)

    def materialize(self, artifacts: ArtifactSet, dest: Path) -> Path:
        """Copy the entry's target tree into dest for a downstream build. The entry itself is never written."""
        if artifacts.target_dir.is_dir():
            shutil.copytree(artifacts.target_dir, dest, symlinks=True, dirs_exist_ok=True)
        else:
            log.warning(
                "cache entry %s has no target dir at %s; the native build starts from an empty target",
                artifacts.key,
                artifacts.target_dir,
            )
            print(f"⚠️  Cache entry {artifacts.key[:12]} has no compiled target; building without it")
            dest.mkdir(parents=True, exist_ok=True)
        return dest

    def entries(self) -> list[ArtifactSet]:
        """Published entries, newest first."""
        if not self.entries_dir.is_dir():
            return []
        out = [
            ArtifactSet.from_manifest(d)
            for d in self.entries_dir.iterdir()
            if (d / MANIFEST_NAME).is_file()
        ]
        return sorted(out, key=lambda a: a.created, reverse=True)

    def prune(self, keep: int = 5, stale_after: float = 3600.0) -> list[str]:
        """Delete all but the newest `keep` entries and temp dirs older than stale_after seconds. Returns removed keys."""
        removed: list[str] = []
        if keep < 0:
            msg = f"keep must be >= 0, got {keep}"
            raise ValueError(msg)
        self._ensure_dirs()
        for entry in self.entries()[keep:]:
            # Move out of entries/ first so readers never see a half-deleted entry.
            graveyard = Path(tempfile.mkdtemp(prefix="gc.", dir=self.tmp_dir)) / entry.key
            entry.path.rename(graveyard)
            shutil.rmtree(graveyard.parent, ignore_errors=True)
            removed.append(entry.key)
            log.info("pruned cache entry %s", entry.key)
        cutoff = time.time() - stale_after
        for d in self.tmp_dir.iterdir():
            if d.is_dir() and d.stat().st_mtime < cutoff:
                shutil.rmtree(d, ignore_errors=True)
        return removed
