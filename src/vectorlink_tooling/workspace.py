"""Cargo workspace model: members, shared lock, content hash.

Members are read from [workspace] members (glob patterns expanded, exclude honoured);
a root manifest with only [package] is a single-crate workspace.
"""

from __future__ import annotations

import logging
from collections.abc import Sequence
from dataclasses import dataclass, field
from functools import cached_property
from pathlib import Path

from vectorlink_tooling.errors import ConfigError
from vectorlink_tooling.helpers import (
    SKIP_PARTS,
    hash_tree,
    sha256_text,
    toml_section,
    toml_string,
    toml_string_list,
)

log = logging.getLogger(__name__)

# Build outputs that live inside the workspace and must not feed the content hash.
HASH_EXCLUDE = SKIP_PARTS | {"dist", "wheels", ".vectorlink-cache"}


@dataclass(frozen=True)
class Member:
    """One crate of the workspace."""

    name: str
    manifest_path: Path
    version: str | None = None

    @property
    def directory(self) -> Path:
        return self.manifest_path.parent


@dataclass
class Workspace:
    root: Path
    members: list[Member] = field(default_factory=list)
    # Pipeline outputs (staging, install prefix, composed manifest) kept out of the content hash.
    output_paths: list[Path] = field(default_factory=list)

    @classmethod
    def load(cls, root: Path, output_paths: Sequence[Path] = ()) -> Workspace:
        """Read root/Cargo.toml and every member manifest. Raises ConfigError when the root manifest is missing.

        output_paths: files or directories the pipeline writes; they never feed content_hash.
        """
        root = root.resolve()
        manifest = root / "Cargo.toml"
        if not manifest.exists():
            msg = f"{manifest} not found"
            raise ConfigError(msg)
        text = manifest.read_text()
        members: list[Member] = []
        patterns = toml_string_list(text, "workspace", "members")
        if patterns is not None:
            excluded = {
                (root / e).resolve() for e in (toml_string_list(text, "workspace", "exclude") or [])
            }
            for pattern in patterns:
                for d in sorted(root.glob(pattern)):
                    if d.resolve() in excluded:
                        continue
                    member = _read_member(d / "Cargo.toml")
                    if member is not None and member not in members:
                        members.append(member)
        root_pkg = _read_member(manifest)
        if root_pkg is not None and root_pkg not in members:
            members.insert(0, root_pkg)
        log.debug("workspace %s: %d member(s)", root, len(members))
        return cls(root=root, members=members, output_paths=list(output_paths))

    @property
    def manifest_path(self) -> Path:
        return self.root / "Cargo.toml"

    @property
    def lockfile(self) -> Path:
        return self.root / "Cargo.lock"

    def lock_text(self) -> str | None:
        return self.lockfile.read_text() if self.lockfile.exists() else None

    def is_virtual(self) -> bool:
        """True when the root manifest has no [package] section."""
        return not toml_section(self.manifest_path.read_text(), "package")

    @cached_property
    def content_hash(self) -> str:
        """sha256 over workspace sources (build and pipeline outputs excluded) and Cargo.lock."""
        tree = hash_tree(self.root, exclude=HASH_EXCLUDE, exclude_paths=self.output_paths)
        return sha256_text(tree, self.lock_text() or "")

    def member_names(self) -> list[str]:
        return [m.name for m in self.members]


def _read_member(manifest: Path) -> Member | None:
    if not manifest.is_file():
        return None
    text = manifest.read_text()
    name = toml_string(text, "package", "name")
    if name is None:
        return None
    return Member(
        name=name,
        manifest_path=manifest.resolve(),
        version=toml_string(text, "package", "version"),
    )
