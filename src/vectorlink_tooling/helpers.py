"""Shared helpers for vectorlink_tooling (naming, Cargo.toml scanning, wheel names, hashing).

Used by workspace, cache, builder, installer and composer.
"""

from __future__ import annotations

import hashlib
import re
from collections.abc import Sequence
from pathlib import Path

# --- Naming ---


def normalize_dist_name(name: str) -> str:
    """PEP 503 normalization with underscores (wheel file names use '_', e.g. vectorlink-task-py -> vectorlink_task_py)."""
    return re.sub(r"[-_.]+", "_", name).lower()


def requirement_name(requirement: str) -> str:
    """Bare distribution name of a requirement string (numpy>=1.26 -> numpy)."""
    m = re.match(r"^\s*([A-Za-z0-9][A-Za-z0-9._-]*)", requirement)
    if not m:
        msg = f"Invalid requirement: {requirement!r}"
        raise ValueError(msg)
    return m.group(1)


# --- Cargo.toml ---

SKIP_PARTS = frozenset({"target", ".git", "node_modules", ".venv", "__pycache__"})


def toml_section(text: str, section: str) -> list[str]:
    """Lines belonging to [section] (header excluded). Multi-line arrays stay intact."""
    lines: list[str] = []
    in_sec = False
    for line in text.splitlines():
        s = line.strip()
        if s.startswith("[["):
            in_sec = False
            continue
        if s.startswith("["):
            name = s.split("]", 1)[0].strip("[").strip()
            if re.match(r"^[\w.-]+$", name):
                in_sec = name == section
                continue
        if in_sec:
            lines.append(line)
    return lines


def toml_string(text: str, section: str, key: str) -> str | None:
    """Value of key = "..." inside [section], or None."""
    for line in toml_section(text, section):
        m = re.match(rf'^\s*{re.escape(key)}\s*=\s*"([^"]*)"', line)
        if m:
            return m.group(1)
    return None


def toml_string_list(text: str, section: str, key: str) -> list[str] | None:
    """Value of key = ["a", "b"] inside [section] (may span lines), or None."""
    body = "\n".join(toml_section(text, section))
    m = re.search(rf"^\s*{re.escape(key)}\s*=\s*\[(.*?)\]", body, re.MULTILINE | re.DOTALL)
    if not m:
        return None
    items = re.sub(r"#[^\n]*", "", m.group(1))
    return re.findall(r'"([^"]*)"', items)


# --- Wheels ---

WHEEL_RE = re.compile(
    r"^(?P<name>[^-]+)-(?P<version>[^-]+)(?:-(?P<build>\d[^-]*))?"
    r"-(?P<python>[^-]+)-(?P<abi>[^-]+)-(?P<platform>[^-]+)\.whl$"
)


def parse_wheel_filename(filename: str) -> dict[str, str]:
    """Split a wheel file name into name, version, python, abi, platform. Raises ValueError if malformed."""
    m = WHEEL_RE.match(filename)
    if not m:
        msg = f"Invalid wheel filename: {filename}"
        raise ValueError(msg)
    return {k: v for k, v in m.groupdict().items() if v is not None}


# --- Hashing ---


def sha256_text(*parts: str) -> str:
    """sha256 hex over parts joined by NUL."""
    return hashlib.sha256("\0".join(parts).encode()).hexdigest()


def hash_tree(
    root: Path,
    *,
    exclude: set[str] | frozenset[str] | None = None,
    exclude_paths: Sequence[Path] = (),
) -> str:
    """sha256 over relative paths and contents of every file under root (sorted).

    Skips files with a path segment in exclude, and files at or under any of exclude_paths
    (paths outside root are ignored).
    """
    if exclude is None:
        exclude = SKIP_PARTS
    skip_prefixes: list[tuple[str, ...]] = []
    for ep in exclude_paths:
        try:
            parts = ep.resolve().relative_to(root.resolve()).parts
        except ValueError:
            continue
        if parts:
            skip_prefixes.append(parts)
    h = hashlib.sha256()
    for p in sorted(root.rglob("*")):
        if not p.is_file():
            continue
        rel = p.relative_to(root)
        if any(part in exclude for part in rel.parts):
            continue
        if any(rel.parts[: len(sp)] == sp for sp in skip_prefixes):
            continue
        h.update(rel.as_posix().encode())
        h.update(b"\0")
        h.update(p.read_bytes())
        h.update(b"\0")
    return h.hexdigest()
