"""Build configuration: vectorlink.yaml merged over defaults. Paths are relative to project_root."""

from __future__ import annotations

import copy
import os
from pathlib import Path
from typing import Any

import yaml

from vectorlink_tooling.composer import DEFAULT_DEPENDENCIES
from vectorlink_tooling.errors import ConfigError
from vectorlink_tooling.tools import LOCK_POLICIES

CONFIG_NAME = "vectorlink.yaml"
CACHE_DIR_ENV = "VECTORLINK_CACHE_DIR"

# vectorlink layout; override any key in vectorlink.yaml.
DEFAULT_CONFIG: dict[str, Any] = {
    "workspace_dir": ".",
    "cache_dir": "~/.cache/vectorlink-tooling",
    "staging_dir": "dist",
    "prefix": "out",
    "lock_policy": "frozen",
    "release": True,
    "strip": True,
    "manylinux": "off",
    "prebuild": "all",
    "package": "vectorlink-task-py",
    "manifest_path": "vectorlink-task-py/Cargo.toml",
    "clean_staging": False,
    "install": True,
    "compose": {
        "name": "vectorlink-vectorize",
        "dependencies": list(DEFAULT_DEPENDENCIES),
        "native": "vectorlink-task-py",
        "output": "python/vectorlink-vectorize/requirements.txt",
    },
}

_BOOL_KEYS = ("release", "strip", "clean_staging", "install")
_STR_KEYS = ("workspace_dir", "cache_dir", "staging_dir", "prefix", "manylinux")


def resolve_config(config: dict[str, Any] | None) -> dict[str, Any]:
    """Return config with defaults filled and values checked. Unknown keys are ignored."""
    out = copy.deepcopy(DEFAULT_CONFIG)
    if not config:
        return out
    for k, v in config.items():
        if k not in out:
            continue
        if k == "compose":
            if v in (None, False):
                out["compose"] = None
            elif isinstance(v, dict):
                out["compose"].update({ck: cv for ck, cv in v.items() if ck in out["compose"]})
            else:
                msg = "compose must be a mapping or false"
                raise ConfigError(msg)
        else:
            out[k] = v

    for k in _BOOL_KEYS:
        if not isinstance(out[k], bool):
            msg = f"{k} must be true or false, got {out[k]!r}"
            raise ConfigError(msg)
    for k in _STR_KEYS:
        out[k] = str(out[k])
    if out["lock_policy"] not in LOCK_POLICIES:
        msg = f"lock_policy must be one of {', '.join(LOCK_POLICIES)}, got {out['lock_policy']!r}"
        raise ConfigError(msg)
    prebuild = out["prebuild"]
    if prebuild in (None, "all"):
        out["prebuild"] = "all"
    elif isinstance(prebuild, list) and all(isinstance(p, str) for p in prebuild):
        out["prebuild"] = list(prebuild)
    else:
        msg = f"prebuild must be 'all' or a list of package names, got {prebuild!r}"
        raise ConfigError(msg)
    compose = out["compose"]
    if compose is not None:
        deps = compose.get("dependencies") or []
        if not isinstance(deps, list):
            msg = "compose.dependencies must be a list"
            raise ConfigError(msg)
        compose["dependencies"] = [str(d) for d in deps]
    return out


def load_config(project_root: Path, path: Path | None = None) -> dict[str, Any]:
    """Load project_root/vectorlink.yaml (or path) if present; CACHE_DIR_ENV overrides cache_dir."""
    p = path if path is not None else project_root / CONFIG_NAME
    data: dict[str, Any] | None = None
    if p.is_file():
        with p.open() as f:
            try:
                data = yaml.safe_load(f)
            except yaml.YAMLError as e:
                msg = f"Invalid YAML in {p}: {e}"
                raise ConfigError(msg) from e
        if data is not None and not isinstance(data, dict):
            msg = f"{p} must contain a mapping"
            raise ConfigError(msg)
    elif path is not None:
        msg = f"Config file not found: {p}"
        raise ConfigError(msg)
    cfg = resolve_config(data)
    env_cache = os.environ.get(CACHE_DIR_ENV)
    if env_cache:
        cfg["cache_dir"] = env_cache
    return cfg


def config_path(project_root: Path, value: str) -> Path:
    """Resolve a configured path: ~ expanded, relative paths under project_root."""
    p = Path(value).expanduser()
    return p if p.is_absolute() else project_root / p
