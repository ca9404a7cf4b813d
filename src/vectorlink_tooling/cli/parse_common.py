"""Shared CLI pieces: common flags, config loading, error reporting."""

from __future__ import annotations

import argparse
import logging
import sys
from pathlib import Path
from typing import Any

from vectorlink_tooling.config import load_config
from vectorlink_tooling.errors import PipelineError


def path_resolver(s: str) -> Path:
    """Resolve a path argument to absolute Path (e.g. --project-root, --config)."""
    return Path(s).resolve()


def add_common_args(ap: argparse.ArgumentParser) -> None:
    ap.add_argument(
        "--project-root",
        type=path_resolver,
        default=Path.cwd(),
        help="Project root (default: cwd)",
    )
    ap.add_argument(
        "--config",
        type=path_resolver,
        default=None,
        help="Config file (default: <project-root>/vectorlink.yaml)",
    )
    ap.add_argument("--lock-policy", choices=("frozen", "locked"), default=None)
    ap.add_argument("-v", "--verbose", action="store_true", help="Debug logging")


def setup(args: argparse.Namespace) -> dict[str, Any]:
    """Configure logging and load config, applying flag overrides."""
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format="%(levelname)s %(name)s: %(message)s",
    )
    cfg = load_config(args.project_root, args.config)
    if args.lock_policy:
        cfg["lock_policy"] = args.lock_policy
    return cfg


def report(err: PipelineError) -> int:
    """Print a failed stage and the tool output verbatim to stderr. Returns 1."""
    print(f"❌ {err}", file=sys.stderr)
    if err.output:
        print(err.output.rstrip(), file=sys.stderr)
    return 1
