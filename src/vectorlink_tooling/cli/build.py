"""`vectorlink build` — cache the workspace, then build one crate into a staged wheel."""

from __future__ import annotations

import argparse
import sys
from pathlib import Path

from vectorlink_tooling.cli.parse_common import add_common_args, report, setup
from vectorlink_tooling.errors import PipelineError
from vectorlink_tooling.pipeline import (
    PipelineContext,
    PipelineResult,
    Toolset,
    stage_build,
    stage_cache,
)


def run_build(args: argparse.Namespace) -> int:
    try:
        cfg = setup(args)
        if args.package is not None:
            cfg["package"] = args.package
            # An explicit package without -m selects by name alone.
            cfg["manifest_path"] = None
        if args.manifest_path is not None:
            cfg["manifest_path"] = str(args.manifest_path)
        if args.out is not None:
            cfg["staging_dir"] = str(args.out)
        if args.manylinux is not None:
            cfg["manylinux"] = args.manylinux
        if args.clean:
            cfg["clean_staging"] = True
        ctx = PipelineContext(project_root=args.project_root, config=cfg, tools=Toolset())
        result = PipelineResult()
        stage_cache(ctx, result)
        stage_build(ctx, result)
    except PipelineError as e:
        return report(e)
    print(result.artifact.path)
    return 0


def run_build_argv(argv: list[str] | None = None) -> None:
    """Parse argv and build the native extension (package, -m manifest, --clean, --out)."""
    if argv is None:
        argv = sys.argv[2:] if len(sys.argv) > 2 else []  # skip 'vectorlink build'
    ap = argparse.ArgumentParser(prog="vectorlink build", description="Build one crate with maturin")
    ap.add_argument("package", nargs="?", default=None, help="Crate package name (default: config)")
    ap.add_argument("-m", "--manifest-path", type=Path, default=None, help="Crate Cargo.toml")
    ap.add_argument("--out", type=Path, default=None, help="Staging directory (default: config)")
    ap.add_argument("--clean", action="store_true", help="Clear stale wheels from staging first")
    ap.add_argument("--manylinux", default=None, help="maturin --manylinux value (default: off)")
    add_common_args(ap)
    sys.exit(run_build(ap.parse_args(argv)))
