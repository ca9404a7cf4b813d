"""`vectorlink run` — the whole cache, build, install, compose pipeline."""

from __future__ import annotations

import argparse
import sys

from vectorlink_tooling.cli.parse_common import add_common_args, report, setup
from vectorlink_tooling.errors import PipelineError
from vectorlink_tooling.pipeline import run_pipeline


def run_all(args: argparse.Namespace) -> int:
    try:
        cfg = setup(args)
        if args.clean:
            cfg["clean_staging"] = True
        if args.no_install:
            cfg["install"] = False
        if args.no_compose:
            cfg["compose"] = None
        result = run_pipeline(args.project_root, cfg)
    except PipelineError as e:
        return report(e)
    print(f"🎉 Pipeline complete: {' -> '.join(result.completed)}")
    return 0


def run_all_argv(argv: list[str] | None = None) -> None:
    if argv is None:
        argv = sys.argv[2:] if len(sys.argv) > 2 else []
    ap = argparse.ArgumentParser(prog="vectorlink run", description="cache -> build -> install -> compose")
    ap.add_argument("--clean", action="store_true", help="Clear stale wheels from staging first")
    ap.add_argument("--no-install", action="store_true", help="Skip the install stage")
    ap.add_argument("--no-compose", action="store_true", help="Skip the compose stage")
    add_common_args(ap)
    sys.exit(run_all(ap.parse_args(argv)))
