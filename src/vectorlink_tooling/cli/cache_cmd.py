"""`vectorlink cache` subcommands: prebuild, list, prune."""

from __future__ import annotations

import argparse
import sys

from vectorlink_tooling.cache import WorkspaceCache
from vectorlink_tooling.cli.parse_common import add_common_args, report, setup
from vectorlink_tooling.config import config_path
from vectorlink_tooling.errors import PipelineError
from vectorlink_tooling.pipeline import PipelineContext, Toolset


def run_cache(args: argparse.Namespace) -> int:
    try:
        cfg = setup(args)
        cache = WorkspaceCache(config_path(args.project_root, cfg["cache_dir"]))
        if args.subcommand == "list":
            entries = cache.entries()
            if not entries:
                print(f"No cache entries in {cache.root}")
            for e in entries:
                units = ",".join(e.units) or "all"
                print(f"{e.key[:12]}  {e.created}  {e.lock_policy:<6}  {units}")
            return 0
        if args.subcommand == "prune":
            removed = cache.prune(keep=args.keep)
            print(f"🗑️  Removed {len(removed)} cache entr{'y' if len(removed) == 1 else 'ies'}")
            return 0
        ctx = PipelineContext(project_root=args.project_root, config=cfg, tools=Toolset())
        workspace = ctx.load_workspace()
        units = args.package or (None if cfg["prebuild"] == "all" else cfg["prebuild"])
        artifacts = cache.prebuild(
            workspace,
            ctx.tools.cargo,
            units=units,
            lock_policy=cfg["lock_policy"],
            release=cfg["release"],
        )
    except PipelineError as e:
        return report(e)
    print(artifacts.key)
    return 0


def run_cache_argv(argv: list[str] | None = None) -> None:
    """Parse cache subcommand from argv and run. argv defaults to sys.argv[2:] when called from main."""
    if argv is None:
        argv = sys.argv[2:] if len(sys.argv) > 2 else []
    ap = argparse.ArgumentParser(prog="vectorlink cache", description="Shared workspace build cache")
    ap.add_argument(
        "subcommand",
        nargs="?",
        choices=("prebuild", "list", "prune"),
        default="prebuild",
    )
    ap.add_argument("-p", "--package", action="append", help="Prebuild only this crate (repeatable)")
    ap.add_argument("--keep", type=int, default=5, help="prune: entries to keep (default: 5)")
    add_common_args(ap)
    sys.exit(run_cache(ap.parse_args(argv)))
