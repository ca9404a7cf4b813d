"""`vectorlink install` and `vectorlink compose`."""

from __future__ import annotations

import argparse
import sys
from pathlib import Path

from vectorlink_tooling.cli.parse_common import add_common_args, report, setup
from vectorlink_tooling.composer import compose
from vectorlink_tooling.config import config_path
from vectorlink_tooling.errors import ConfigError, PipelineError
from vectorlink_tooling.installer import PackageInstaller
from vectorlink_tooling.tools import PipTool


def run_install(args: argparse.Namespace) -> int:
    try:
        cfg = setup(args)
        staging = config_path(args.project_root, str(args.staging or cfg["staging_dir"]))
        prefix = config_path(args.project_root, str(args.prefix or cfg["prefix"]))
        tree = PackageInstaller(PipTool()).install(staging, prefix)
    except PipelineError as e:
        return report(e)
    for sp in tree.site_packages():
        print(sp)
    return 0


def run_compose(args: argparse.Namespace) -> int:
    try:
        cfg = setup(args)
        spec = cfg["compose"]
        if spec is None:
            msg = "compose is disabled in config"
            raise ConfigError(msg)
        staging = config_path(args.project_root, str(args.staging or cfg["staging_dir"]))
        manifest = compose(spec["name"], spec["dependencies"], spec["native"], staging)
        output = args.output or spec.get("output")
        if output:
            out = manifest.write(config_path(args.project_root, str(output)))
            print(f"📝 Wrote {out}")
        else:
            print(manifest.dump_yaml(), end="")
    except PipelineError as e:
        return report(e)
    return 0


def run_install_argv(argv: list[str] | None = None) -> None:
    if argv is None:
        argv = sys.argv[2:] if len(sys.argv) > 2 else []
    ap = argparse.ArgumentParser(prog="vectorlink install", description="Offline install of the staged wheel")
    ap.add_argument("--staging", type=Path, default=None, help="Staging directory (default: config)")
    ap.add_argument("--prefix", type=Path, default=None, help="Install prefix (default: config)")
    add_common_args(ap)
    sys.exit(run_install(ap.parse_args(argv)))


def run_compose_argv(argv: list[str] | None = None) -> None:
    if argv is None:
        argv = sys.argv[2:] if len(sys.argv) > 2 else []
    ap = argparse.ArgumentParser(prog="vectorlink compose", description="Compose the dependency manifest")
    ap.add_argument("--staging", type=Path, default=None, help="Staging directory (default: config)")
    ap.add_argument("-o", "--output", type=Path, default=None, help="Requirements file to write")
    add_common_args(ap)
    sys.exit(run_compose(ap.parse_args(argv)))
