"""Main CLI entry point for vectorlink tooling."""

import sys

from vectorlink_tooling.cli import build as build_cli
from vectorlink_tooling.cli import cache_cmd, install_cmd, run_cmd


def _usage() -> None:
    print("Usage: vectorlink <command> [args...]", file=sys.stderr)
    print("Commands:", file=sys.stderr)
    print(
        "  cache [prebuild|list|prune] - Shared content-addressed workspace build cache",
        file=sys.stderr,
    )
    print("  build [package]             - maturin build of one crate into the staging dir", file=sys.stderr)
    print("  install                     - Offline pip install of the staged wheel", file=sys.stderr)
    print("  compose                     - Dependency manifest with the local native wheel", file=sys.stderr)
    print("  run                         - cache -> build -> install -> compose", file=sys.stderr)


def main() -> None:
    """Main CLI entry point."""
    if len(sys.argv) < 2:
        _usage()
        sys.exit(1)

    command = sys.argv[1]

    if command == "cache":
        cache_cmd.run_cache_argv()
    elif command == "build":
        build_cli.run_build_argv()
    elif command == "install":
        install_cmd.run_install_argv()
    elif command == "compose":
        install_cmd.run_compose_argv()
    elif command == "run":
        run_cmd.run_all_argv()
    elif command in ("-h", "--help", "help"):
        _usage()
    else:
        print(f"Error: Unknown command: {command}", file=sys.stderr)
        sys.exit(1)


if __name__ == "__main__":
    main()
