"""Pytest fixtures for vectorlink tooling tests: sample workspaces and fake cargo/maturin/pip."""

from __future__ import annotations

import threading
from pathlib import Path

import pytest

from vectorlink_tooling.helpers import normalize_dist_name, toml_string
from vectorlink_tooling.tools import ToolResult


def write_crate(root: Path, rel: str, name: str, version: str = "0.1.0") -> Path:
    d = root / rel
    (d / "src").mkdir(parents=True, exist_ok=True)
    (d / "Cargo.toml").write_text(f'[package]\nname = "{name}"\nversion = "{version}"\n')
    (d / "src" / "lib.rs").write_text(f"// {name}\n")
    return d / "Cargo.toml"


def write_workspace(root: Path, crates: dict[str, tuple[str, str]], lock: bool = True) -> Path:
    """crates: rel dir -> (package name, version). Returns root."""
    root.mkdir(parents=True, exist_ok=True)
    members = "".join(f'    "{rel}",\n' for rel in crates)
    (root / "Cargo.toml").write_text(f'[workspace]\nresolver = "2"\nmembers = [\n{members}]\n')
    for rel, (name, version) in crates.items():
        write_crate(root, rel, name, version)
    if lock:
        (root / "Cargo.lock").write_text("# pinned\nversion = 3\n")
    return root


@pytest.fixture
def core_workspace(tmp_path: Path) -> Path:
    """Workspace with one crate 'core' 1.0."""
    return write_workspace(tmp_path / "ws", {"core": ("core", "1.0")})


@pytest.fixture
def vectorlink_workspace(tmp_path: Path) -> Path:
    """vectorlink-style workspace: vectorlink + vectorlink-task-py."""
    return write_workspace(
        tmp_path / "ws",
        {
            "vectorlink": ("vectorlink", "0.1.0"),
            "vectorlink-task-py": ("vectorlink-task-py", "0.1.0"),
        },
    )


class FakeCargo:
    """Writes a fake rlib per package into target_dir/<profile>."""

    def __init__(self, returncode: int = 0, stderr: str = "", barrier: threading.Barrier | None = None):
        self.returncode = returncode
        self.stderr = stderr
        self.barrier = barrier
        self.calls: list[dict] = []
        self._lock = threading.Lock()

    def build(self, workspace_root, target_dir, lock_policy="frozen", packages=None, release=True):
        with self._lock:
            self.calls.append(
                {
                    "workspace_root": workspace_root,
                    "target_dir": target_dir,
                    "lock_policy": lock_policy,
                    "packages": packages,
                    "release": release,
                }
            )
        if self.barrier is not None:
            self.barrier.wait(timeout=10)
        out = Path(target_dir) / ("release" if release else "debug")
        out.mkdir(parents=True, exist_ok=True)
        (out / "partial.o").write_text("half-built")
        if self.returncode != 0:
            return ToolResult(self.returncode, "", self.stderr)
        for p in packages or ["workspace"]:
            (out / f"lib{normalize_dist_name(p)}.rlib").write_text(p)
        return ToolResult(0, "Finished release", "")


class FakeMaturin:
    """Writes wheels named after the selected crate into target_dir/wheels."""

    def __init__(
        self,
        returncode: int = 0,
        stderr: str = "",
        wheels: list[str] | None = None,
        platform: str = "linux_x86_64",
    ):
        self.returncode = returncode
        self.stderr = stderr
        self.wheels = wheels
        self.platform = platform
        self.calls: list[dict] = []

    def build(
        self,
        workspace_root,
        manifest_path,
        target_dir,
        lock_policy="frozen",
        manylinux="off",
        strip=True,
        release=True,
    ):
        target_dir = Path(target_dir)
        seen = sorted(
            p.relative_to(target_dir).as_posix() for p in target_dir.rglob("*") if p.is_file()
        ) if target_dir.exists() else []
        self.calls.append(
            {
                "manifest_path": manifest_path,
                "target_dir": target_dir,
                "lock_policy": lock_policy,
                "manylinux": manylinux,
                "strip": strip,
                "release": release,
                "seen": seen,
            }
        )
        if self.returncode != 0:
            return ToolResult(self.returncode, "", self.stderr)
        text = Path(manifest_path).read_text()
        name = normalize_dist_name(toml_string(text, "package", "name"))
        version = toml_string(text, "package", "version")
        names = self.wheels if self.wheels is not None else [
            f"{name}-{version}-cp311-cp311-{self.platform}.whl"
        ]
        wheels = target_dir / "wheels"
        wheels.mkdir(parents=True, exist_ok=True)
        for n in names:
            (wheels / n).write_bytes(b"PK\x03\x04fake")
        return ToolResult(0, "Built wheel", "")


class FakePip:
    """Creates an importable package per module under prefix/lib/python3.11/site-packages."""

    def __init__(self, returncode: int = 0, stderr: str = "", modules: tuple[str, ...] = ("core",)):
        self.returncode = returncode
        self.stderr = stderr
        self.modules = modules
        self.calls: list[dict] = []

    def install(self, wheel, prefix, find_links):
        self.calls.append({"wheel": wheel, "prefix": prefix, "find_links": find_links})
        prefix = Path(prefix)
        sp = prefix / "lib" / "python3.11" / "site-packages"
        sp.mkdir(parents=True, exist_ok=True)
        if self.returncode != 0:
            (sp / "half-installed.txt").write_text("x")
            return ToolResult(self.returncode, "", self.stderr)
        for m in self.modules:
            (sp / m).mkdir(exist_ok=True)
            (sp / m / "__init__.py").write_text("")
        return ToolResult(0, "Successfully installed", "")


@pytest.fixture
def fake_cargo() -> FakeCargo:
    return FakeCargo()


@pytest.fixture
def fake_maturin() -> FakeMaturin:
    return FakeMaturin()


@pytest.fixture
def fake_pip() -> FakePip:
    return FakePip()
