"""Install the staged wheel into a prefix with pip, offline and atomically.

pip only sees the staging dir (--no-index --find-links). It installs into a temp
sibling of the prefix which replaces the prefix only after pip succeeded.
"""

from __future__ import annotations

import logging
import shutil
import tempfile
from dataclasses import dataclass
from pathlib import Path

from vectorlink_tooling.builder import staged_wheels
from vectorlink_tooling.errors import (
    InstallFailedError,
    MultipleArtifactsError,
    NetworkFallbackForbiddenError,
    NoArtifactError,
)
from vectorlink_tooling.tools import PipTool

log = logging.getLogger(__name__)

# pip stderr fragments meaning a requirement is not available from local sources.
MISSING_MARKERS = (
    "No matching distribution found",
    "Could not find a version that satisfies",
)


@dataclass(frozen=True)
class InstalledTree:
    prefix: Path
    wheel: Path

    def site_packages(self) -> list[Path]:
        """site-packages dirs pip created under prefix (lib/pythonX.Y or Lib on Windows)."""
        found = list(self.prefix.glob("lib*/python*/site-packages"))
        found.extend(self.prefix.glob("Lib/site-packages"))
        return sorted(p for p in found if p.is_dir())

    def has_module(self, name: str) -> bool:
        """True when a package, module or native extension importable as name exists."""
        for sp in self.site_packages():
            if (sp / name / "__init__.py").is_file() or (sp / f"{name}.py").is_file():
                return True
            if (sp / f"{name}.so").is_file() or any(sp.glob(f"{name}.*.so")):
                return True
            if any(sp.glob(f"{name}.*.pyd")):
                return True
        return False


def find_staged_artifact(staging_dir: Path) -> Path:
    """The single wheel in staging_dir. Raises NoArtifactError or MultipleArtifactsError."""
    wheels = staged_wheels(staging_dir)
    if not wheels:
        msg = f"No wheel staged in {staging_dir} (run build first)"
        raise NoArtifactError(msg)
    if len(wheels) > 1:
        names = ", ".join(w.name for w in wheels)
        msg = f"{staging_dir} holds {len(wheels)} wheels, refusing an ambiguous install: {names}"
        raise MultipleArtifactsError(msg)
    return wheels[0]


class PackageInstaller:
    def __init__(self, pip: PipTool) -> None:
        self.pip = pip

    def install(self, staging_dir: Path, prefix: Path) -> InstalledTree:
        wheel = find_staged_artifact(staging_dir)
        prefix = Path(prefix).absolute()
        prefix.parent.mkdir(parents=True, exist_ok=True)
        tmp = Path(tempfile.mkdtemp(prefix=f".{prefix.name}.", dir=prefix.parent))
        try:
            print(f"📥 Installing {wheel.name} into {prefix} (offline)")
            result = self.pip.install(wheel, tmp, staging_dir)
            if not result.ok:
                if any(m in result.output for m in MISSING_MARKERS):
                    msg = f"{wheel.name} needs packages not available in {staging_dir}; index access is disabled"
                    raise NetworkFallbackForbiddenError(msg, output=result.output)
                msg = f"pip install failed (exit {result.returncode})"
                raise InstallFailedError(msg, output=result.output)
            _swap_into_place(tmp, prefix)
        finally:
            if tmp.exists():
                shutil.rmtree(tmp, ignore_errors=True)
        print(f"✅ Installed {wheel.name}")
        return InstalledTree(prefix=prefix, wheel=wheel)


def _swap_into_place(src: Path, prefix: Path) -> None:
    """Replace prefix with src; an existing prefix is restored if the final rename fails."""
    if not prefix.exists():
        src.rename(prefix)
        return
    backup = Path(tempfile.mkdtemp(prefix=f".{prefix.name}.old.", dir=prefix.parent))
    backup.rmdir()
    prefix.rename(backup)
    try:
        src.rename(prefix)
    except OSError:
        backup.rename(prefix)
        raise
    shutil.rmtree(backup, ignore_errors=True)
    log.debug("replaced existing prefix %s", prefix)
