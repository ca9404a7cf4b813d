"""Tests for vectorlink_tooling.composer."""

from pathlib import Path

import pytest
import yaml

from vectorlink_tooling.composer import DEFAULT_DEPENDENCIES, compose, dedupe_requirements
from vectorlink_tooling.errors import DependencyUnresolvableError, MultipleArtifactsError

WHEEL = "vectorlink_task_py-0.1.0-cp311-cp311-linux_x86_64.whl"


def _stage(tmp_path: Path, *names: str) -> Path:
    staging = tmp_path / "dist"
    staging.mkdir(exist_ok=True)
    for n in names:
        (staging / n).write_bytes(b"PK")
    return staging


class TestDedupe:
    def test_first_declaration_wins_in_order(self) -> None:
        assert dedupe_requirements(["numpy", "torch>=2", "NumPy>=1.26", "boto3", "torch"]) == [
            "numpy",
            "torch>=2",
            "boto3",
        ]

    def test_normalized_names_collapse(self) -> None:
        assert dedupe_requirements(["sentence-transformers", "sentence_transformers"]) == [
            "sentence-transformers"
        ]


class TestCompose:
    def test_native_resolves_to_staged_wheel(self, tmp_path: Path) -> None:
        staging = _stage(tmp_path, WHEEL)
        m = compose("vectorlink-vectorize", DEFAULT_DEPENDENCIES, "vectorlink-task-py", staging)
        assert m.dependencies == DEFAULT_DEPENDENCIES
        assert m.native_wheel == staging / WHEEL
        reqs = m.requirements()
        assert reqs[:-1] == DEFAULT_DEPENDENCIES
        assert reqs[-1].startswith("vectorlink-task-py @ file://")
        assert reqs[-1].endswith(WHEEL)

    def test_native_listed_as_dependency_is_not_a_registry_lookup(self, tmp_path: Path) -> None:
        staging = _stage(tmp_path, WHEEL)
        m = compose("pkg", ["numpy", "vectorlink_task_py", "torch"], "vectorlink-task-py", staging)
        assert m.dependencies == ["numpy", "torch"]
        assert sum("vectorlink" in r for r in m.requirements()) == 1

    def test_skipped_build_is_unresolvable(self, tmp_path: Path) -> None:
        with pytest.raises(DependencyUnresolvableError) as exc_info:
            compose("pkg", ["numpy", "torch"], "core", tmp_path / "dist")
        assert exc_info.value.stage == "compose"

    def test_other_wheels_do_not_satisfy_native(self, tmp_path: Path) -> None:
        staging = _stage(tmp_path, "other-1.0-cp311-cp311-linux_x86_64.whl")
        with pytest.raises(DependencyUnresolvableError):
            compose("pkg", ["numpy"], "core", staging)

    def test_invalid_wheel_name_is_ignored(self, tmp_path: Path) -> None:
        staging = _stage(tmp_path, "notes.whl", WHEEL)
        m = compose("pkg", ["numpy"], "vectorlink-task-py", staging)
        assert m.native_wheel == staging / WHEEL

    def test_only_invalid_wheel_name_is_unresolvable(self, tmp_path: Path) -> None:
        staging = _stage(tmp_path, "notes.whl")
        with pytest.raises(DependencyUnresolvableError):
            compose("pkg", ["numpy"], "core", staging)

    def test_several_native_wheels_raise(self, tmp_path: Path) -> None:
        staging = _stage(tmp_path, "core-1.0-cp311-cp311-linux_x86_64.whl", "core-1.1-cp311-cp311-linux_x86_64.whl")
        with pytest.raises(MultipleArtifactsError):
            compose("pkg", ["numpy"], "core", staging)

    def test_write_and_dump(self, tmp_path: Path) -> None:
        staging = _stage(tmp_path, WHEEL)
        m = compose("vectorlink-vectorize", ["numpy", "torch"], "vectorlink-task-py", staging)
        out = m.write(tmp_path / "pkg" / "requirements.txt")
        lines = out.read_text().splitlines()
        assert lines[0].startswith("#")
        assert lines[1:3] == ["numpy", "torch"]
        assert lines[3] == m.native_requirement()
        data = yaml.safe_load(m.dump_yaml())
        assert data["name"] == "vectorlink-vectorize"
        assert data["dependencies"] == ["numpy", "torch"]
        assert data["native"]["wheel"] == str(staging / WHEEL)
