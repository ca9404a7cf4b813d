"""Tests for vectorlink_tooling.helpers."""

from pathlib import Path

import pytest

from vectorlink_tooling.helpers import (
    hash_tree,
    normalize_dist_name,
    parse_wheel_filename,
    requirement_name,
    toml_string,
    toml_string_list,
)


class TestNaming:
    def test_normalize_dist_name(self) -> None:
        assert normalize_dist_name("vectorlink-task-py") == "vectorlink_task_py"
        assert normalize_dist_name("Sentence.Transformers") == "sentence_transformers"
        assert normalize_dist_name("a__b--c") == "a_b_c"

    def test_requirement_name(self) -> None:
        assert requirement_name("numpy") == "numpy"
        assert requirement_name("torch>=2.1") == "torch"
        assert requirement_name(" sentence-transformers ~= 2.2") == "sentence-transformers"

    def test_requirement_name_invalid_raises(self) -> None:
        with pytest.raises(ValueError, match="Invalid requirement"):
            requirement_name(">=1.0")


class TestToml:
    TEXT = (
        "[workspace]\n"
        'resolver = "2"\n'
        "members = [\n"
        '    "vectorlink",  # core\n'
        '    "vectorlink-task-py",\n'
        "]\n"
        'exclude = ["scratch"]\n'
        "\n"
        "[package]\n"
        'name = "root"\n'
        'version = "1.2.3"\n'
        "\n"
        "[dependencies]\n"
        'name = "not-a-package-name"\n'
    )

    def test_string_list_multiline_with_comments(self) -> None:
        assert toml_string_list(self.TEXT, "workspace", "members") == [
            "vectorlink",
            "vectorlink-task-py",
        ]
        assert toml_string_list(self.TEXT, "workspace", "exclude") == ["scratch"]

    def test_string_list_missing(self) -> None:
        assert toml_string_list(self.TEXT, "package", "members") is None

    def test_string_scoped_to_section(self) -> None:
        assert toml_string(self.TEXT, "package", "name") == "root"
        assert toml_string(self.TEXT, "package", "version") == "1.2.3"
        assert toml_string(self.TEXT, "workspace", "name") is None


class TestParseWheelFilename:
    def test_parses_tags(self) -> None:
        parts = parse_wheel_filename("vectorlink_task_py-0.1.0-cp311-cp311-linux_x86_64.whl")
        assert parts == {
            "name": "vectorlink_task_py",
            "version": "0.1.0",
            "python": "cp311",
            "abi": "cp311",
            "platform": "linux_x86_64",
        }

    def test_parses_build_tag(self) -> None:
        parts = parse_wheel_filename("core-1.0-1-cp311-abi3-linux_x86_64.whl")
        assert parts["build"] == "1"
        assert parts["abi"] == "abi3"

    def test_rejects_non_wheel(self) -> None:
        with pytest.raises(ValueError, match="Invalid wheel filename"):
            parse_wheel_filename("core-1.0.tar.gz")


class TestHashTree:
    def test_stable_and_content_sensitive(self, tmp_path: Path) -> None:
        (tmp_path / "src").mkdir()
        (tmp_path / "src" / "lib.rs").write_text("fn a() {}")
        h1 = hash_tree(tmp_path)
        assert hash_tree(tmp_path) == h1
        (tmp_path / "src" / "lib.rs").write_text("fn b() {}")
        assert hash_tree(tmp_path) != h1

    def test_ignores_excluded_parts(self, tmp_path: Path) -> None:
        (tmp_path / "lib.rs").write_text("x")
        h1 = hash_tree(tmp_path)
        (tmp_path / "target").mkdir()
        (tmp_path / "target" / "out.o").write_text("obj")
        assert hash_tree(tmp_path) == h1

    def test_ignores_excluded_paths(self, tmp_path: Path) -> None:
        (tmp_path / "lib.rs").write_text("x")
        h1 = hash_tree(tmp_path, exclude_paths=[tmp_path / "out", tmp_path / "py" / "requirements.txt"])
        (tmp_path / "out" / "lib").mkdir(parents=True)
        (tmp_path / "out" / "lib" / "mod.py").write_text("y")
        (tmp_path / "py").mkdir()
        (tmp_path / "py" / "requirements.txt").write_text("numpy\n")
        assert hash_tree(tmp_path, exclude_paths=[tmp_path / "out", tmp_path / "py" / "requirements.txt"]) == h1
        (tmp_path / "py" / "other.txt").write_text("z")
        assert hash_tree(tmp_path, exclude_paths=[tmp_path / "out", tmp_path / "py" / "requirements.txt"]) != h1

    def test_excluded_paths_outside_root_are_ignored(self, tmp_path: Path) -> None:
        (tmp_path / "ws").mkdir()
        (tmp_path / "ws" / "lib.rs").write_text("x")
        assert hash_tree(tmp_path / "ws", exclude_paths=[tmp_path / "elsewhere", tmp_path / "ws"]) == hash_tree(
            tmp_path / "ws"
        )
