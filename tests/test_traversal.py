"""Tests for scan target discovery."""

import logging
from pathlib import Path

import pytest

from scalecheck.traversal import (
    DEFAULT_IGNORE_DIRS,
    TargetError,
    collect_targets,
    find_source_files,
    is_c_file,
    is_header_file,
    is_source_file,
    should_ignore_directory,
)


class TestFileTypeChecks:
    def test_is_c_file(self):
        assert is_c_file(Path("main.c"))
        assert is_c_file(Path("MAIN.C"))
        assert not is_c_file(Path("main.cpp"))
        assert not is_c_file(Path("main.h"))

    def test_is_header_file(self):
        assert is_header_file(Path("api.h"))
        assert is_header_file(Path("API.H"))
        assert not is_header_file(Path("api.hpp"))

    def test_is_source_file(self):
        assert is_source_file(Path("main.c"))
        assert not is_source_file(Path("api.h"))
        assert is_source_file(Path("api.h"), include_headers=True)
        assert not is_source_file(Path("notes.txt"), include_headers=True)

    def test_should_ignore_directory(self):
        assert should_ignore_directory(Path("build"), DEFAULT_IGNORE_DIRS)
        assert should_ignore_directory(Path("project/.git"), DEFAULT_IGNORE_DIRS)
        assert not should_ignore_directory(Path("src"), DEFAULT_IGNORE_DIRS)
        assert not should_ignore_directory(Path("BUILD"), {"build"})


class TestTraversal:
    @pytest.fixture
    def temp_project(self, tmp_path):
        # src/ and include/ hold sources; build/ and vendor/ must be skipped.
        for d in ("src", "include", "build", "vendor", "src/net"):
            (tmp_path / d).mkdir()
        (tmp_path / "src" / "main.c").write_text("int main(void) { return 0; }")
        (tmp_path / "src" / "utils.c").write_text("void util(void) {}")
        (tmp_path / "src" / "utils.h").write_text("void util(void);")
        (tmp_path / "src" / "net" / "socket.c").write_text("int sock;")
        (tmp_path / "include" / "api.h").write_text("#define API_VERSION 1")
        (tmp_path / "build" / "generated.c").write_text("int generated;")
        (tmp_path / "vendor" / "lib.c").write_text("int lib;")
        (tmp_path / "README.md").write_text("# Project")
        return tmp_path

    def test_find_source_files_c_only(self, temp_project):
        files = find_source_files(temp_project)
        names = [f.name for f in files]
        assert sorted(names) == ["main.c", "socket.c", "utils.c"]

    def test_find_source_files_with_headers(self, temp_project):
        names = {f.name for f in find_source_files(temp_project, include_headers=True)}
        assert names == {"main.c", "utils.c", "socket.c", "utils.h", "api.h"}

    def test_custom_ignore_dirs(self, temp_project):
        names = {f.name for f in find_source_files(temp_project, ignore_dirs={"src"})}
        assert names == {"generated.c", "lib.c"}

    def test_filter_function(self, temp_project):
        files = find_source_files(temp_project, filter_fn=lambda p: p.name.startswith("u"))
        assert [f.name for f in files] == ["utils.c"]

    def test_results_sorted(self, temp_project):
        files = find_source_files(temp_project, include_headers=True)
        assert files == sorted(files)

    def test_missing_root(self, tmp_path):
        with pytest.raises(FileNotFoundError):
            find_source_files(tmp_path / "nope")

    def test_root_is_file(self, tmp_path):
        f = tmp_path / "main.c"
        f.write_text("int x;")
        with pytest.raises(NotADirectoryError):
            find_source_files(f)

    def test_logs_progress(self, temp_project, caplog):
        with caplog.at_level(logging.INFO):
            find_source_files(temp_project)
        assert "Traversal complete: found 3 source file(s)" in caplog.text


class TestCollectTargets:
    def test_single_c_file(self, tmp_path):
        f = tmp_path / "one.c"
        f.write_text("int x;")
        assert collect_targets(f) == [f]

    def test_header_rejected_without_flag(self, tmp_path):
        h = tmp_path / "one.h"
        h.write_text("int x;")
        with pytest.raises(TargetError):
            collect_targets(h)
        assert collect_targets(h, include_headers=True) == [h]

    def test_wrong_extension(self, tmp_path):
        f = tmp_path / "notes.txt"
        f.write_text("hello")
        with pytest.raises(TargetError, match="extension"):
            collect_targets(f)

    def test_empty_directory_warns(self, tmp_path, caplog):
        with caplog.at_level(logging.WARNING):
            assert collect_targets(tmp_path) == []
        assert "No C source files" in caplog.text

    def test_missing_target(self, tmp_path):
        with pytest.raises(TargetError):
            collect_targets(tmp_path / "ghost.c")
