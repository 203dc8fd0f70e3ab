"""Tests for filesystem infrastructure components."""

import json
import os
from pathlib import Path

import pandas as pd
import pytest

from product_ranking_pipeline.exceptions import FileLockTimeoutError, JsonObjectExpectedError
from product_ranking_pipeline.infrastructure import LocalFileSystem


class TestLocalFileSystemJson:
    """Tests for LocalFileSystem JSON reads and atomic writes."""

    def test_write_json_creates_parents_and_leaves_no_temp_files(self, tmp_path: Path) -> None:
        fs = LocalFileSystem(token_factory=lambda: "fixed")
        path = tmp_path / "TECH_SAAS" / "2026-W42.json"

        fs.write_json({"category": "TECH_SAAS", "name": "Café"}, path)

        assert json.loads(path.read_text(encoding="utf-8")) == {
            "category": "TECH_SAAS",
            "name": "Café",
        }
        assert [item.name for item in path.parent.iterdir()] == ["2026-W42.json"]

    def test_failed_replace_keeps_previous_file(
        self, tmp_path: Path, monkeypatch: pytest.MonkeyPatch
    ) -> None:
        fs = LocalFileSystem(token_factory=lambda: "fixed")
        path = tmp_path / "snapshot.json"
        fs.write_json({"version": 1}, path)

        def failing_replace(src: object, dst: object) -> None:
            _ = (src, dst)
            raise OSError("disk full")

        monkeypatch.setattr(os, "replace", failing_replace)

        with pytest.raises(OSError, match="disk full"):
            fs.write_json({"version": 2}, path)

        assert fs.read_json(path) == {"version": 1}
        assert not (tmp_path / ".tmp-fixed-snapshot.json").exists()

    def test_read_json_requires_object(self, tmp_path: Path) -> None:
        fs = LocalFileSystem()
        path = tmp_path / "list.json"
        path.write_text("[1, 2, 3]", encoding="utf-8")

        with pytest.raises(JsonObjectExpectedError):
            fs.read_json(path)


class TestLocalFileSystemCsv:
    def test_blank_cells_read_as_empty_strings(self, tmp_path: Path) -> None:
        fs = LocalFileSystem()
        path = tmp_path / "nested" / "products.csv"
        fs.write_csv(pd.DataFrame({"id": ["p-1", "p-2"], "category": ["FOOD", None]}), path)

        df = fs.read_csv(path)

        assert df["category"].tolist() == ["FOOD", ""]


class TestLocalFileSystemListing:
    def test_lists_files_and_dirs_sorted(self, tmp_path: Path) -> None:
        fs = LocalFileSystem()
        for name in ("b", "a"):
            fs.mkdir(tmp_path / name)
        (tmp_path / "a" / "2026-W02.json").write_text("{}", encoding="utf-8")
        (tmp_path / "a" / "2026-W01.json").write_text("{}", encoding="utf-8")
        (tmp_path / "a" / "notes.txt").write_text("", encoding="utf-8")

        assert [path.name for path in fs.list_dirs(tmp_path)] == ["a", "b"]
        assert [path.name for path in fs.list_files(tmp_path / "a", "*.json")] == [
            "2026-W01.json",
            "2026-W02.json",
        ]

    def test_missing_directory_lists_nothing(self, tmp_path: Path) -> None:
        fs = LocalFileSystem()

        assert fs.list_files(tmp_path / "missing") == []
        assert fs.list_dirs(tmp_path / "missing") == []


class TestLocalFileSystemLock:
    def test_lock_file_exists_only_while_held(self, tmp_path: Path) -> None:
        fs = LocalFileSystem()
        lock_path = tmp_path / "TECH_SAAS" / ".2026-W42.lock"

        with fs.exclusive_lock(lock_path):
            assert lock_path.read_text(encoding="ascii") == f"{os.getpid()}\n"

        assert not lock_path.exists()

    def test_second_holder_times_out(self, tmp_path: Path) -> None:
        lock_path = tmp_path / ".key.lock"
        waiting = LocalFileSystem(lock_timeout_seconds=0.05, lock_poll_seconds=0.01)

        with LocalFileSystem().exclusive_lock(lock_path):
            with pytest.raises(FileLockTimeoutError), waiting.exclusive_lock(lock_path):
                pass

        assert not lock_path.exists()

    def test_lock_is_released_when_the_block_raises(self, tmp_path: Path) -> None:
        fs = LocalFileSystem()
        lock_path = tmp_path / ".key.lock"

        with pytest.raises(RuntimeError), fs.exclusive_lock(lock_path):
            raise RuntimeError("boom")

        assert not lock_path.exists()
