"""Filesystem fakes for tests."""

from __future__ import annotations

import fnmatch
import threading
from collections.abc import Iterator, Mapping
from contextlib import contextmanager
from dataclasses import dataclass, field
from pathlib import Path
from typing_extensions import override

import pandas as pd

from product_ranking_pipeline.infrastructure.io.validation import IncomingDataError, validate_as
from product_ranking_pipeline.protocols import FileSystem
from tests.support.errors import FakeFileNotFoundError, FakeFileTypeError


def _empty_files() -> dict[str, object]:
    return {}


def _no_locks() -> dict[str, threading.Lock]:
    return {}


def _no_paths() -> list[str]:
    return []


@dataclass
class InMemoryFileSystem(FileSystem):
    """In-memory filesystem for testing.

    Set ``fail_writes`` to make every JSON/CSV write raise ``OSError`` without
    touching stored content.
    """

    _files: dict[str, object] = field(default_factory=_empty_files)
    fail_writes: bool = False
    json_writes: int = 0
    locked_paths: list[str] = field(default_factory=_no_paths)
    _locks: dict[str, threading.Lock] = field(default_factory=_no_locks)

    def _check_writable(self, path: Path) -> None:
        if self.fail_writes:
            raise OSError(f"disk full writing {path}")

    @override
    def read_csv(self, path: Path) -> pd.DataFrame:
        key = str(path)
        if key not in self._files:
            raise FakeFileNotFoundError(key)
        data = self._files[key]
        if isinstance(data, pd.DataFrame):
            return data.copy()
        raise FakeFileTypeError("DataFrame", key)

    @override
    def write_csv(self, df: pd.DataFrame, path: Path) -> None:
        self._check_writable(path)
        self._files[str(path)] = df.copy()

    @override
    def read_json(self, path: Path) -> dict[str, object]:
        key = str(path)
        if key not in self._files:
            raise FakeFileNotFoundError(key)
        try:
            return validate_as(dict[str, object], self._files[key])
        except IncomingDataError as exc:
            raise FakeFileTypeError("dict", key) from exc

    @override
    def write_json(self, data: Mapping[str, object], path: Path) -> None:
        self._check_writable(path)
        self._files[str(path)] = dict(data)
        self.json_writes += 1

    @override
    def read_text(self, path: Path) -> str:
        key = str(path)
        if key not in self._files:
            raise FakeFileNotFoundError(key)
        data = self._files[key]
        if isinstance(data, str):
            return data
        raise FakeFileTypeError("str", key)

    def write_text(self, content: str, path: Path) -> None:
        self._files[str(path)] = content

    def put(self, payload: object, path: Path) -> None:
        """Store an arbitrary payload, bypassing validation (for corrupt-data tests)."""
        self._files[str(path)] = payload

    @override
    def exists(self, path: Path) -> bool:
        key = str(path)
        return key in self._files or any(name.startswith(f"{key}/") for name in self._files)

    @override
    def mkdir(self, path: Path, parents: bool = True) -> None:
        _ = (path, parents)

    @override
    def list_files(self, path: Path, pattern: str = "*") -> list[Path]:
        prefix = f"{path}/"
        matches: list[Path] = []
        for key in self._files:
            if not key.startswith(prefix):
                continue
            relative = key[len(prefix) :]
            if "/" not in relative and fnmatch.fnmatch(relative, pattern):
                matches.append(Path(key))
        return sorted(matches)

    @override
    def list_dirs(self, path: Path) -> list[Path]:
        prefix = f"{path}/"
        names = {
            key[len(prefix) :].split("/", 1)[0]
            for key in self._files
            if key.startswith(prefix) and "/" in key[len(prefix) :]
        }
        return sorted(path / name for name in names)

    @override
    @contextmanager
    def exclusive_lock(self, path: Path) -> Iterator[None]:
        lock = self._locks.setdefault(str(path), threading.Lock())
        with lock:
            self.locked_paths.append(str(path))
            yield
