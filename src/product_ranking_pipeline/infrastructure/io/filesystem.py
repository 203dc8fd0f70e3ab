"""Filesystem implementations for infrastructure.

Usage example:
    from pathlib import Path

    import pandas as pd

    from product_ranking_pipeline.infrastructure.io.filesystem import LocalFileSystem

    fs = LocalFileSystem()
    fs.write_csv(pd.DataFrame({"col": ["a"]}), Path("data/out.csv"))
    fs.write_json({"value": 1}, Path("data/rankings/TECH_SAAS/2026-W42.json"))
"""

from __future__ import annotations

import json
import os
import time
from collections.abc import Callable, Iterator, Mapping
from contextlib import contextmanager
from pathlib import Path
from typing_extensions import override
from uuid import uuid4

import pandas as pd

from ...exceptions import FileLockTimeoutError, JsonObjectExpectedError
from ...observability import get_logger
from ...protocols import FileSystem
from .validation import IncomingDataError, validate_json_as

logger = get_logger("product_ranking_pipeline.infrastructure.filesystem")

LOCK_TIMEOUT_SECONDS = 30.0
LOCK_POLL_SECONDS = 0.05
STALE_LOCK_SECONDS = 600.0


def _default_token() -> str:
    return uuid4().hex


class LocalFileSystem(FileSystem):
    """Local filesystem implementation.

    JSON writes go to a hidden sibling temp file first and are moved into place
    with ``os.replace``, so a crash mid-write leaves the previous file intact.

    Lock files are created with ``O_CREAT | O_EXCL`` so only one process holds a
    given lock. A lock file older than ``stale_lock_seconds`` is assumed to belong
    to a crashed process and is removed.
    """

    def __init__(
        self,
        *,
        token_factory: Callable[[], str] | None = None,
        lock_timeout_seconds: float = LOCK_TIMEOUT_SECONDS,
        lock_poll_seconds: float = LOCK_POLL_SECONDS,
        stale_lock_seconds: float = STALE_LOCK_SECONDS,
    ) -> None:
        self._token_factory = token_factory or _default_token
        self._lock_timeout_seconds = lock_timeout_seconds
        self._lock_poll_seconds = lock_poll_seconds
        self._stale_lock_seconds = stale_lock_seconds

    @override
    def read_csv(self, path: Path) -> pd.DataFrame:
        return pd.read_csv(path, dtype=str).fillna("")

    @override
    def write_csv(self, df: pd.DataFrame, path: Path) -> None:
        path.parent.mkdir(parents=True, exist_ok=True)
        df.to_csv(path, index=False)

    @override
    def read_json(self, path: Path) -> dict[str, object]:
        payload = path.read_text(encoding="utf-8")
        try:
            return validate_json_as(dict[str, object], payload)
        except IncomingDataError as exc:
            raise JsonObjectExpectedError(str(path)) from exc

    @override
    def write_json(self, data: Mapping[str, object], path: Path) -> None:
        path.parent.mkdir(parents=True, exist_ok=True)
        temp_path = path.with_name(f".tmp-{self._token_factory()}-{path.name}")
        content = json.dumps(dict(data), ensure_ascii=False, indent=2)
        try:
            with temp_path.open("w", encoding="utf-8") as handle:
                handle.write(content)
                handle.flush()
                os.fsync(handle.fileno())
            os.replace(temp_path, path)
        except BaseException:
            temp_path.unlink(missing_ok=True)
            raise

    @override
    def read_text(self, path: Path) -> str:
        return path.read_text(encoding="utf-8")

    @override
    def exists(self, path: Path) -> bool:
        return path.exists()

    @override
    def mkdir(self, path: Path, parents: bool = True) -> None:
        path.mkdir(parents=parents, exist_ok=True)

    @override
    def list_files(self, path: Path, pattern: str = "*") -> list[Path]:
        if not path.is_dir():
            return []
        return sorted(item for item in path.glob(pattern) if item.is_file())

    @override
    def list_dirs(self, path: Path) -> list[Path]:
        if not path.is_dir():
            return []
        return sorted(item for item in path.iterdir() if item.is_dir())

    @override
    @contextmanager
    def exclusive_lock(self, path: Path) -> Iterator[None]:
        path.parent.mkdir(parents=True, exist_ok=True)
        fd = self._acquire_lock_file(path)
        try:
            with os.fdopen(fd, "w", encoding="ascii") as handle:
                handle.write(f"{os.getpid()}\n")
            yield
        finally:
            path.unlink(missing_ok=True)

    def _acquire_lock_file(self, path: Path) -> int:
        deadline = time.monotonic() + self._lock_timeout_seconds
        while True:
            try:
                return os.open(path, os.O_CREAT | os.O_EXCL | os.O_WRONLY)
            except FileExistsError:
                if self._remove_stale_lock(path):
                    continue
                if time.monotonic() >= deadline:
                    raise FileLockTimeoutError(str(path), self._lock_timeout_seconds) from None
                time.sleep(self._lock_poll_seconds)

    def _remove_stale_lock(self, path: Path) -> bool:
        try:
            age = time.time() - path.stat().st_mtime
        except FileNotFoundError:
            return True
        if age < self._stale_lock_seconds:
            return False
        logger.warning("Removing stale lock %s (%.0fs old)", path, age)
        path.unlink(missing_ok=True)
        return True
