"""File-backed store for weekly ranking snapshots.

One JSON document per (category, week) lives at ``<root>/<category>/<week_id>.json``.
Each category directory doubles as that category's time-ordered index: week
identifiers sort lexically in chronological order, so history never needs to
open another category's files.

Usage example:
    from pathlib import Path

    from product_ranking_pipeline.infrastructure.io.filesystem import LocalFileSystem
    from product_ranking_pipeline.infrastructure.snapshot_store import FileSnapshotStore

    store = FileSnapshotStore(root=Path("data/rankings"), fs=LocalFileSystem())
    current = store.get_current("TECH_SAAS")
"""

from __future__ import annotations

import threading
from collections.abc import Callable
from datetime import UTC, datetime
from pathlib import Path
from typing_extensions import override

from ..domain.categories import is_category_key
from ..domain.models import ProductTrendPoint, WeeklyRanking
from ..domain.weeks import is_week_identifier, previous_week_identifier, week_identifier
from ..exceptions import (
    FileLockTimeoutError,
    InvalidCategoryError,
    JsonObjectExpectedError,
    SnapshotDecodeError,
    SnapshotWriteError,
    StaleSnapshotError,
)
from ..observability import get_logger
from ..protocols import FileSystem, SnapshotStore
from .io.documents import ranking_to_document
from .io.validation import IncomingDataError, parse_weekly_ranking

logger = get_logger("product_ranking_pipeline.infrastructure.snapshot_store")

_SUFFIX = ".json"


def _utc_now() -> datetime:
    return datetime.now(UTC)


class FileSnapshotStore(SnapshotStore):
    """Snapshot store over an injected ``FileSystem``.

    Saves for the same key are serialised by a per-key lock in this process and
    by a lock file beside the snapshot across processes. A save whose
    ``generated_at`` is older than the stored snapshot is rejected. Category keys
    must match ``[A-Z0-9_]+`` so they cannot leave the store root.
    """

    def __init__(
        self,
        *,
        root: Path,
        fs: FileSystem,
        clock: Callable[[], datetime] | None = None,
    ) -> None:
        self.root = Path(root)
        self.fs = fs
        self._clock = clock or _utc_now
        self._locks: dict[tuple[str, str], threading.Lock] = {}
        self._locks_guard = threading.Lock()

    def _category_dir(self, category: str) -> Path:
        if not is_category_key(category):
            raise InvalidCategoryError(category)
        return self.root / category

    def path_for(self, category: str, week_id: str) -> Path:
        return self._category_dir(category) / f"{week_id}{_SUFFIX}"

    def lock_path_for(self, category: str, week_id: str) -> Path:
        """Lock file guarding the compare-and-write of one key, across processes."""
        return self.path_for(category, week_id).with_name(f".{week_id}.lock")

    def _lock_for(self, category: str, week_id: str) -> threading.Lock:
        with self._locks_guard:
            return self._locks.setdefault((category, week_id), threading.Lock())

    def _read(self, path: Path) -> WeeklyRanking | None:
        if not self.fs.exists(path):
            return None
        try:
            return parse_weekly_ranking(self.fs.read_json(path))
        except (IncomingDataError, JsonObjectExpectedError, ValueError) as exc:
            raise SnapshotDecodeError(str(path)) from exc

    @override
    def save(self, ranking: WeeklyRanking) -> str:
        week_id = week_identifier(ranking.week_start)
        path = self.path_for(ranking.category, week_id)
        with self._lock_for(ranking.category, week_id):
            try:
                with self.fs.exclusive_lock(self.lock_path_for(ranking.category, week_id)):
                    self._write_if_newer(ranking, week_id, path)
            except FileLockTimeoutError as exc:
                logger.error("Snapshot lock timed out for %s/%s", ranking.category, week_id)
                raise SnapshotWriteError(ranking.category, week_id, str(exc)) from exc
        logger.info(
            "Saved %s/%s with %d entries", ranking.category, week_id, len(ranking.rankings)
        )
        return week_id

    def _write_if_newer(self, ranking: WeeklyRanking, week_id: str, path: Path) -> None:
        try:
            stored = self._read(path)
        except SnapshotDecodeError:
            logger.warning("Replacing unreadable snapshot %s", path)
            stored = None
        if stored is not None and stored.generated_at > ranking.generated_at:
            raise StaleSnapshotError(
                ranking.category,
                week_id,
                stored.generated_at.isoformat(),
                ranking.generated_at.isoformat(),
            )
        try:
            self.fs.write_json(ranking_to_document(ranking), path)
        except OSError as exc:
            logger.error("Snapshot write failed for %s/%s: %s", ranking.category, week_id, exc)
            raise SnapshotWriteError(ranking.category, week_id, str(exc)) from exc

    @override
    def get(self, week_id: str, category: str) -> WeeklyRanking | None:
        return self._read(self.path_for(category, week_id))

    @override
    def get_current(self, category: str, now: datetime | None = None) -> WeeklyRanking | None:
        return self.get(week_identifier(now or self._clock()), category)

    def week_ids(self, category: str) -> list[str]:
        """Stored week identifiers for ``category``, newest first."""
        files = self.fs.list_files(self._category_dir(category), f"*{_SUFFIX}")
        names = [path.stem for path in files]
        return sorted((name for name in names if is_week_identifier(name)), reverse=True)

    @override
    def get_history(self, category: str, limit: int | None = None) -> list[WeeklyRanking]:
        week_ids = self.week_ids(category)
        if limit is not None:
            week_ids = week_ids[: max(limit, 0)]
        history: list[WeeklyRanking] = []
        for week_id in week_ids:
            ranking = self.get(week_id, category)
            if ranking is not None:
                history.append(ranking)
        return history

    @override
    def get_product_trend(self, product_id: str, category: str) -> list[ProductTrendPoint]:
        points: list[ProductTrendPoint] = []
        for ranking in self.get_history(category):
            entry = ranking.entry_for(product_id)
            points.append(
                ProductTrendPoint(
                    week_start=ranking.week_start,
                    week_id=week_identifier(ranking.week_start),
                    rank=entry.rank if entry else None,
                    score=entry.score if entry else 0.0,
                )
            )
        return points

    @override
    def get_previous_rank(
        self, product_id: str, category: str, now: datetime | None = None
    ) -> int | None:
        previous = self.get(previous_week_identifier(now or self._clock()), category)
        if previous is None:
            return None
        entry = previous.entry_for(product_id)
        return entry.rank if entry else None

    @override
    def list_categories(self, week_id: str) -> list[str]:
        return [
            directory.name
            for directory in self.fs.list_dirs(self.root)
            if is_category_key(directory.name)
            and self.fs.exists(self.path_for(directory.name, week_id))
        ]
