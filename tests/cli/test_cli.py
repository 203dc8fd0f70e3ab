"""Tests for CLI wiring and overrides."""

import re
from collections.abc import Sequence
from datetime import datetime, timedelta
from pathlib import Path
from typing_extensions import override

import pytest
import typer
from typer.testing import CliRunner

from product_ranking_pipeline import cli
from product_ranking_pipeline.cli import CliDependencies
from product_ranking_pipeline.config import PipelineConfig
from product_ranking_pipeline.domain.models import Product
from tests.fakes import (
    FakeProgressReporter,
    FakeSentimentClassifier,
    InMemoryFileSystem,
    InMemorySnapshotStore,
    StaticSignalSource,
)
from tests.support.builders import FIXED_NOW, make_product, make_ranking, make_response

runner = CliRunner()
_ANSI_ESCAPE_RE = re.compile(r"\x1b\[[0-9;]*m")
AS_OF = FIXED_NOW.isoformat()


def _strip_ansi(text: str) -> str:
    return _ANSI_ESCAPE_RE.sub("", text)


@pytest.fixture(autouse=True)
def default_config(monkeypatch: pytest.MonkeyPatch) -> None:
    def fake_from_env(cls: type[PipelineConfig], dotenv_path: str | None = None) -> PipelineConfig:
        _ = (cls, dotenv_path)
        return PipelineConfig()

    monkeypatch.setattr(cli.PipelineConfig, "from_env", classmethod(fake_from_env))


class RecordingBuilder:
    """Dependencies builder returning shared fakes and recording each config it sees."""

    def __init__(self, deps: CliDependencies) -> None:
        self.deps = deps
        self.configs: list[PipelineConfig] = []

    def __call__(self, *, config: PipelineConfig, build_classifier: bool) -> CliDependencies:
        self.configs.append(config)
        if build_classifier:
            return self.deps
        return CliDependencies(
            fs=self.deps.fs,
            store=self.deps.store,
            source=self.deps.source,
            classifier=None,
            progress=self.deps.progress,
        )


def _source() -> StaticSignalSource:
    return StaticSignalSource(
        products=[
            make_product("p-1", category="TECH_SAAS"),
            make_product("p-2", category="TECH_SAAS"),
            make_product("p-3", category="FINTECH"),
        ],
        responses=[
            make_response("p-1", answers={"nps": 10}),
            make_response("p-2", answers={"nps": 3}),
            make_response("p-3", answers={"nps": 9}),
        ],
    )


class UnreadableSignalSource(StaticSignalSource):
    """Signal source whose products file cannot be opened."""

    @override
    def load_products(self) -> Sequence[Product]:
        raise OSError("permission denied: data/products.csv")


def _builder(
    store: InMemorySnapshotStore | None = None,
    fs: InMemoryFileSystem | None = None,
    source: StaticSignalSource | None = None,
) -> RecordingBuilder:
    return RecordingBuilder(
        CliDependencies(
            fs=fs or InMemoryFileSystem(),
            store=store or InMemorySnapshotStore(),
            source=source or _source(),
            classifier=FakeSentimentClassifier(),
            progress=FakeProgressReporter(),
        )
    )


def _app(builder: RecordingBuilder) -> typer.Typer:
    return cli.create_app(builder)


def test_cli_version_option_prints_package_version(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setattr(cli, "__version__", "9.9.9", raising=False)

    result = runner.invoke(_app(_builder()), ["--version"])

    assert result.exit_code == 0
    assert "9.9.9" in _strip_ansi(result.output)


@pytest.mark.parametrize(
    "args",
    [
        ["generate", "--category", "..", "--as-of", AS_OF],
        ["current", ".."],
        ["history", "Home/Garden"],
        ["previous-rank", "p-1", "tech_saas"],
        ["export", "..", "--output", "out.csv"],
    ],
)
def test_category_that_is_not_a_key_is_a_usage_error(args: list[str]) -> None:
    store = InMemorySnapshotStore()

    result = runner.invoke(_app(_builder(store)), args)

    assert result.exit_code == 2
    assert "not a category key" in _strip_ansi(result.output)
    assert store.snapshots == {}


class TestGenerate:
    def test_generates_all_categories(self) -> None:
        store = InMemorySnapshotStore()
        builder = _builder(store)

        result = runner.invoke(_app(builder), ["generate", "--as-of", AS_OF])

        assert result.exit_code == 0, result.output
        assert "2 category rankings stored" in _strip_ansi(result.output)
        assert sorted(store.snapshots) == [("FINTECH", "2026-W42"), ("TECH_SAAS", "2026-W42")]
        progress = builder.deps.progress
        assert isinstance(progress, FakeProgressReporter)
        assert progress.finished == 1

    def test_failed_category_exits_non_zero(self) -> None:
        store = InMemorySnapshotStore(failing_categories={"FINTECH"})

        result = runner.invoke(_app(_builder(store)), ["generate", "--as-of", AS_OF])

        assert result.exit_code == 1
        assert "FINTECH" in _strip_ansi(result.output)
        assert ("TECH_SAAS", "2026-W42") in store.snapshots

    def test_single_category(self) -> None:
        store = InMemorySnapshotStore()

        result = runner.invoke(
            _app(_builder(store)), ["generate", "--category", "FINTECH", "--as-of", AS_OF]
        )

        assert result.exit_code == 0, result.output
        assert "Regenerated" in _strip_ansi(result.output)
        assert list(store.snapshots) == [("FINTECH", "2026-W42")]

    def test_single_category_failure_exits_non_zero(self) -> None:
        store = InMemorySnapshotStore(failing_categories={"FINTECH"})

        result = runner.invoke(
            _app(_builder(store)), ["generate", "--category", "FINTECH", "--as-of", AS_OF]
        )

        assert result.exit_code == 1

    @pytest.mark.parametrize(
        "args",
        [
            ["generate", "--as-of", AS_OF],
            ["generate", "--category", "FINTECH", "--as-of", AS_OF],
        ],
    )
    def test_unreadable_input_exits_non_zero(self, args: list[str]) -> None:
        builder = _builder(source=UnreadableSignalSource())

        result = runner.invoke(_app(builder), args)

        assert result.exit_code == 1
        assert not isinstance(result.exception, OSError)
        assert "permission denied" in _strip_ansi(result.output)

    def test_options_override_config(self) -> None:
        builder = _builder()

        result = runner.invoke(
            _app(builder),
            [
                "generate",
                "--top-n",
                "1",
                "--min-total-responses",
                "2",
                "--products",
                "in/products.csv",
                "--fail-fast",
                "--as-of",
                AS_OF,
            ],
        )

        assert result.exit_code == 0, result.output
        config = builder.configs[-1]
        assert config.top_n == 1
        assert config.min_total_responses == 2
        assert config.products_path == "in/products.csv"
        assert config.sentiment_fail_fast is True

    def test_invalid_as_of(self) -> None:
        result = runner.invoke(_app(_builder()), ["generate", "--as-of", "last tuesday"])

        assert result.exit_code == 2
        assert "--as-of" in _strip_ansi(result.output)

    def test_requires_classifier(self) -> None:
        builder = _builder()
        builder.deps = CliDependencies(
            fs=InMemoryFileSystem(),
            store=InMemorySnapshotStore(),
            source=_source(),
            classifier=None,
        )

        result = runner.invoke(_app(builder), ["generate"])

        assert result.exit_code == 2
        assert "classifier" in _strip_ansi(result.output)


def _populated_store(now: datetime) -> InMemorySnapshotStore:
    store = InMemorySnapshotStore()
    store.save(make_ranking(at=now - timedelta(days=7), product_ids=("p-2", "p-1")))
    store.save(make_ranking(at=now, product_ids=("p-1", "p-3")))
    return store


class TestQueries:
    def test_current(self, now: datetime) -> None:
        result = runner.invoke(
            _app(_builder(_populated_store(now))), ["current", "TECH_SAAS", "--as-of", AS_OF]
        )

        output = _strip_ansi(result.output)
        assert result.exit_code == 0, output
        assert "2026-W42" in output
        assert "Product p-1" in output

    def test_current_missing(self) -> None:
        result = runner.invoke(_app(_builder()), ["current", "FOOD", "--as-of", AS_OF])

        assert result.exit_code == 0
        assert "No ranking stored for FOOD" in _strip_ansi(result.output)

    def test_history(self, now: datetime) -> None:
        result = runner.invoke(
            _app(_builder(_populated_store(now))), ["history", "TECH_SAAS", "--limit", "5"]
        )

        lines = [line for line in _strip_ansi(result.output).splitlines() if line.strip()]
        assert result.exit_code == 0
        assert lines[0].startswith("2026-W42")
        assert lines[1].startswith("2026-W41")

    def test_product_trend(self, now: datetime) -> None:
        result = runner.invoke(
            _app(_builder(_populated_store(now))), ["product-trend", "p-2", "TECH_SAAS"]
        )

        output = _strip_ansi(result.output)
        assert "unranked" in output
        assert "#1" in output

    def test_previous_rank(self, now: datetime) -> None:
        result = runner.invoke(
            _app(_builder(_populated_store(now))),
            ["previous-rank", "p-1", "TECH_SAAS", "--as-of", AS_OF],
        )

        assert "p-1 was #2 in TECH_SAAS last week" in _strip_ansi(result.output)

    def test_rank_change(self, now: datetime) -> None:
        result = runner.invoke(
            _app(_builder(_populated_store(now))),
            ["rank-change", "p-1", "TECH_SAAS", "--as-of", AS_OF],
        )

        output = _strip_ansi(result.output)
        assert "p-1 is #1 in TECH_SAAS" in output
        assert "+1" in output

    def test_rank_change_new_entry(self, now: datetime) -> None:
        result = runner.invoke(
            _app(_builder(_populated_store(now))),
            ["rank-change", "p-3", "TECH_SAAS", "--as-of", AS_OF],
        )

        assert "New entry" in _strip_ansi(result.output)

    def test_summary(self, now: datetime) -> None:
        result = runner.invoke(
            _app(_builder(_populated_store(now))), ["summary", "--as-of", AS_OF]
        )

        output = _strip_ansi(result.output)
        assert "Categories with rankings: 1 of 12" in output
        assert "Ranked products: 2" in output


class TestExport:
    def test_exports_requested_week(self, now: datetime) -> None:
        fs = InMemoryFileSystem()
        builder = _builder(_populated_store(now), fs)

        result = runner.invoke(
            _app(builder), ["export", "TECH_SAAS", "--week", "2026-W41", "-o", "out/w41.csv"]
        )

        assert result.exit_code == 0, result.output
        written = fs.read_csv(Path("out/w41.csv"))
        assert written["product_id"].tolist() == ["p-2", "p-1"]

    def test_missing_week_exits_non_zero(self, now: datetime) -> None:
        result = runner.invoke(
            _app(_builder(_populated_store(now))),
            ["export", "TECH_SAAS", "--week", "2026-W30", "-o", "out.csv"],
        )

        assert result.exit_code == 1
        assert "2026-W30" in _strip_ansi(result.output)

    def test_invalid_week(self) -> None:
        result = runner.invoke(
            _app(_builder()), ["export", "TECH_SAAS", "--week", "week 41", "-o", "out.csv"]
        )

        assert result.exit_code == 2


class TestConfigFile:
    def test_config_file_overrides_env(self) -> None:
        fs = InMemoryFileSystem()
        fs.write_text("schema_version = 1\n[pipeline]\ntop_n = 4\n", Path("rankings.toml"))
        builder = _builder(fs=fs)

        result = runner.invoke(
            _app(builder), ["--config", "rankings.toml", "summary", "--as-of", AS_OF]
        )

        assert result.exit_code == 0, result.output
        assert builder.configs[-1].top_n == 4

    def test_missing_config_file(self) -> None:
        result = runner.invoke(_app(_builder()), ["--config", "missing.toml", "summary"])

        assert result.exit_code == 2
        assert "--config" in _strip_ansi(result.output)
