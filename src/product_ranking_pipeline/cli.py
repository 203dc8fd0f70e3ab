"""CLI for the product ranking pipeline.

Commands:
- generate: Rank every category (or one, with --category) for the current week
- current: Show a category's ranking for the current week
- history: List a category's stored weekly rankings, newest first
- product-trend: Show a product's rank in every stored week
- previous-rank: Show a product's rank in last week's snapshot
- rank-change: Compare a product's rank this week with last week
- summary: Overview of the current week across categories
- export: Write one weekly ranking to CSV
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import UTC, datetime
from pathlib import Path
from typing import Annotated, Protocol

import typer
from rich import print as rprint

from . import __version__
from .application.export import export_ranking_csv
from .application.queries import (
    check_product_ranking_change,
    get_current_ranking,
    get_previous_rank,
    get_product_ranking_history,
    get_ranking_history,
    get_rankings_summary,
)
from .application.ranking_run import generate_weekly_rankings, regenerate_category_ranking
from .config import PipelineConfig
from .config_file import load_pipeline_config_file
from .domain.categories import is_category_key
from .domain.models import WeeklyRanking
from .domain.weeks import parse_week_identifier, week_identifier
from .exceptions import (
    ConfigFileNotFoundError,
    ConfigFileParseError,
    ConfigFileValidationError,
    PipelineError,
    WeekIdentifierError,
)
from .infrastructure.io.validation import IncomingDataError, parse_timestamp
from .protocols import (
    FileSystem,
    ProgressReporter,
    SentimentClassifier,
    SignalSource,
    SnapshotStore,
)


class DependenciesBuilder(Protocol):
    """Protocol for constructing CLI dependencies."""

    def __call__(
        self,
        *,
        config: PipelineConfig,
        build_classifier: bool,
    ) -> CliDependencies:
        """Build dependencies for CLI commands."""
        ...


@dataclass(frozen=True)
class CliDependencies:
    """Concrete dependencies required by the CLI."""

    fs: FileSystem
    store: SnapshotStore
    source: SignalSource
    classifier: SentimentClassifier | None
    progress: ProgressReporter | None = None


@dataclass(frozen=True)
class CliContext:
    """Runtime CLI context for a single command invocation."""

    config: PipelineConfig
    deps_builder: DependenciesBuilder

    def build_dependencies(
        self,
        *,
        build_classifier: bool,
        config: PipelineConfig | None = None,
    ) -> CliDependencies:
        """Return dependencies using the configured builder."""
        config_value = config or self.config
        return self.deps_builder(config=config_value, build_classifier=build_classifier)


class CliContextNotInitialisedError(typer.BadParameter):
    """Raised when CLI context is missing."""

    def __init__(self) -> None:
        super().__init__(
            "CLI context is not initialised. Use the product-rankings entry point."
        )


class ClassifierNotConfiguredError(typer.BadParameter):
    """Raised when a command needs a sentiment classifier and none was built."""

    def __init__(self) -> None:
        super().__init__("No sentiment classifier is available for ranking generation.")


def _get_context(ctx: typer.Context) -> CliContext:
    if not isinstance(ctx.obj, CliContext):
        raise CliContextNotInitialisedError()
    return ctx.obj


def _resolve_now(as_of: str | None) -> datetime:
    if as_of is None:
        return datetime.now(UTC)
    try:
        return parse_timestamp(as_of)
    except IncomingDataError as exc:
        raise typer.BadParameter(str(exc), param_hint="--as-of") from exc


def _week_label(ranking: WeeklyRanking) -> str:
    return f"{ranking.category_name} ({ranking.category}) {week_identifier(ranking.week_start)}"


def _print_ranking(ranking: WeeklyRanking) -> None:
    rprint(f"[bold]{_week_label(ranking)}[/bold]")
    rprint(
        f"  Generated {ranking.generated_at.isoformat()} from "
        f"{ranking.total_products_evaluated:,} eligible products"
    )
    for entry in ranking.rankings:
        movement = ""
        if entry.previous_rank is None:
            movement = " [cyan]new[/cyan]"
        elif entry.previous_rank != entry.rank:
            delta = entry.previous_rank - entry.rank
            colour = "green" if delta > 0 else "red"
            movement = f" [{colour}]{delta:+d}[/{colour}]"
        rprint(
            f"  {entry.rank:>2}. {entry.product_name} [dim]({entry.product_id})[/dim] "
            f"score={entry.score:.4f} nps={entry.metrics.nps_score:.1f} "
            f"responses={entry.metrics.total_responses}{movement}"
        )


def _category_callback(value: str | None) -> str | None:
    if value is not None and not is_category_key(value):
        raise typer.BadParameter(f"{value!r} is not a category key such as TECH_SAAS")
    return value


def _version_callback(value: bool) -> None:
    if value:
        rprint(f"product-rankings {__version__}")
        raise typer.Exit()


def create_app(deps_builder: DependenciesBuilder) -> typer.Typer:
    """Create a Typer app wired with the provided dependencies builder."""
    app = typer.Typer(
        add_completion=False,
        help="Weekly product rankings: survey signals → scores → per-category top N",
    )

    @app.callback()
    def main(
        ctx: typer.Context,
        config_path: Annotated[
            Path | None,
            typer.Option(
                "--config",
                "-c",
                help="TOML config file overriding environment values",
            ),
        ] = None,
        version: Annotated[
            bool,
            typer.Option(
                "--version",
                callback=_version_callback,
                is_eager=True,
                help="Show the package version and exit",
            ),
        ] = False,
    ) -> None:
        """Initialise CLI context."""
        _ = version
        config = PipelineConfig.from_env()
        if config_path is not None:
            deps = deps_builder(config=config, build_classifier=False)
            try:
                file_config = load_pipeline_config_file(path=config_path, fs=deps.fs)
            except (
                ConfigFileNotFoundError,
                ConfigFileParseError,
                ConfigFileValidationError,
            ) as exc:
                raise typer.BadParameter(str(exc), param_hint="--config") from exc
            config = config.with_file_overrides(file_config)
        ctx.obj = CliContext(config=config, deps_builder=deps_builder)

    @app.command()
    def generate(
        ctx: typer.Context,
        category: Annotated[
            str | None,
            typer.Option(
                "--category",
                help="Regenerate a single category only",
                callback=_category_callback,
            ),
        ] = None,
        products_path: Annotated[
            str | None,
            typer.Option(
                "--products",
                help="Products CSV (id,name,category)",
            ),
        ] = None,
        responses_path: Annotated[
            str | None,
            typer.Option(
                "--responses",
                help="Survey responses JSON",
            ),
        ] = None,
        top_n: Annotated[
            int | None,
            typer.Option(
                "--top-n",
                "-n",
                min=1,
                help="Entries kept per category (default: 10)",
            ),
        ] = None,
        min_total_responses: Annotated[
            int | None,
            typer.Option(
                "--min-total-responses",
                min=0,
                help="Minimum lifetime responses to be ranked",
            ),
        ] = None,
        min_recent_responses: Annotated[
            int | None,
            typer.Option(
                "--min-recent-responses",
                min=0,
                help="Minimum recent responses to be ranked",
            ),
        ] = None,
        fail_fast: Annotated[
            bool | None,
            typer.Option(
                "--fail-fast/--isolate-failures",
                help="Abort a category when any text fragment cannot be classified",
            ),
        ] = None,
        as_of: Annotated[
            str | None,
            typer.Option(
                "--as-of",
                help="Reference time (ISO-8601); defaults to now",
            ),
        ] = None,
    ) -> None:
        """Generate and store this week's rankings."""
        state = _get_context(ctx)
        config = state.config.with_overrides(
            products_path=products_path,
            responses_path=responses_path,
            top_n=top_n,
            min_total_responses=min_total_responses,
            min_recent_responses=min_recent_responses,
            sentiment_fail_fast=fail_fast,
        )
        now = _resolve_now(as_of)
        deps = state.build_dependencies(build_classifier=True, config=config)
        if deps.classifier is None:
            raise ClassifierNotConfiguredError()

        if category is not None:
            try:
                ranking = regenerate_category_ranking(
                    category,
                    source=deps.source,
                    classifier=deps.classifier,
                    store=deps.store,
                    now=now,
                    options=config.run_options(),
                )
            except (PipelineError, OSError) as exc:
                rprint(f"[red]✗ {category}: {exc}[/red]")
                raise typer.Exit(code=1) from exc
            if ranking is None:
                rprint(f"[yellow]No eligible products in {category}[/yellow]")
                return
            rprint(f"[green]✓ Regenerated:[/green] {_week_label(ranking)}")
            rprint(f"  {len(ranking.rankings)} of {ranking.total_products_evaluated} ranked")
            return

        try:
            result = generate_weekly_rankings(
                source=deps.source,
                classifier=deps.classifier,
                store=deps.store,
                now=now,
                options=config.run_options(),
                progress=deps.progress,
            )
        except (PipelineError, OSError) as exc:
            rprint(f"[red]✗ Weekly run failed: {exc}[/red]")
            raise typer.Exit(code=1) from exc
        for ranking in result.rankings:
            rprint(
                f"[green]✓ {_week_label(ranking)}:[/green] top {len(ranking.rankings)} of "
                f"{ranking.total_products_evaluated}"
            )
        for skipped in result.skipped_categories:
            rprint(f"[yellow]⚠ {skipped}: no eligible products[/yellow]")
        for failure in result.failures:
            rprint(f"[red]✗ {failure.category}: {failure.error}[/red]")
        if not result.success:
            raise typer.Exit(code=1)
        rprint(f"\n[bold green]{len(result.rankings)} category rankings stored[/bold green]")

    @app.command()
    def current(
        ctx: typer.Context,
        category: Annotated[
            str,
            typer.Argument(help="Category key, e.g. TECH_SAAS", callback=_category_callback),
        ],
        as_of: Annotated[
            str | None,
            typer.Option("--as-of", help="Reference time (ISO-8601); defaults to now"),
        ] = None,
    ) -> None:
        """Show the current week's ranking for a category."""
        state = _get_context(ctx)
        deps = state.build_dependencies(build_classifier=False)
        ranking = get_current_ranking(deps.store, category, now=_resolve_now(as_of))
        if ranking is None:
            rprint(f"[yellow]No ranking stored for {category} this week[/yellow]")
            return
        _print_ranking(ranking)

    @app.command()
    def history(
        ctx: typer.Context,
        category: Annotated[
            str,
            typer.Argument(help="Category key, e.g. TECH_SAAS", callback=_category_callback),
        ],
        limit: Annotated[
            int | None,
            typer.Option("--limit", "-l", min=1, help="Most recent weeks to show"),
        ] = None,
    ) -> None:
        """List stored weekly rankings for a category, newest first."""
        state = _get_context(ctx)
        deps = state.build_dependencies(build_classifier=False)
        rankings = get_ranking_history(deps.store, category, limit=limit)
        if not rankings:
            rprint(f"[yellow]No rankings stored for {category}[/yellow]")
            return
        for ranking in rankings:
            leader = ranking.rankings[0].product_name if ranking.rankings else "-"
            rprint(
                f"{week_identifier(ranking.week_start)}  {len(ranking.rankings):>2} ranked  "
                f"leader: {leader}"
            )

    @app.command(name="product-trend")
    def product_trend(
        ctx: typer.Context,
        product_id: Annotated[str, typer.Argument(help="Product id")],
        category: Annotated[str, typer.Argument(help="Category key", callback=_category_callback)],
    ) -> None:
        """Show a product's rank and score in every stored week."""
        state = _get_context(ctx)
        deps = state.build_dependencies(build_classifier=False)
        points = get_product_ranking_history(deps.store, product_id, category)
        if not points:
            rprint(f"[yellow]No rankings stored for {category}[/yellow]")
            return
        for point in points:
            rank = "unranked" if point.rank is None else f"#{point.rank}"
            rprint(f"{point.week_id}  {rank:>9}  score={point.score:.4f}")

    @app.command(name="previous-rank")
    def previous_rank(
        ctx: typer.Context,
        product_id: Annotated[str, typer.Argument(help="Product id")],
        category: Annotated[str, typer.Argument(help="Category key", callback=_category_callback)],
        as_of: Annotated[
            str | None,
            typer.Option("--as-of", help="Reference time (ISO-8601); defaults to now"),
        ] = None,
    ) -> None:
        """Show a product's rank in last week's snapshot."""
        state = _get_context(ctx)
        deps = state.build_dependencies(build_classifier=False)
        rank = get_previous_rank(deps.store, product_id, category, now=_resolve_now(as_of))
        if rank is None:
            rprint(f"{product_id} was not ranked in {category} last week")
            return
        rprint(f"{product_id} was #{rank} in {category} last week")

    @app.command(name="rank-change")
    def rank_change(
        ctx: typer.Context,
        product_id: Annotated[str, typer.Argument(help="Product id")],
        category: Annotated[str, typer.Argument(help="Category key", callback=_category_callback)],
        as_of: Annotated[
            str | None,
            typer.Option("--as-of", help="Reference time (ISO-8601); defaults to now"),
        ] = None,
    ) -> None:
        """Compare a product's rank this week with last week."""
        state = _get_context(ctx)
        deps = state.build_dependencies(build_classifier=False)
        change = check_product_ranking_change(
            deps.store, product_id, category, now=_resolve_now(as_of)
        )
        if not change.is_ranked:
            rprint(f"{product_id} is not ranked in {category} this week")
            return
        rprint(f"{product_id} is #{change.current_rank} in {category}")
        if change.is_new_entry:
            rprint("  [cyan]New entry this week[/cyan]")
        elif change.rank_change is not None:
            rprint(f"  Change since last week: {change.rank_change:+d}")

    @app.command()
    def summary(
        ctx: typer.Context,
        as_of: Annotated[
            str | None,
            typer.Option("--as-of", help="Reference time (ISO-8601); defaults to now"),
        ] = None,
    ) -> None:
        """Summarise the current week's rankings across categories."""
        state = _get_context(ctx)
        deps = state.build_dependencies(build_classifier=False)
        result = get_rankings_summary(deps.store, now=_resolve_now(as_of))
        rprint(
            f"Categories with rankings: {result.categories_with_rankings} "
            f"of {result.total_categories}"
        )
        rprint(f"Ranked products: {result.total_ranked_products}")
        last = result.last_generated.isoformat() if result.last_generated else "never"
        rprint(f"Last generated: {last}")

    @app.command()
    def export(
        ctx: typer.Context,
        category: Annotated[str, typer.Argument(help="Category key", callback=_category_callback)],
        out_path: Annotated[
            Path,
            typer.Option("--output", "-o", help="CSV file to write"),
        ],
        week: Annotated[
            str | None,
            typer.Option("--week", "-w", help="Week identifier, e.g. 2026-W42 (default: current)"),
        ] = None,
    ) -> None:
        """Export one weekly ranking to CSV."""
        state = _get_context(ctx)
        deps = state.build_dependencies(build_classifier=False)
        try:
            now = parse_week_identifier(week) if week else datetime.now(UTC)
        except WeekIdentifierError as exc:
            raise typer.BadParameter(str(exc), param_hint="--week") from exc
        ranking = get_current_ranking(deps.store, category, now=now)
        if ranking is None:
            rprint(f"[red]No ranking stored for {category} in {week_identifier(now)}[/red]")
            raise typer.Exit(code=1)
        path = export_ranking_csv(ranking, out_path, deps.fs)
        rprint(f"[green]✓ Exported:[/green] {path}")

    _ = (
        main,
        generate,
        current,
        history,
        product_trend,
        previous_rank,
        rank_change,
        summary,
        export,
    )

    return app
