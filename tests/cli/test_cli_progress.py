"""Tests for the rich progress reporter."""

import io

from rich.console import Console

from product_ranking_pipeline.cli_progress import CliProgressReporter


def test_progress_lifecycle_can_restart() -> None:
    reporter = CliProgressReporter(console=Console(file=io.StringIO(), force_terminal=False))

    reporter.start("Ranking categories", 2)
    reporter.advance(1)
    reporter.start("Ranking categories", 1)
    reporter.advance(1)
    reporter.finish()
    reporter.finish()
    reporter.advance(1)
