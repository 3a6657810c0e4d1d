"""Tests for CLI commands.

Commands are exercised through CliRunner with their async workers mocked,
so no database or provider is touched.
"""

from datetime import datetime, timezone
from unittest.mock import AsyncMock, patch

import pytest
from typer.testing import CliRunner

from prompt_commons.cli.main import app as cli_app
from prompt_commons.providers import ProviderConfigurationError
from prompt_commons.schemas.experiment import (
    ExperimentSearchItem,
    ExperimentSearchPage,
    Pagination,
)
from prompt_commons.services.evaluation import DEFAULT_EVALUATION_CASES, CaseOutcome
from prompt_commons.services.index_service import BulkReindexReport
from prompt_commons.sync import ConsistencyReport, SearchHealth
from prompt_commons.sync.sync_service import SampleCheck
from prompt_commons.schemas.search import SearchResult

runner = CliRunner()


@pytest.fixture(autouse=True)
def isolated_home(config_home):
    """Keep CLI log files inside the test's home directory."""
    return config_home


def search_page(**kwargs) -> ExperimentSearchPage:
    values = dict(
        items=[
            ExperimentSearchItem(
                id=1,
                title="Fix memory leak in loop",
                ai_model="GPT-4",
                tags=["debugging"],
                reproduction_rate=90,
                similarity_score=1.0,
                created_at=datetime(2024, 1, 1, tzinfo=timezone.utc),
            )
        ],
        pagination=Pagination(current_page=1, total_pages=1, total_results=1),
        mode="keyword",
    )
    values.update(kwargs)
    return ExperimentSearchPage(**values)


# --- search ---


@patch("prompt_commons.cli.commands.search.run_search", new_callable=AsyncMock)
def test_search_renders_table(mock_run_search):
    mock_run_search.return_value = search_page()

    result = runner.invoke(cli_app, ["search", "memory leak", "--model", "GPT-4"])

    assert result.exit_code == 0, f"CLI failed: {result.output}"
    assert "Fix memory leak in loop" in result.output
    assert "90%" in result.output
    assert "1.00" in result.output
    query = mock_run_search.call_args.args[0]
    assert query.query == "memory leak"
    assert query.model == "GPT-4"
    assert query.page == 1


@patch("prompt_commons.cli.commands.search.run_search", new_callable=AsyncMock)
def test_search_passes_filters(mock_run_search):
    mock_run_search.return_value = search_page()

    result = runner.invoke(
        cli_app,
        ["search", "--tag", "security", "--min-rate", "50", "--page", "2", "--limit", "5"],
    )

    assert result.exit_code == 0, f"CLI failed: {result.output}"
    query = mock_run_search.call_args.args[0]
    assert query.tag == "security"
    assert query.min_rate == 50
    assert query.page == 2
    assert query.limit == 5


@patch("prompt_commons.cli.commands.search.run_search", new_callable=AsyncMock)
def test_search_without_results(mock_run_search):
    mock_run_search.return_value = search_page(
        items=[],
        pagination=Pagination(current_page=1, total_pages=0, total_results=0),
        message="No experiments matched your search.",
    )

    result = runner.invoke(cli_app, ["search", "kubernetes"])

    assert result.exit_code == 0
    assert "No experiments matched your search." in result.output


@patch("prompt_commons.cli.commands.search.run_search", new_callable=AsyncMock)
def test_search_unavailable_exits_nonzero(mock_run_search):
    mock_run_search.return_value = search_page(
        items=[],
        pagination=Pagination(current_page=1, total_pages=0, total_results=0),
        search_available=False,
        message="Search is temporarily unavailable.",
    )

    result = runner.invoke(cli_app, ["search", "memory leak"])

    assert result.exit_code == 1
    assert "temporarily unavailable" in result.output


@patch("prompt_commons.cli.commands.search.run_search", new_callable=AsyncMock)
def test_search_reports_missing_api_key(mock_run_search):
    mock_run_search.side_effect = ProviderConfigurationError("no Gemini API key")

    result = runner.invoke(cli_app, ["search", "memory leak"])

    assert result.exit_code == 1
    assert "no Gemini API key" in result.output


def test_search_rejects_out_of_range_rate():
    result = runner.invoke(cli_app, ["search", "leak", "--min-rate", "120"])

    assert result.exit_code != 0


# --- reindex / reset-index ---


@patch("prompt_commons.cli.commands.index.run_reindex", new_callable=AsyncMock)
def test_reindex_success(mock_run_reindex):
    mock_run_reindex.return_value = BulkReindexReport(
        total_count=120, synced_count=120, batch_sizes=[50, 50, 20]
    )

    result = runner.invoke(cli_app, ["reindex", "--reset"])

    assert result.exit_code == 0, f"CLI failed: {result.output}"
    assert "total=120 synced=120 errors=0" in result.output
    mock_run_reindex.assert_called_once_with(True)


@patch("prompt_commons.cli.commands.index.run_reindex", new_callable=AsyncMock)
def test_reindex_with_errors_exits_nonzero(mock_run_reindex):
    mock_run_reindex.return_value = BulkReindexReport(
        total_count=3, synced_count=2, error_count=1, batch_sizes=[3], failed_ids=["2"]
    )

    result = runner.invoke(cli_app, ["reindex"])

    assert result.exit_code == 1
    assert "Failed experiments: 2" in result.output
    mock_run_reindex.assert_called_once_with(False)


@patch("prompt_commons.cli.commands.index.run_reindex", new_callable=AsyncMock)
def test_reindex_store_failure(mock_run_reindex):
    mock_run_reindex.side_effect = RuntimeError("disk I/O error")

    result = runner.invoke(cli_app, ["reindex"])

    assert result.exit_code == 1
    assert "disk I/O error" in result.output


@patch("prompt_commons.cli.commands.index.run_reset_index", new_callable=AsyncMock)
def test_reset_index_with_yes(mock_reset):
    result = runner.invoke(cli_app, ["reset-index", "--yes"])

    assert result.exit_code == 0, f"CLI failed: {result.output}"
    assert "Search index reset" in result.output
    mock_reset.assert_called_once()


@patch("prompt_commons.cli.commands.index.run_reset_index", new_callable=AsyncMock)
def test_reset_index_declined(mock_reset):
    result = runner.invoke(cli_app, ["reset-index"], input="n\n")

    assert result.exit_code == 1
    mock_reset.assert_not_called()


# --- verify / health ---


@patch("prompt_commons.cli.commands.verify.run_verify", new_callable=AsyncMock)
def test_verify_passes(mock_run_verify):
    mock_run_verify.return_value = ConsistencyReport(
        source_count=2, index_count=2, samples=[SampleCheck(id="1"), SampleCheck(id="2")]
    )

    result = runner.invoke(cli_app, ["verify", "--sample-size", "2"])

    assert result.exit_code == 0, f"CLI failed: {result.output}"
    assert "Search index is consistent" in result.output
    mock_run_verify.assert_called_once_with(2)


@patch("prompt_commons.cli.commands.verify.run_verify", new_callable=AsyncMock)
def test_verify_fails_on_mismatch(mock_run_verify):
    mock_run_verify.return_value = ConsistencyReport(
        source_count=3,
        index_count=2,
        samples=[SampleCheck(id="3", errors=["missing from search index"])],
    )

    result = runner.invoke(cli_app, ["verify"])

    assert result.exit_code == 1
    assert "MISMATCH" in result.output
    assert "inconsistent" in result.output


@patch("prompt_commons.cli.commands.verify.run_health", new_callable=AsyncMock)
def test_health_ok(mock_run_health):
    mock_run_health.return_value = SearchHealth(
        connected=True, index_name="experiments", document_count=12
    )

    result = runner.invoke(cli_app, ["health"])

    assert result.exit_code == 0
    assert "12 documents" in result.output
    assert "semantic search off" in result.output


@patch("prompt_commons.cli.commands.verify.run_health", new_callable=AsyncMock)
def test_health_unreachable(mock_run_health):
    mock_run_health.return_value = SearchHealth(
        connected=False, index_name="experiments", error="database is locked"
    )

    result = runner.invoke(cli_app, ["health"])

    assert result.exit_code == 1
    assert "database is locked" in result.output


# --- evaluate ---


def outcomes(passing: int) -> list[CaseOutcome]:
    result = SearchResult(id="1", title="Fix memory leak", tags=["debugging"], score=1.0)
    built = []
    for index, case in enumerate(DEFAULT_EVALUATION_CASES):
        if index < passing:
            built.append(CaseOutcome(case=case, results=[result], relevant_ids=["1"]))
        else:
            built.append(CaseOutcome(case=case, error="no results"))
    return built


@patch("prompt_commons.cli.commands.evaluate.run_evaluate", new_callable=AsyncMock)
def test_evaluate_all_pass(mock_run_evaluate):
    mock_run_evaluate.return_value = outcomes(passing=5)

    result = runner.invoke(cli_app, ["evaluate"])

    assert result.exit_code == 0, f"CLI failed: {result.output}"
    assert "Summary: 5 passed, 0 failed" in result.output


@patch("prompt_commons.cli.commands.evaluate.run_evaluate", new_callable=AsyncMock)
def test_evaluate_failure_exits_nonzero(mock_run_evaluate):
    mock_run_evaluate.return_value = outcomes(passing=3)

    result = runner.invoke(cli_app, ["evaluate"])

    assert result.exit_code == 1
    assert "Summary: 3 passed, 2 failed" in result.output
    assert "FAIL" in result.output
