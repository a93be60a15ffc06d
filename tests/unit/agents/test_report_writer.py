"""Tests for CSV and Excel report export."""

from __future__ import annotations

import csv
from pathlib import Path
from unittest.mock import MagicMock

import pytest
from openpyxl import load_workbook

from cv_screener_agents.agents.report_writer import ReportWriterAgent, build_rows, report_path
from cv_screener_core.exceptions import InvalidRequestError
from cv_screener_core.models.analysis import CandidateResult
from cv_screener_core.state import AnalysisState
from tests.mocks.mock_factories import REQUIREMENTS, make_result


def _results() -> list[CandidateResult]:
    return [
        make_result(name="Low", overall=4.0),
        make_result(name="High", overall=9.0, cached=True),
        make_result(name="Broken", overall=0.0, failed=True),
    ]


@pytest.mark.unit
class TestBuildRows:
    """Test report row layout."""

    def test_rows_ranked_with_requirement_columns(self) -> None:
        rows = build_rows(_results(), REQUIREMENTS)

        assert [r["Candidate"] for r in rows] == ["High", "Low", "Broken"]
        assert rows[0]["Rank"] == 1
        assert rows[0]["Score %"] == 90
        assert rows[0]["Python"] == 80
        assert rows[0]["Status"] == "cached"
        assert rows[2]["Status"] == "failed"
        assert list(rows[0].keys())[:4] == ["Rank", "Candidate", "Overall", "Score %"]


@pytest.mark.unit
@pytest.mark.usefixtures("patched_llm")
class TestReportWriterAgent:
    """Test writing report files."""

    def test_write_csv_and_excel(self, mock_settings: MagicMock) -> None:
        agent = ReportWriterAgent(mock_settings)

        paths = agent.write("a1", "Backend", _results(), REQUIREMENTS)

        output_dir = Path(mock_settings.output_dir)
        assert paths == [report_path(output_dir, "a1", "csv"), report_path(output_dir, "a1", "xlsx")]

        with open(paths[0], newline="", encoding="utf-8") as f:
            rows = list(csv.DictReader(f))
        assert [r["Candidate"] for r in rows] == ["High", "Low", "Broken"]

        wb = load_workbook(paths[1])
        assert wb.sheetnames == ["Results", "Summary"]
        summary = {row[0]: row[1] for row in wb["Summary"].iter_rows(values_only=True)}
        assert summary["Analysis ID"] == "a1"
        assert summary["Failed"] == "1"
        assert summary["Average Overall"] == "6.5"

    def test_requirements_inferred_from_results(self, mock_settings: MagicMock) -> None:
        agent = ReportWriterAgent(mock_settings)
        (path,) = agent.write("a2", None, _results(), formats=("csv",))
        with open(path, newline="", encoding="utf-8") as f:
            header = next(csv.reader(f))
        assert all(r in header for r in REQUIREMENTS)

    def test_unknown_format_rejected(self, mock_settings: MagicMock) -> None:
        with pytest.raises(InvalidRequestError, match="pdf"):
            ReportWriterAgent(mock_settings).write("a3", None, _results(), formats=("pdf",))

    async def test_run_records_output_files(
        self, mock_settings: MagicMock, analysis_state: AnalysisState
    ) -> None:
        analysis_state.results = _results()
        await ReportWriterAgent(mock_settings).run(analysis_state)
        assert len(analysis_state.output_files) == 2
        assert all(Path(p).exists() for p in analysis_state.output_files)
