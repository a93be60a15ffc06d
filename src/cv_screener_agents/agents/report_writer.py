"""Report writer agent: CSV and Excel exports of analysis results."""

from __future__ import annotations

import csv
import time
from pathlib import Path

import structlog

from cv_screener_agents.agents.base import BaseAgent
from cv_screener_core.constants import REQUIREMENT_MET_THRESHOLD
from cv_screener_core.exceptions import InvalidRequestError
from cv_screener_core.models.analysis import CandidateResult
from cv_screener_core.state import AnalysisState

logger = structlog.get_logger()

REPORT_FORMATS = ("csv", "xlsx")


def report_path(output_dir: Path, analysis_id: str, fmt: str) -> Path:
    """Location of an exported report."""
    return output_dir / f"{analysis_id}_results.{fmt}"


class ReportWriterAgent(BaseAgent):
    """Write ranked candidate results to CSV and Excel."""

    agent_name = "report_writer"

    async def run(self, state: AnalysisState) -> AnalysisState:
        """Write both report formats for a finished analysis."""
        self._log_start({"results": len(state.results)})
        start = time.monotonic()

        paths = self.write(
            state.analysis_id,
            state.request.title,
            state.sorted_results(),
            state.request.requirements,
        )
        state.output_files.extend(str(p) for p in paths)

        self._log_end(time.monotonic() - start, {"output_files": state.output_files})
        return state

    def write(
        self,
        analysis_id: str,
        title: str | None,
        results: list[CandidateResult],
        requirements: list[str] | None = None,
        formats: tuple[str, ...] = REPORT_FORMATS,
    ) -> list[Path]:
        """Write the requested formats and return the written paths."""
        unknown = [f for f in formats if f not in REPORT_FORMATS]
        if unknown:
            msg = f"Unsupported report format: {', '.join(unknown)}"
            raise InvalidRequestError(msg)

        output_dir = Path(self.settings.output_dir)
        output_dir.mkdir(parents=True, exist_ok=True)

        requirements = requirements or _requirements_from_results(results)
        rows = build_rows(results, requirements)
        written: list[Path] = []

        if "csv" in formats:
            path = report_path(output_dir, analysis_id, "csv")
            self._write_csv(rows, path)
            written.append(path)

        if "xlsx" in formats:
            path = report_path(output_dir, analysis_id, "xlsx")
            self._write_excel(rows, path, analysis_id, title, results, requirements)
            written.append(path)

        return written

    def _write_csv(self, rows: list[dict[str, object]], path: Path) -> None:
        """Write rows to CSV file."""
        with open(path, "w", newline="", encoding="utf-8") as f:
            fieldnames = list(rows[0].keys()) if rows else ["Rank", "Candidate"]
            writer = csv.DictWriter(f, fieldnames=fieldnames)
            writer.writeheader()
            writer.writerows(rows)

        logger.info("csv_written", path=str(path), rows=len(rows))

    def _write_excel(
        self,
        rows: list[dict[str, object]],
        path: Path,
        analysis_id: str,
        title: str | None,
        results: list[CandidateResult],
        requirements: list[str],
    ) -> None:
        """Write rows to Excel with score highlighting and a summary sheet."""
        import pandas as pd
        from openpyxl import load_workbook
        from openpyxl.styles import Font, PatternFill

        df = pd.DataFrame(rows, columns=list(rows[0].keys()) if rows else ["Rank", "Candidate"])
        df.to_excel(str(path), index=False, sheet_name="Results")

        wb = load_workbook(str(path))
        ws = wb["Results"]

        green = PatternFill(start_color="C6EFCE", fill_type="solid")
        yellow = PatternFill(start_color="FFEB9C", fill_type="solid")
        red = PatternFill(start_color="FFC7CE", fill_type="solid")

        for cell in ws[1]:
            cell.font = Font(bold=True)

        # Score % column plus one column per requirement
        first_score_col = 4
        last_score_col = first_score_col + len(requirements)
        for row_idx in range(2, ws.max_row + 1):
            for col_idx in range(first_score_col, last_score_col + 1):
                cell = ws.cell(row=row_idx, column=col_idx)
                if not isinstance(cell.value, int | float):
                    continue
                if cell.value >= 80:
                    cell.fill = green
                elif cell.value >= REQUIREMENT_MET_THRESHOLD:
                    cell.fill = yellow
                else:
                    cell.fill = red

        summary_ws = wb.create_sheet("Summary")
        scored = [r for r in results if not r.failed]
        average = sum(r.overall for r in scored) / len(scored) if scored else 0.0
        summary_data = [
            ("Analysis ID", analysis_id),
            ("Title", title or ""),
            ("Candidates", len(results)),
            ("Failed", len(results) - len(scored)),
            ("Average Overall", f"{average:.1f}"),
            ("Requirements", "; ".join(requirements)),
        ]
        for i, (key, value) in enumerate(summary_data, start=1):
            summary_ws.cell(row=i, column=1, value=key).font = Font(bold=True)
            summary_ws.cell(row=i, column=2, value=str(value))

        wb.save(str(path))
        logger.info("excel_written", path=str(path), rows=len(rows))


def _requirements_from_results(results: list[CandidateResult]) -> list[str]:
    requirements: list[str] = []
    for result in results:
        for requirement in result.scores:
            if requirement not in requirements:
                requirements.append(requirement)
    return requirements


def build_rows(
    results: list[CandidateResult], requirements: list[str]
) -> list[dict[str, object]]:
    """Report rows, best candidate first."""
    ordered = sorted(results, key=lambda r: r.overall, reverse=True)
    rows: list[dict[str, object]] = []
    for rank, result in enumerate(ordered, start=1):
        row: dict[str, object] = {
            "Rank": rank,
            "Candidate": result.name,
            "Overall": result.overall,
            "Score %": int(round(result.overall * 10)),
        }
        for requirement in requirements:
            row[requirement] = result.scores.get(requirement, 0)
        row["Strengths"] = "; ".join(result.strengths)
        row["Concerns"] = "; ".join(result.concerns)
        row["File"] = result.file_name or ""
        row["Status"] = "failed" if result.failed else ("cached" if result.cached else "scored")
        rows.append(row)
    return rows
