"""Workspace management for the weekly roadmap cycle.

This module owns the project directory layout and runs each step of the
cycle against it: seeding workstreams, indexing inputs, recording KPI
snapshots, running an analysis and applying approved recommendations.
"""

from __future__ import annotations

import logging
import math
import os
from datetime import date
from pathlib import Path
from typing import Any, Dict, List, Optional

from .analysis import AnalysisClient, AnalysisResult, estimate_tokens, parse_analysis_json
from .applier import apply_recommendations as apply_to_stores
from .hierarchy import build_hierarchy, workstream_file_for
from .inputs import classify_input, extract_week, is_valid_week, read_documents, scan_inputs, validate_input
from .kpis import default_kpi_data, extract_kpis_from_status, roadmap_metrics
from .markdown import append_weekly_log, render_epic_md, render_initiative_md, render_overview_md, render_recommendations_md
from .models import (
    RISK_FLAG,
    AnalysisHistory,
    AnalysisOutput,
    AnalysisRecord,
    ApplyReport,
    InputIndex,
    InputRecord,
    ItemId,
    KpiData,
    KpiSnapshot,
    RoadmapDocument,
    RoadmapEntry,
    RoadmapItem,
    WorkstreamUpdate,
    higher_risk,
    utc_timestamp,
)
from .parser import parse_all_recommendations, parse_recommendations
from .prompts import AnalysisContext, build_analysis_prompt, build_system_prompt
from .roadmapkit_logging import (
    log_analysis_cycle,
    log_error_with_context,
    log_operation,
    log_performance,
    log_store_written,
    observability_hooks,
)
from .stores import (
    StoreError,
    load_document,
    load_json,
    read_tabular,
    save_document,
    save_json,
    write_tabular,
)

logger = logging.getLogger("roadmapkit.workspace")


# ---------------------------------------------------------------------------
# Week helpers
# ---------------------------------------------------------------------------


def current_week(today: Optional[date] = None) -> str:
    """Week label ``YYYY-WXX`` for ``today``, counting weeks from Sunday Jan 1."""
    today = today or date.today()
    jan1 = date(today.year, 1, 1)
    days = (today - jan1).days
    jan1_weekday = (jan1.weekday() + 1) % 7  # Sunday == 0
    week = math.ceil((days + jan1_weekday + 1) / 7)
    return f"{today.year}-W{week:02d}"


def prior_weeks(week: str, count: int) -> List[str]:
    """The ``count`` week labels preceding ``week``, most recent first."""
    if not is_valid_week(week):
        raise ValueError(f"Week must look like YYYY-WXX, got: {week!r}")
    year, number = (int(part) for part in week.split("-W"))
    weeks: List[str] = []
    for _ in range(count):
        number -= 1
        if number < 1:
            year -= 1
            number = 52
        weeks.append(f"{year}-W{number:02d}")
    return weeks


def _resolve_week(week: Optional[str]) -> str:
    week = week or current_week()
    if not is_valid_week(week):
        raise ValueError(f"Week must look like YYYY-WXX, got: {week!r}")
    return week


def cycle_risk_level(update: Optional[WorkstreamUpdate], flagged: bool) -> Optional[str]:
    """Risk level signalled for one entry by one analysis cycle, if any."""
    level: Optional[str] = None
    if update is not None and update.risks:
        level = higher_risk(level, "yellow")
    if flagged:
        level = higher_risk(level, "red")
    return level


def apply_analysis_to_document(document: RoadmapDocument, analysis: AnalysisOutput, reviewed_at: str) -> List[str]:
    """Refresh the AI fields of the enriched document from one cycle.

    Entries with a workstream update get a review stamp and their
    observations replaced. An entry whose cycle signals risk takes the
    cycle's level: yellow for reported risks, red for a ``risk_flag``
    recommendation, red winning when both apply. Returns the ids touched.
    """
    flagged = {rec.affects for rec in analysis.recommendations if rec.type == RISK_FLAG}
    touched: List[str] = []
    for entry in document.entries:
        update = analysis.workstream_updates.get(entry.id)
        if update is not None:
            entry.last_ai_review = reviewed_at
            entry.ai_observations = list(update.observations)
        level = cycle_risk_level(update, entry.id in flagged)
        if level is not None:
            entry.ai_risk_level = level
        if update is not None or level is not None:
            touched.append(entry.id)
    return touched


class RoadmapWorkspace:
    """Manage the roadmap stores and narratives under a project root."""

    ROOT_ENV = "ROADMAPKIT_PROJECT_ROOT"
    TABULAR_PATH_ENV = "ROADMAPKIT_TABULAR_PATH"
    PROGRAM_NAME_ENV = "ROADMAPKIT_PROGRAM_NAME"
    PROGRAM_OWNER_ENV = "ROADMAPKIT_PROGRAM_OWNER"

    DEFAULT_TABULAR_PATH = "public/sample-roadmap-data.csv"
    DEFAULT_PROGRAM_NAME = "Roadmap Program"

    PRIOR_REPORT_WEEKS = 4
    SYSTEM_PROMPT_TOKENS = 800
    CONTEXT_TOKEN_WARNING = 180_000

    def __init__(self, root: Path | str | None = None, *, tabular_path: Optional[str] = None):
        """Initialize the workspace rooted at ``root``.

        Falls back to ``ROADMAPKIT_PROJECT_ROOT`` and then the current
        directory. Nothing is created on disk until a step writes.
        """
        root = root or os.getenv(self.ROOT_ENV) or os.getcwd()
        self.root = Path(root).resolve()
        relative_csv = tabular_path or os.getenv(self.TABULAR_PATH_ENV) or self.DEFAULT_TABULAR_PATH
        self.tabular_path = self.root / relative_csv

        self.data_dir = self.root / "data"
        self.workstreams_dir = self.root / "workstreams"
        self.recommendations_dir = self.root / "recommendations"
        self.archive_dir = self.recommendations_dir / "archive"
        self.inputs_dir = self.root / "inputs"

        self.program_name = os.getenv(self.PROGRAM_NAME_ENV, self.DEFAULT_PROGRAM_NAME)
        self.program_owner = os.getenv(self.PROGRAM_OWNER_ENV, "")

        logger.debug(f"Workspace at {self.root} (CSV: {self.tabular_path})")

    # ------------------------------------------------------------------
    # Paths
    # ------------------------------------------------------------------

    @property
    def roadmap_path(self) -> Path:
        return self.data_dir / "roadmap.json"

    @property
    def kpis_path(self) -> Path:
        return self.data_dir / "kpis.json"

    @property
    def history_path(self) -> Path:
        return self.data_dir / "analysis-history.json"

    @property
    def input_index_path(self) -> Path:
        return self.data_dir / "input-index.json"

    @property
    def latest_report_path(self) -> Path:
        return self.recommendations_dir / "latest.md"

    def archive_report_path(self, week: str) -> Path:
        return self.archive_dir / f"{week}.md"

    def relative(self, path: Path) -> str:
        """``path`` relative to the root, or as given when it lies outside it."""
        path = Path(path)
        try:
            return path.relative_to(self.root).as_posix()
        except ValueError:
            return path.as_posix()

    # ------------------------------------------------------------------
    # Store access
    # ------------------------------------------------------------------

    def load_items(self) -> List[RoadmapItem]:
        if not self.tabular_path.exists():
            raise StoreError(f"Roadmap CSV not found at {self.tabular_path}")
        return read_tabular(self.tabular_path)

    def load_document(self) -> Optional[RoadmapDocument]:
        return load_document(self.roadmap_path)

    def load_kpis(self) -> Optional[KpiData]:
        data = load_json(self.kpis_path)
        return KpiData.from_dict(data) if data is not None else None

    def load_history(self) -> AnalysisHistory:
        data = load_json(self.history_path)
        return AnalysisHistory.from_dict(data) if data is not None else AnalysisHistory()

    def load_input_index(self) -> InputIndex:
        data = load_json(self.input_index_path)
        return InputIndex.from_dict(data) if data is not None else InputIndex()

    def _write_text(self, path: Path, content: str) -> None:
        try:
            path.parent.mkdir(parents=True, exist_ok=True)
            path.write_text(content, encoding="utf-8")
        except OSError as e:
            raise StoreError(f"Could not write {path}: {e}") from e

    # ------------------------------------------------------------------
    # Workstream generation
    # ------------------------------------------------------------------

    @log_performance("generate_workstreams")
    def generate_workstreams(self, *, force: bool = False) -> Dict[str, Any]:
        """Seed narratives and the enriched document from the roadmap CSV.

        Narrative files that already exist are kept unless ``force`` is set.
        The enriched document is rebuilt from the CSV on every run. KPI,
        history and input-index stores are created only when missing.
        """
        try:
            with log_operation("generate_workstreams", force=force):
                items = self.load_items()
                hierarchy = build_hierarchy(items)
                written: List[str] = []
                skipped: List[str] = []

                def write_narrative(path: Path, content: str) -> None:
                    if path.exists() and not force:
                        skipped.append(self.relative(path))
                        return
                    self._write_text(path, content)
                    written.append(self.relative(path))

                kpi_data = self.load_kpis()
                write_narrative(
                    self.workstreams_dir / "_overview.md",
                    render_overview_md(
                        hierarchy,
                        kpi_data,
                        program_name=self.program_name,
                        program_owner=self.program_owner,
                    ),
                )
                for node in hierarchy:
                    initiative_dir = self.workstreams_dir / node.initiative.id
                    write_narrative(initiative_dir / "initiative.md", render_initiative_md(node.initiative, node.epics))
                    for epic_node in node.epics:
                        write_narrative(
                            initiative_dir / f"{epic_node.epic.id}.md",
                            render_epic_md(epic_node.epic, node.initiative, epic_node.tasks),
                        )

                now = utc_timestamp()
                document = RoadmapDocument(
                    last_updated=now,
                    generated_from_csv=now,
                    entries=[RoadmapEntry.from_item(item, workstream_file_for(item, items)) for item in items],
                )
                save_document(self.roadmap_path, document)
                log_store_written("roadmap.json", self.roadmap_path, entries=len(document.entries))

                initialized: List[str] = []
                if kpi_data is None:
                    save_json(self.kpis_path, default_kpi_data().to_dict())
                    initialized.append(self.relative(self.kpis_path))
                if not self.history_path.exists():
                    save_json(self.history_path, AnalysisHistory().to_dict())
                    initialized.append(self.relative(self.history_path))
                if not self.input_index_path.exists():
                    save_json(self.input_index_path, InputIndex().to_dict())
                    initialized.append(self.relative(self.input_index_path))

            logger.info(
                f"Generated workstreams for {len(hierarchy)} initiatives "
                f"({len(written)} written, {len(skipped)} skipped)"
            )
            observability_hooks.log_workflow_event(
                "workstreams_generated",
                initiatives=len(hierarchy),
                written=len(written),
                skipped=len(skipped),
            )
            return {
                "initiatives": [
                    {
                        "id": node.initiative.id,
                        "title": node.initiative.title,
                        "epics": [
                            {"id": epic_node.epic.id, "title": epic_node.epic.title, "tasks": len(epic_node.tasks)}
                            for epic_node in node.epics
                        ],
                    }
                    for node in hierarchy
                ],
                "entries": len(document.entries),
                "written": written,
                "skipped": skipped,
                "initialized": initialized,
            }

        except Exception as e:
            log_error_with_context(e, {"operation": "generate_workstreams", "root": str(self.root)})
            raise

    # ------------------------------------------------------------------
    # Input indexing
    # ------------------------------------------------------------------

    @log_performance("process_inputs")
    def process_inputs(self) -> Dict[str, Any]:
        """Index new Markdown inputs and report template-like ones."""
        try:
            with log_operation("process_inputs", inputs_dir=str(self.inputs_dir)):
                index = self.load_input_index()
                known = index.known_files()
                files = scan_inputs(self.inputs_dir)
                new_records: List[InputRecord] = []
                warnings: Dict[str, List[str]] = {}

                for path in files:
                    rel_path = self.relative(path)
                    if rel_path in known:
                        continue
                    inputs_rel = path.relative_to(self.inputs_dir).as_posix()
                    input_type = classify_input(inputs_rel)
                    content = path.read_text(encoding="utf-8")
                    record = InputRecord(
                        week=extract_week(inputs_rel),
                        file=rel_path,
                        type=input_type,
                        indexed_at=utc_timestamp(),
                        size_bytes=path.stat().st_size,
                    )
                    index.inputs.append(record)
                    new_records.append(record)
                    logger.info(f"Indexed {rel_path} (type: {record.type}, week: {record.week})")

                    issues = validate_input(content, input_type)
                    if issues:
                        warnings[rel_path] = issues
                        for issue in issues:
                            logger.warning(f"{rel_path}: {issue}")

                save_json(self.input_index_path, index.to_dict())
                log_store_written("input-index.json", self.input_index_path, new=len(new_records))

            return {
                "found": len(files),
                "total_indexed": len(index.inputs),
                "new": [record.to_dict() for record in new_records],
                "warnings": warnings,
                "warning_count": sum(len(issues) for issues in warnings.values()),
            }

        except Exception as e:
            log_error_with_context(e, {"operation": "process_inputs", "root": str(self.root)})
            raise

    # ------------------------------------------------------------------
    # KPI tracking
    # ------------------------------------------------------------------

    @log_performance("update_kpis")
    def update_kpis(self, week: Optional[str] = None) -> Dict[str, Any]:
        """Append the KPI snapshot for ``week`` unless one already exists."""
        week = _resolve_week(week)
        try:
            kpi_data = self.load_kpis()
            if kpi_data is None:
                raise StoreError(f"{self.relative(self.kpis_path)} not found. Run generate-workstreams first.")

            existing = kpi_data.snapshot_for(week)
            if existing is not None:
                logger.info(f"Snapshot for {week} already exists, leaving it unchanged")
                return {"week": week, "created": False, "snapshot": existing.to_dict()}

            with log_operation("update_kpis", week=week):
                status_path = self.inputs_dir / "weekly" / week / "status.md"
                if status_path.exists():
                    metrics = extract_kpis_from_status(status_path.read_text(encoding="utf-8"))
                else:
                    logger.info(f"No status.md found for {week}, recording empty KPI values")
                    metrics = extract_kpis_from_status("")

                snapshot = KpiSnapshot(
                    week=week,
                    date=date.today().isoformat(),
                    metrics=metrics,
                    roadmap_metrics=roadmap_metrics(self.load_items()),
                )
                kpi_data.history.append(snapshot)
                save_json(self.kpis_path, kpi_data.to_dict())
                log_store_written("kpis.json", self.kpis_path, week=week)

            return {
                "week": week,
                "created": True,
                "snapshot": snapshot.to_dict(),
                "total_snapshots": len(kpi_data.history),
            }

        except Exception as e:
            log_error_with_context(e, {"operation": "update_kpis", "week": week})
            raise

    # ------------------------------------------------------------------
    # Analysis
    # ------------------------------------------------------------------

    def build_context(self, week: str) -> AnalysisContext:
        """Gather everything the analysis prompt needs for ``week``."""
        if not self.tabular_path.exists():
            raise StoreError(f"Roadmap CSV not found at {self.tabular_path}")
        baseline_dir = self.inputs_dir / "baseline"
        baseline_docs = read_documents(baseline_dir, self.root)
        if baseline_dir.is_dir():
            for sub_dir in sorted(path for path in baseline_dir.iterdir() if path.is_dir()):
                baseline_docs.extend(read_documents(sub_dir, self.root))

        workstream_files = read_documents(self.workstreams_dir, self.root)
        if self.workstreams_dir.is_dir():
            for sub_dir in sorted(path for path in self.workstreams_dir.iterdir() if path.is_dir()):
                workstream_files.extend(read_documents(sub_dir, self.root))

        prior_reports = []
        for prior in prior_weeks(week, self.PRIOR_REPORT_WEEKS):
            path = self.archive_report_path(prior)
            if path.exists():
                prior_reports.append((self.relative(path), path.read_text(encoding="utf-8")))

        return AnalysisContext(
            week=week,
            csv_text=self.tabular_path.read_text(encoding="utf-8"),
            document=self.load_document(),
            kpi_data=self.load_kpis(),
            baseline_docs=baseline_docs,
            weekly_inputs=read_documents(self.inputs_dir / "weekly" / week, self.root),
            prior_reports=prior_reports,
            workstream_files=workstream_files,
            program_owner=self.program_owner,
        )

    def _workstream_path_for(self, item_id: str, document: Optional[RoadmapDocument]) -> Optional[Path]:
        entry = document.entry(item_id) if document is not None else None
        if entry is not None and entry.workstream_file:
            relative = entry.workstream_file
        else:
            parsed = ItemId.parse(item_id)
            if parsed is None:
                return None
            relative = parsed.workstream_path
        path = self.root / relative
        return path if path.exists() else None

    @log_performance("analyze")
    def analyze(
        self,
        week: Optional[str] = None,
        *,
        dry_run: bool = False,
        client: Optional[AnalysisClient] = None,
    ) -> Dict[str, Any]:
        """Run one analysis cycle for ``week``.

        Writes the recommendations report (archived and ``latest.md``),
        appends weekly log entries to workstream narratives, refreshes the AI
        fields of the enriched document, adds a KPI snapshot when the
        assessment carries values and records the run in the analysis
        history. With ``dry_run`` nothing is written.
        """
        week = _resolve_week(week)
        try:
            context = self.build_context(week)
            system_prompt = build_system_prompt(
                self.program_name,
                context.kpi_data.targets if context.kpi_data else (),
                self.program_owner,
            )
            user_prompt = build_analysis_prompt(context)

            estimated = estimate_tokens(user_prompt) + self.SYSTEM_PROMPT_TOKENS
            logger.info(f"Estimated input tokens for {week}: ~{estimated:,}")
            if estimated > self.CONTEXT_TOKEN_WARNING:
                logger.warning(f"Context for {week} is approaching the model limit ({estimated:,} tokens)")

            client = client or AnalysisClient()
            with log_operation("analysis_request", week=week, model=client.model):
                result = client.analyze(system_prompt, user_prompt)
            logger.info(
                f"Analysis response: {result.input_tokens:,} input / {result.output_tokens:,} output tokens, "
                f"~${result.cost_estimate:.4f}"
            )

            analysis = parse_analysis_json(result.response)
            summary = {
                "week": week,
                "dry_run": dry_run,
                "executive_summary": analysis.executive_summary,
                "recommendations": [rec.to_dict() for rec in analysis.recommendations],
                "observations": list(analysis.observations),
                "usage": {
                    "input_tokens": result.input_tokens,
                    "output_tokens": result.output_tokens,
                    "cost_estimate": result.cost_estimate,
                    "estimated_input_tokens": estimated,
                },
            }
            if dry_run:
                logger.info(f"Dry run for {week}: {len(analysis.recommendations)} recommendations, nothing written")
                return summary

            with log_operation("write_analysis", week=week):
                summary["written"] = self._write_analysis(week, analysis, context, result)

            log_analysis_cycle(week, len(analysis.recommendations), cost_estimate=result.cost_estimate)
            return summary

        except Exception as e:
            log_error_with_context(e, {"operation": "analyze", "week": week, "dry_run": dry_run})
            raise

    def _write_analysis(
        self, week: str, analysis: AnalysisOutput, context: AnalysisContext, result: AnalysisResult
    ) -> List[str]:
        written: List[str] = []

        report = render_recommendations_md(week, analysis, model=result.model)
        archive_path = self.archive_report_path(week)
        self._write_text(archive_path, report)
        self._write_text(self.latest_report_path, report)
        written.extend([self.relative(archive_path), self.relative(self.latest_report_path)])

        document = context.document
        for item_id, update in analysis.workstream_updates.items():
            path = self._workstream_path_for(item_id, document)
            if path is None:
                logger.warning(f"No workstream file for update {item_id}, skipping weekly log")
                continue
            self._write_text(path, append_weekly_log(path.read_text(encoding="utf-8"), week, update))
            written.append(self.relative(path))

        now = utc_timestamp()
        if document is not None:
            apply_analysis_to_document(document, analysis, now)
            document.last_updated = now
            save_document(self.roadmap_path, document)
            log_store_written("roadmap.json", self.roadmap_path, week=week)
            written.append(self.relative(self.roadmap_path))

        kpi_data = context.kpi_data
        values = {kpi.key: kpi.current_value for kpi in analysis.kpi_assessment}
        has_values = any(value is not None for value in values.values())
        if kpi_data is not None and has_values and kpi_data.snapshot_for(week) is None:
            items = [entry.to_item() for entry in document.entries] if document is not None else self.load_items()
            kpi_data.history.append(
                KpiSnapshot(
                    week=week,
                    date=date.today().isoformat(),
                    metrics={target.key: values.get(target.key) for target in kpi_data.targets},
                    roadmap_metrics=roadmap_metrics(items),
                    notes=analysis.executive_summary,
                )
            )
            save_json(self.kpis_path, kpi_data.to_dict())
            log_store_written("kpis.json", self.kpis_path, week=week)
            written.append(self.relative(self.kpis_path))

        history = self.load_history()
        history.runs.append(
            AnalysisRecord(
                week=week,
                timestamp=now,
                input_tokens=result.input_tokens,
                output_tokens=result.output_tokens,
                thinking_tokens=result.thinking_tokens,
                cost_estimate=result.cost_estimate,
                recommendation_count=len(analysis.recommendations),
                recommendations_file=self.relative(archive_path),
            )
        )
        save_json(self.history_path, history.to_dict())
        log_store_written("analysis-history.json", self.history_path, week=week)
        written.append(self.relative(self.history_path))
        return written

    # ------------------------------------------------------------------
    # Recommendations
    # ------------------------------------------------------------------

    def _report_path(self, report_path: Path | str | None) -> Path:
        if report_path is None:
            return self.latest_report_path
        path = Path(report_path)
        return path if path.is_absolute() else self.root / path

    def _read_report(self, report_path: Path | str | None) -> tuple[Path, str]:
        path = self._report_path(report_path)
        if not path.exists():
            raise StoreError(f"Recommendations report not found at {path}")
        try:
            return path, path.read_text(encoding="utf-8")
        except OSError as e:
            raise StoreError(f"Could not read {path}: {e}") from e

    def recommendation_status(self, report_path: Path | str | None = None) -> Dict[str, Any]:
        """List every recommendation in a report with its approval state."""
        path, text = self._read_report(report_path)
        records = parse_all_recommendations(text)
        approved = [record for record in records if record.approved]
        return {
            "report": str(path),
            "total": len(records),
            "approved": len(approved),
            "pending": len(records) - len(approved),
            "recommendations": [record.to_dict() for record in records],
        }

    @log_performance("apply_recommendations")
    def apply_recommendations(self, report_path: Path | str | None = None) -> ApplyReport:
        """Apply the approved recommendations of a report to both stores.

        Both stores are written only when at least one recommendation was
        applied; in that case the enriched document's ``last_updated`` is
        stamped. A run with nothing applied leaves every file untouched.
        """
        try:
            path, text = self._read_report(report_path)
            records = parse_recommendations(text)
            if not records:
                logger.info("No approved recommendations found. Nothing to apply.")
                return ApplyReport()

            logger.info(f"Found {len(records)} approved recommendation(s) in {path}")
            with log_operation("apply_recommendations", report=str(path), approved=len(records)):
                items = self.load_items()
                document = self.load_document()
                updated_items, updated_document, report = apply_to_stores(records, items, document)

                if report.applied > 0:
                    write_tabular(self.tabular_path, updated_items)
                    log_store_written("tabular", self.tabular_path, applied=report.applied)
                    if updated_document is not None:
                        updated_document.touch()
                        save_document(self.roadmap_path, updated_document)
                        log_store_written("roadmap.json", self.roadmap_path, applied=report.applied)
                    report.persisted = True
                else:
                    logger.info("No recommendations could be applied. Stores left unchanged.")

            logger.info(
                f"Apply summary: approved {report.approved}, applied {report.applied}, skipped {report.skipped}"
            )
            observability_hooks.log_workflow_event("recommendations_applied", **report.summary())
            return report

        except Exception as e:
            log_error_with_context(e, {"operation": "apply_recommendations", "report": str(report_path)})
            raise

    # ------------------------------------------------------------------
    # Summaries
    # ------------------------------------------------------------------

    def status(self) -> Dict[str, Any]:
        """What exists in the workspace, for orientation."""
        document = self.load_document()
        kpi_data = self.load_kpis()
        history = self.load_history()
        return {
            "root": str(self.root),
            "tabular_store": self.relative(self.tabular_path) if self.tabular_path.exists() else None,
            "enriched_entries": len(document.entries) if document is not None else None,
            "last_updated": document.last_updated if document is not None else None,
            "kpi_snapshots": len(kpi_data.history) if kpi_data is not None else None,
            "analysis_runs": len(history.runs),
            "latest_report": self.relative(self.latest_report_path) if self.latest_report_path.exists() else None,
            "current_week": current_week(),
        }
