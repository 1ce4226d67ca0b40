"""Workflow management for roadmapkit.

This module wraps the workspace for tool-style callers (the MCP server and
the command line). Every method returns a JSON-serializable dict that points
at the next step of the weekly cycle, and failures come back as dicts with
an ``error`` key instead of raising.
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Any, Dict, Optional

from .analysis import AnalysisClient, AnalysisError
from .models import OUTCOME_SKIPPED_BY_DESIGN, OUTCOME_SKIPPED_NOT_FOUND, OUTCOME_SKIPPED_UNPARSEABLE, WORKFLOW_STEPS
from .stores import StoreError
from .workspace import RoadmapWorkspace

logger = logging.getLogger("roadmapkit.workflow")


def _error(operation: str, error: Exception, suggestion: str, next_step: str) -> Dict[str, Any]:
    return {
        "error": f"Failed to {operation}: {error}",
        "error_type": type(error).__name__,
        "suggestion": suggestion,
        "next_suggested_step": next_step,
        "message": f"Error: {error}",
    }


def _suggestion_for(error: Exception) -> str:
    if isinstance(error, ValueError):
        return "Check the arguments; weeks are written YYYY-WXX (e.g. 2025-W06)"
    if isinstance(error, AnalysisError):
        return "Check ANTHROPIC_API_KEY and retry; malformed responses usually need a fresh run"
    if isinstance(error, StoreError):
        return "Check that the roadmap CSV and data/ files exist and are readable"
    return "Check the logs for details"


class RoadmapWorkflow:
    """Manages the weekly roadmap cycle for tool callers."""

    def __init__(self, root: Path | str | None = None, *, tabular_path: Optional[str] = None):
        """Initialize workflow with the workspace root."""
        self.workspace = RoadmapWorkspace(root, tabular_path=tabular_path)

    # ------------------------------------------------------------------
    # Cycle steps
    # ------------------------------------------------------------------

    def generate_workstreams(self, force: bool = False) -> Dict[str, Any]:
        """Seed the enriched roadmap and workstream narratives."""
        try:
            result = self.workspace.generate_workstreams(force=force)
        except Exception as e:
            logger.error(f"Failed to generate workstreams: {e}")
            return _error("generate workstreams", e, _suggestion_for(e), "generate_workstreams")

        return {
            **result,
            "next_suggested_step": "process_inputs",
            "workflow_tip": "Next: drop this week's emails, meeting notes and status.md under inputs/weekly/<week>/",
            "message": (
                f"Generated {len(result['initiatives'])} initiatives: {len(result['written'])} files written, "
                f"{len(result['skipped'])} kept. Enriched roadmap has {result['entries']} entries."
            ),
        }

    def process_inputs(self) -> Dict[str, Any]:
        """Index new weekly input documents."""
        try:
            result = self.workspace.process_inputs()
        except Exception as e:
            logger.error(f"Failed to process inputs: {e}")
            return _error("process inputs", e, _suggestion_for(e), "process_inputs")

        return {
            **result,
            "next_suggested_step": "update_kpis",
            "workflow_tip": "Fill in any inputs flagged as templates before running the analysis",
            "message": (
                f"Indexed {len(result['new'])} new input(s); {result['total_indexed']} total, "
                f"{result['warning_count']} warning(s)."
            ),
        }

    def update_kpis(self, week: Optional[str] = None) -> Dict[str, Any]:
        """Record the weekly KPI snapshot."""
        try:
            result = self.workspace.update_kpis(week)
        except Exception as e:
            logger.error(f"Failed to update KPIs: {e}")
            return _error("update KPIs", e, _suggestion_for(e), "generate_workstreams")

        message = (
            f"Saved KPI snapshot for {result['week']}."
            if result["created"]
            else f"Snapshot for {result['week']} already exists; left unchanged."
        )
        return {
            **result,
            "next_suggested_step": "analyze",
            "workflow_tip": "Next: run the weekly analysis to produce recommendations",
            "message": message,
        }

    def analyze(
        self,
        week: Optional[str] = None,
        dry_run: bool = False,
        client: Optional[AnalysisClient] = None,
    ) -> Dict[str, Any]:
        """Run the weekly analysis cycle."""
        try:
            result = self.workspace.analyze(week, dry_run=dry_run, client=client)
        except Exception as e:
            logger.error(f"Failed to run analysis: {e}")
            return _error("run analysis", e, _suggestion_for(e), "analyze")

        count = len(result["recommendations"])
        if dry_run:
            return {
                **result,
                "next_suggested_step": "analyze",
                "workflow_tip": "Run again without dry_run to write the report",
                "message": f"Dry run for {result['week']}: {count} recommendation(s). No files written.",
            }
        return {
            **result,
            "next_suggested_step": "recommendation_status",
            "workflow_tip": "Review recommendations/latest.md and tick [x] **Approved** on the changes to apply",
            "message": f"Analysis for {result['week']} produced {count} recommendation(s).",
        }

    def recommendation_status(self, report_path: Optional[str] = None) -> Dict[str, Any]:
        """Show approval state of every recommendation in a report."""
        try:
            result = self.workspace.recommendation_status(report_path)
        except Exception as e:
            logger.error(f"Failed to read recommendations: {e}")
            return _error("read recommendations", e, _suggestion_for(e), "analyze")

        next_step = "apply_recommendations" if result["approved"] else "recommendation_status"
        return {
            **result,
            "next_suggested_step": next_step,
            "workflow_tip": (
                "Next: apply the approved recommendations"
                if result["approved"]
                else "No recommendations are approved yet; tick the Approved boxes first"
            ),
            "message": f"{result['approved']} of {result['total']} recommendation(s) approved.",
        }

    def apply_recommendations(self, report_path: Optional[str] = None) -> Dict[str, Any]:
        """Apply approved recommendations to both roadmap stores."""
        try:
            report = self.workspace.apply_recommendations(report_path)
        except Exception as e:
            logger.error(f"Failed to apply recommendations: {e}")
            return _error("apply recommendations", e, _suggestion_for(e), "recommendation_status")

        manual = [outcome.to_dict() for outcome in report.by_kind(OUTCOME_SKIPPED_BY_DESIGN)]
        if report.approved == 0:
            message = "No approved recommendations found. Nothing to apply."
        else:
            message = f"Approved: {report.approved}, applied: {report.applied}, skipped: {report.skipped}."
        return {
            **report.to_dict(),
            "not_found": len(report.by_kind(OUTCOME_SKIPPED_NOT_FOUND)),
            "unparseable": len(report.by_kind(OUTCOME_SKIPPED_UNPARSEABLE)),
            "manual_follow_up": manual,
            "next_suggested_step": "generate_workstreams" if report.persisted else "recommendation_status",
            "workflow_tip": (
                "Regenerate workstreams with force to refresh narratives from the updated CSV"
                if report.persisted
                else "Nothing was written; check skipped outcomes for the reason"
            ),
            "message": message,
        }

    # ------------------------------------------------------------------
    # Guidance
    # ------------------------------------------------------------------

    def status(self) -> Dict[str, Any]:
        try:
            return {**self.workspace.status(), "message": "Workspace status"}
        except Exception as e:
            return _error("read workspace status", e, _suggestion_for(e), "generate_workstreams")

    def get_workflow_guide(self) -> Dict[str, Any]:
        """Get the weekly cycle in recommended order."""
        return {
            "workflow_overview": "Weekly roadmap cycle in recommended order",
            "steps": [
                {
                    "step": step.step_number,
                    "name": step.name,
                    "tool": step.tool_name,
                    "description": step.description,
                    "purpose": step.purpose,
                    "prerequisites": list(step.prerequisites),
                    "expected_output": step.expected_output,
                }
                for step in WORKFLOW_STEPS
            ],
            "tips": [
                "generate_workstreams only needs re-running after large CSV edits (use force to overwrite)",
                "Recommendations are never applied automatically; a human ticks each Approved box",
                "Applying the same report twice applies it twice; archive reports once applied",
                "new_task recommendations must be added to the CSV by hand",
            ],
        }
