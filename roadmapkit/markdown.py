"""Markdown rendering for reports and workstream narratives."""

from __future__ import annotations

from datetime import datetime
from typing import List, Optional, Sequence

from .hierarchy import EpicNode, InitiativeNode, percentage, task_counts
from .models import AnalysisOutput, KpiData, RoadmapItem, WorkstreamUpdate, utc_timestamp

MONTHS = ("Jan", "Feb", "Mar", "Apr", "May", "Jun", "Jul", "Aug", "Sep", "Oct", "Nov", "Dec")

WEEKLY_LOG_HEADING = "## Weekly Log"
WEEKLY_LOG_PLACEHOLDER = "_No entries yet. Observations will be appended by the AI analysis workflow._"

APPROVAL_FOOTER = '*Review each recommendation and check the "Approved" box for items you want applied.*'


def format_date(value: Optional[str]) -> str:
    """Render ``M/D/YYYY`` or ISO dates as ``Mon D, YYYY``."""
    if not value:
        return "TBD"
    parts = value.split("/")
    if len(parts) == 3:
        try:
            month, day, year = int(parts[0]), int(parts[1]), int(parts[2])
        except ValueError:
            return value
        if not 1 <= month <= 12:
            return value
        return f"{MONTHS[month - 1]} {day}, {year}"
    try:
        parsed = datetime.fromisoformat(value.replace("Z", "+00:00"))
    except ValueError:
        return value
    return f"{MONTHS[parsed.month - 1]} {parsed.day}, {parsed.year}"


# ---------------------------------------------------------------------------
# Workstream files
# ---------------------------------------------------------------------------


def render_epic_md(epic: RoadmapItem, initiative: RoadmapItem, tasks: Sequence[RoadmapItem]) -> str:
    lines: List[str] = [
        f"# {epic.id}: {epic.title}",
        "",
        f"**Initiative:** {initiative.id} {initiative.title}",
        f"**Owner:** {epic.owner}",
        f"**Status:** {epic.status}",
        f"**Timeline:** {format_date(epic.start_date)} - {format_date(epic.end_date)}",
        f"**Impact:** {epic.impact}",
        "**Last AI Review:** Not yet analyzed",
        "",
        "## Current State",
        "",
        epic.notes or "No notes yet.",
        "",
        "## Sub-Items",
        "",
        "| ID | Title | Status | Start | End | Impact | Notes |",
        "|----|-------|--------|-------|-----|--------|-------|",
    ]
    for task in tasks:
        lines.append(
            f"| {task.id} | {task.title} | {task.status} | {format_date(task.start_date)} | "
            f"{format_date(task.end_date)} | {task.impact} | {task.notes or '-'} |"
        )

    lines.extend([
        "",
        WEEKLY_LOG_HEADING,
        "",
        WEEKLY_LOG_PLACEHOLDER,
        "",
        "## Risks & Blockers",
        "",
        "_None identified yet._",
        "",
        "## Dependencies",
        "",
    ])

    dependent = [task for task in tasks if task.dependencies]
    if dependent:
        for task in dependent:
            lines.append(f"- **{task.id}** depends on: {', '.join(task.dependencies)}")
    else:
        lines.append("_No dependencies tracked._")

    lines.append("")
    return "\n".join(lines)


def render_initiative_md(initiative: RoadmapItem, epics: Sequence[EpicNode]) -> str:
    all_tasks = [task for node in epics for task in node.tasks]
    counts = task_counts(all_tasks)

    lines: List[str] = [
        f"# {initiative.id}: {initiative.title}",
        "",
        f"**Owner:** {initiative.owner}",
        f"**Status:** {initiative.status}",
        f"**Timeline:** {format_date(initiative.start_date)} - {format_date(initiative.end_date)}",
        f"**Impact:** {initiative.impact}",
        "",
        "## Progress Summary",
        "",
        "| Metric | Value |",
        "|--------|-------|",
        f"| Total Tasks | {counts['total']} |",
        f"| Completed | {counts['Complete']} ({counts['completion_pct']}%) |",
        f"| In Progress | {counts['In Progress']} |",
        f"| Blocked | {counts['Blocked']} |",
        f"| Not Started | {counts['Not Started']} |",
        "",
        "## Epics",
        "",
        "| ID | Title | Status | Tasks | Completion |",
        "|----|-------|--------|-------|------------|",
    ]
    for node in epics:
        epic_counts = task_counts(node.tasks)
        lines.append(
            f"| [{node.epic.id}](./{node.epic.id}.md) | {node.epic.title} | {node.epic.status} | "
            f"{epic_counts['total']} | {epic_counts['completion_pct']}% |"
        )

    lines.extend([
        "",
        "## Notes",
        "",
        initiative.notes or "_No notes._",
        "",
    ])
    return "\n".join(lines)


def render_overview_md(
    hierarchy: Sequence[InitiativeNode],
    kpi_data: Optional[KpiData],
    *,
    program_name: str = "Roadmap Program",
    program_owner: str = "",
    as_of: Optional[str] = None,
) -> str:
    all_tasks = [task for node in hierarchy for task in node.tasks]
    counts = task_counts(all_tasks)
    as_of = as_of or utc_timestamp()[:10]

    lines: List[str] = [
        f"# {program_name} - Status Overview",
        "",
        f"**Last Updated:** {as_of}",
    ]
    if program_owner:
        lines.append(f"**Program Owner:** {program_owner}")
    lines.extend([
        "",
        "## Program KPIs",
        "",
        "| KPI | Current | Target | Status |",
        "|-----|---------|--------|--------|",
    ])

    latest = kpi_data.latest if kpi_data else None
    if kpi_data and kpi_data.targets:
        for target in kpi_data.targets:
            value = latest.metrics.get(target.key) if latest else None
            display = f"{value}{target.unit}" if value is not None else "No data"
            if target.target is not None:
                comparator = ">= " if target.direction == "above" else "<= "
                goal = f"{comparator}{target.target}{target.unit}"
            else:
                goal = "Increasing" if target.direction == "above" else "Decreasing"
            lines.append(f"| {target.name} | {display} | {goal} | - |")
    else:
        lines.append("| _No KPI targets defined_ | - | - | - |")

    lines.extend([
        "",
        "## Roadmap Health",
        "",
        f"- **Total Tasks:** {counts['total']}",
        f"- **Completed:** {counts['Complete']} ({counts['completion_pct']}%)",
        f"- **In Progress:** {counts['In Progress']}",
        f"- **Blocked:** {counts['Blocked']}",
        f"- **Not Started:** {counts['Not Started']}",
        "",
        "## Initiative Summary",
        "",
        "| Initiative | Completion | Status | Epics |",
        "|-----------|-----------|--------|-------|",
    ])
    for node in hierarchy:
        tasks = node.tasks
        done = sum(1 for task in tasks if task.status == "Complete")
        lines.append(
            f"| [{node.initiative.id}: {node.initiative.title}](./{node.initiative.id}/initiative.md) | "
            f"{percentage(done, len(tasks))}% | {node.initiative.status} | {len(node.epics)} |"
        )

    lines.extend([
        "",
        "## Recent Changes",
        "",
        "_No AI analysis has been run yet. Changes will be summarized here after the first weekly analysis._",
        "",
        "## Key Decisions Needed",
        "",
        "_Will be populated by AI analysis._",
        "",
    ])
    return "\n".join(lines)


# ---------------------------------------------------------------------------
# Recommendations report
# ---------------------------------------------------------------------------


def render_recommendations_md(
    week: str,
    analysis: AnalysisOutput,
    *,
    model: str = "",
    generated_at: Optional[str] = None,
) -> str:
    """Render an analysis cycle as a reviewable recommendations report.

    Every recommendation starts unapproved; reviewers tick the checkbox of
    the ones they want applied.
    """
    lines: List[str] = [
        f"# Roadmap Recommendations - Week {week}",
        "",
        f"**Generated:** {generated_at or utc_timestamp()}",
        f"**Analysis Period:** {week}",
    ]
    if model:
        lines.append(f"**Model:** {model}")
    lines.extend([
        "",
        "## Executive Summary",
        "",
        analysis.executive_summary,
        "",
        "## KPI Assessment",
        "",
        "| KPI | Current | Target | Status | Trend |",
        "|-----|---------|--------|--------|-------|",
    ])
    for kpi in analysis.kpi_assessment:
        current = str(kpi.current_value) if kpi.current_value is not None else "No data"
        target = str(kpi.target) if kpi.target is not None else "-"
        lines.append(f"| {kpi.key} | {current} | {target} | {kpi.status} | {kpi.trend} |")

    lines.extend(["", "## Recommended Changes", ""])
    for number, rec in enumerate(analysis.recommendations, start=1):
        lines.extend([
            f"### {number}. {rec.title}",
            "- [ ] **Approved**",
            f"- **ID:** {rec.id}",
            f"- **Type:** `{rec.type}`",
            f"- **Affects:** {rec.affects}",
            f"- **Current:** {_one_line(rec.current_state)}",
            f"- **Proposed:** {_one_line(rec.proposed_change)}",
            f"- **Rationale:** {_one_line(rec.rationale)}",
            f"- **KPI Impact:** {_one_line(rec.kpi_impact) or 'None'}",
            f"- **Confidence:** {rec.confidence}",
            "",
        ])

    if analysis.observations:
        lines.extend(["## Observations (No Action Required)", ""])
        lines.extend(f"- {observation}" for observation in analysis.observations)
        lines.append("")

    lines.extend(["---", APPROVAL_FOOTER, ""])
    return "\n".join(lines)


def _one_line(value: Optional[str]) -> str:
    # Field values are read back line by line, so they must not wrap.
    return " ".join((value or "").split())


def append_weekly_log(existing: str, week: str, update: WorkstreamUpdate) -> str:
    """Insert a weekly entry directly under the Weekly Log heading."""
    entry: List[str] = [
        f"### Week {week}",
        f"**Summary:** {update.current_state_summary}",
        "",
    ]
    if update.observations:
        entry.extend(f"- {observation}" for observation in update.observations)
    else:
        entry.append("- No notable changes this week.")
    if update.risks:
        entry.append("")
        entry.extend(f"- **Risk:** {risk}" for risk in update.risks)
    entry.append("")

    index = existing.find(WEEKLY_LOG_HEADING)
    if index == -1:
        return existing + "\n" + "\n".join(entry)

    content = existing.replace(WEEKLY_LOG_PLACEHOLDER, "")
    after_heading = index + len(WEEKLY_LOG_HEADING)
    next_line = content.find("\n", after_heading)
    insert_at = after_heading if next_line == -1 else next_line + 1
    return content[:insert_at] + "\n" + "\n".join(entry) + content[insert_at:]
