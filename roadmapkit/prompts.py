"""Prompt construction for the weekly analysis cycle."""

from __future__ import annotations

import json
from dataclasses import dataclass, field
from typing import List, Optional, Sequence, Tuple

from .models import KpiData, KpiTarget, RoadmapDocument

# (filename, content)
Document = Tuple[str, str]

RESPONSE_SCHEMA = """{
  "executive_summary": "string - 2-3 sentences on program health",
  "kpi_assessment": [
    {
      "key": "payment_success_rate",
      "current_value": number | null,
      "target": number | null,
      "status": "above-target" | "on-target" | "below-target" | "no-data",
      "trend": "string describing direction"
    }
  ],
  "recommendations": [
    {
      "id": "REC-YYYY-WXX-001",
      "title": "string",
      "type": "status_change" | "date_change" | "new_task" | "risk_flag" | "note_update" | "dependency_change",
      "affects": "PAY-013",
      "current_state": "description",
      "proposed_change": "description",
      "rationale": "string citing specific input evidence",
      "kpi_impact": "string or null",
      "confidence": "High" | "Medium" | "Low"
    }
  ],
  "workstream_updates": {
    "PAY-010": {
      "workstream_id": "PAY-010",
      "current_state_summary": "string",
      "observations": ["string"],
      "risks": ["string"]
    }
  },
  "observations": ["string - notable insights that don't require action"]
}"""

RULES = """RULES:
- You RECOMMEND changes only. You do not have authority to apply them.
- Every recommendation must cite specific evidence from the weekly inputs.
- Use the exact roadmap item IDs (e.g., PAY-013) when referencing tasks.
- Assign a confidence level (High/Medium/Low) to each recommendation.
- Flag items as at-risk if inputs suggest timeline slippage or blockers.
- When you see new information that contradicts existing roadmap data, flag it explicitly.
- Preserve existing context in workstream files; append new observations, do not overwrite history.
- Write dates in proposed changes as M/D/YYYY and statuses as one of: Complete, In Progress, Blocked, Not Started.
- Be specific and actionable. "Consider reviewing timeline" is not helpful. "Extend PAY-013 end_date from 2/7/2025 to 2/21/2025 based on the Feb 5 meeting discussion of integration delays" is helpful."""


def _describe_target(index: int, target: KpiTarget) -> str:
    if target.target is not None:
        comparator = ">=" if target.direction == "above" else "<="
        goal = f"{comparator} {target.target}{target.unit}"
    else:
        goal = "increasing trend" if target.direction == "above" else "decreasing trend"
    return f"{index}. {target.name} - Target: {goal}"


def build_system_prompt(
    program_name: str,
    targets: Sequence[KpiTarget] = (),
    program_owner: str = "",
) -> str:
    """System prompt describing the analyst role and the response contract."""
    lines = [
        f"You are an AI-powered program management analyst for the {program_name}. Your role is to:",
        "",
        "1. Analyze weekly inputs (emails, meeting notes, status updates) against the current roadmap",
        "2. Identify discrepancies between planned and actual progress",
        "3. Recommend specific, actionable changes to the roadmap",
        "4. Track program KPIs and flag concerns",
        "5. Maintain workstream-level progress narratives",
        "",
    ]
    if program_owner:
        lines.extend([f"Program owner: {program_owner}", ""])
    if targets:
        lines.append("KEY KPIs YOU TRACK:")
        lines.extend(_describe_target(index, target) for index, target in enumerate(targets, start=1))
        lines.append("")
    lines.extend([
        RULES,
        "",
        "OUTPUT FORMAT:",
        "Return a JSON object with exactly these keys:",
        RESPONSE_SCHEMA,
        "",
        "Return ONLY the JSON object, no markdown fencing or other text.",
    ])
    return "\n".join(lines)


@dataclass(slots=True)
class AnalysisContext:
    """Everything the analysis prompt is built from."""

    week: str
    csv_text: str
    document: Optional[RoadmapDocument] = None
    kpi_data: Optional[KpiData] = None
    baseline_docs: List[Document] = field(default_factory=list)
    weekly_inputs: List[Document] = field(default_factory=list)
    prior_reports: List[Document] = field(default_factory=list)
    workstream_files: List[Document] = field(default_factory=list)
    program_owner: str = ""


def _document_sections(heading: str, documents: Sequence[Document]) -> List[str]:
    sections = [f"{heading}\n"]
    for filename, content in documents:
        sections.append(f"### {filename}\n\n{content}\n\n---\n")
    return sections


def _enriched_snapshot(document: RoadmapDocument) -> str:
    entries = [
        {
            "id": entry.id,
            "parent_id": entry.parent_id,
            "level": entry.level,
            "title": entry.title,
            "status": entry.status,
            "start_date": entry.start_date,
            "end_date": entry.end_date,
            "impact": entry.impact,
            "ai_risk_level": entry.ai_risk_level,
            "ai_observations": entry.ai_observations,
        }
        for entry in document.entries
    ]
    return json.dumps(entries, indent=2)


def build_analysis_prompt(context: AnalysisContext) -> str:
    """User prompt carrying the roadmap, KPI history and the week's documents."""
    week = context.week
    sections: List[str] = [
        f"## Analysis for Week {week}\n",
        "## Current Roadmap Data (CSV)\n\n```csv\n" + context.csv_text + "\n```\n",
    ]

    if context.document is not None:
        sections.append("## Enriched Roadmap (JSON)\n\n```json\n" + _enriched_snapshot(context.document) + "\n```\n")

    if context.kpi_data is not None:
        sections.append("## KPI History\n\n```json\n" + json.dumps(context.kpi_data.to_dict(), indent=2) + "\n```\n")

    if context.baseline_docs:
        sections.extend(_document_sections("## Baseline Documents", context.baseline_docs))

    if context.weekly_inputs:
        sections.extend(_document_sections(f"## This Week's Inputs ({week})", context.weekly_inputs))
    else:
        sections.append(
            f"## This Week's Inputs ({week})\n\nNo weekly inputs were provided. Analyze based on roadmap data, "
            "prior history, and baseline documents only.\n"
        )

    if context.prior_reports:
        sections.extend(_document_sections("## Prior Recommendations", context.prior_reports))

    if context.workstream_files:
        sections.extend(_document_sections("## Current Workstream Files", context.workstream_files))

    decision_maker = context.program_owner or "the program owner"
    sections.append(
        "---\n\n"
        f"Analyze all the above for week {week}. Focus on:\n\n"
        "1. What changed this week versus prior state?\n"
        "2. Are any items at risk of slipping their planned dates?\n"
        "3. Do the inputs reveal information that contradicts the current roadmap?\n"
        "4. Are the KPIs trending in the right direction?\n"
        "5. Are there dependency chains that need attention?\n"
        f"6. What decisions or actions should {decision_maker} prioritize this week?\n\n"
        "Return your analysis as a JSON object following the exact schema in your system prompt."
    )
    return "\n".join(sections)
