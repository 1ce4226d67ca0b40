"""Data models for roadmapkit.

This module contains the core data structures used throughout roadmapkit:
roadmap rows and their enriched counterparts, recommendation records and
apply outcomes, the analysis-service response contract, and the small
supporting stores (KPI history, analysis history, input index).
"""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional


STATUSES = ("Complete", "In Progress", "Blocked", "Not Started")
IMPACTS = ("High", "Medium", "Low")
RISK_LEVELS = ("green", "yellow", "red")
CONFIDENCES = ("High", "Medium", "Low")

STATUS_CHANGE = "status_change"
DATE_CHANGE = "date_change"
NEW_TASK = "new_task"
RISK_FLAG = "risk_flag"
NOTE_UPDATE = "note_update"
DEPENDENCY_CHANGE = "dependency_change"

RECOMMENDATION_TYPES = (
    STATUS_CHANGE,
    DATE_CHANGE,
    NEW_TASK,
    RISK_FLAG,
    NOTE_UPDATE,
    DEPENDENCY_CHANGE,
)

KPI_STATUSES = ("above-target", "on-target", "below-target", "no-data")
SCHEDULE_HEALTH = ("on-track", "at-risk", "behind")
INPUT_TYPES = ("emails", "meetings", "status", "notes", "baseline")

DOCUMENT_VERSION = "1.0"


def utc_timestamp() -> str:
    """Current UTC time as an ISO-8601 string with a ``Z`` suffix."""
    return datetime.now(timezone.utc).isoformat(timespec="seconds").replace("+00:00", "Z")


def normalize_status(value: Optional[str]) -> str:
    """Map free-form status text onto one of ``STATUSES``."""
    if not value:
        return "Not Started"
    lowered = value.lower().strip()
    if "complete" in lowered:
        return "Complete"
    if "progress" in lowered:
        return "In Progress"
    if "block" in lowered:
        return "Blocked"
    return "Not Started"


def normalize_impact(value: Optional[str]) -> str:
    """Map free-form impact text onto one of ``IMPACTS``."""
    if not value:
        return "Medium"
    lowered = value.lower().strip()
    if "high" in lowered:
        return "High"
    if "low" in lowered:
        return "Low"
    return "Medium"


def higher_risk(current: Optional[str], candidate: Optional[str]) -> Optional[str]:
    """Return whichever risk level is more severe."""
    if candidate not in RISK_LEVELS:
        return current
    if current not in RISK_LEVELS:
        return candidate
    return candidate if RISK_LEVELS.index(candidate) > RISK_LEVELS.index(current) else current


# ---------------------------------------------------------------------------
# Item identifiers
# ---------------------------------------------------------------------------

_ITEM_ID_PATTERN = re.compile(r"^(?P<stream>[A-Za-z]+)-(?P<number>\d+)$")


@dataclass(frozen=True, slots=True)
class ItemId:
    """A roadmap id split into its program stream and sequence number.

    The sequence number encodes the hierarchy level: values below 10 are
    initiatives (``PAY-001``), multiples of 10 below 100 are epics
    (``PAY-010``) and everything else is a task (``PAY-013``). Every piece of
    code that needs level, parent or workstream path from an id shape goes
    through this class.
    """

    stream: str
    sequence: int

    @classmethod
    def parse(cls, value: Optional[str]) -> Optional["ItemId"]:
        if not value:
            return None
        match = _ITEM_ID_PATTERN.match(value.strip())
        if not match:
            return None
        return cls(stream=match.group("stream").upper(), sequence=int(match.group("number")))

    def __str__(self) -> str:
        return self.format(self.sequence)

    def format(self, sequence: int) -> str:
        return f"{self.stream}-{sequence:03d}"

    @property
    def level(self) -> int:
        if self.sequence < 10:
            return 1
        if self.sequence % 10 == 0 and self.sequence < 100:
            return 2
        return 3

    @property
    def initiative_id(self) -> str:
        return self.format(1)

    @property
    def epic_id(self) -> Optional[str]:
        if self.level == 1:
            return None
        return self.format((self.sequence // 10) * 10)

    @property
    def parent_id(self) -> Optional[str]:
        """Parent implied by the id shape alone."""
        if self.level == 1:
            return None
        if self.level == 2:
            return self.initiative_id
        return self.epic_id

    @property
    def workstream_path(self) -> str:
        if self.level == 1:
            return f"workstreams/{self}/initiative.md"
        if self.level == 2:
            return f"workstreams/{self.initiative_id}/{self}.md"
        return f"workstreams/{self.initiative_id}/{self.epic_id}.md"


# ---------------------------------------------------------------------------
# Roadmap rows
# ---------------------------------------------------------------------------


@dataclass(slots=True)
class RoadmapItem:
    """One row of the tabular roadmap store."""

    id: str
    parent_id: Optional[str] = None
    level: int = 1
    title: str = "Untitled"
    owner: str = ""
    status: str = "Not Started"
    start_date: str = ""  # M/D/YYYY or ISO
    end_date: str = ""
    effort_days: int = 0
    impact: str = "Medium"
    dependencies: List[str] = field(default_factory=list)
    notes: str = ""

    @property
    def item_id(self) -> Optional[ItemId]:
        return ItemId.parse(self.id)

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary representation."""
        return {
            "id": self.id,
            "parent_id": self.parent_id,
            "level": self.level,
            "title": self.title,
            "owner": self.owner,
            "status": self.status,
            "start_date": self.start_date,
            "end_date": self.end_date,
            "effort_days": self.effort_days,
            "impact": self.impact,
            "dependencies": list(self.dependencies),
            "notes": self.notes,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "RoadmapItem":
        """Create from dictionary representation."""
        return cls(**_item_kwargs(data))

    def validate(self) -> List[str]:
        """Validate the row and return any issues."""
        issues = []

        if not self.id:
            issues.append("Item ID is required")
        if self.level not in (1, 2, 3):
            issues.append(f"Level must be 1, 2 or 3, got: {self.level}")
        parsed = self.item_id
        if parsed and self.level in (1, 2, 3) and parsed.level != self.level:
            issues.append(f"Level {self.level} does not match id shape of '{self.id}' (level {parsed.level})")
        if self.level == 1 and self.parent_id:
            issues.append("Level 1 items cannot have a parent")
        if self.status not in STATUSES:
            issues.append(f"Invalid status: {self.status}")
        if self.impact not in IMPACTS:
            issues.append(f"Invalid impact: {self.impact}")
        if self.effort_days < 0:
            issues.append("Effort days cannot be negative")

        return issues


def _item_kwargs(data: Dict[str, Any]) -> Dict[str, Any]:
    return {
        "id": data["id"],
        "parent_id": data.get("parent_id") or None,
        "level": int(data.get("level") or 1),
        "title": data.get("title") or "Untitled",
        "owner": data.get("owner") or "",
        "status": data.get("status") or "Not Started",
        "start_date": data.get("start_date") or "",
        "end_date": data.get("end_date") or "",
        "effort_days": int(data.get("effort_days") or 0),
        "impact": data.get("impact") or "Medium",
        "dependencies": list(data.get("dependencies") or []),
        "notes": data.get("notes") or "",
    }


@dataclass(slots=True)
class RoadmapEntry(RoadmapItem):
    """A roadmap row plus the fields maintained by the analysis cycle."""

    workstream_file: Optional[str] = None
    last_ai_review: Optional[str] = None
    ai_risk_level: Optional[str] = None
    ai_observations: List[str] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary representation."""
        data = RoadmapItem.to_dict(self)
        data.update({
            "workstream_file": self.workstream_file,
            "last_ai_review": self.last_ai_review,
            "ai_risk_level": self.ai_risk_level,
            "ai_observations": list(self.ai_observations),
        })
        return data

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "RoadmapEntry":
        """Create from dictionary representation."""
        return cls(
            **_item_kwargs(data),
            workstream_file=data.get("workstream_file"),
            last_ai_review=data.get("last_ai_review"),
            ai_risk_level=data.get("ai_risk_level"),
            ai_observations=list(data.get("ai_observations") or []),
        )

    @classmethod
    def from_item(cls, item: RoadmapItem, workstream_file: Optional[str] = None) -> "RoadmapEntry":
        return cls(**_item_kwargs(item.to_dict()), workstream_file=workstream_file)

    def to_item(self) -> RoadmapItem:
        return RoadmapItem.from_dict(RoadmapItem.to_dict(self))

    def validate(self) -> List[str]:
        issues = RoadmapItem.validate(self)
        if self.ai_risk_level is not None and self.ai_risk_level not in RISK_LEVELS:
            issues.append(f"Invalid AI risk level: {self.ai_risk_level}")
        return issues


@dataclass(slots=True)
class RoadmapDocument:
    """The enriched roadmap JSON document."""

    version: str = DOCUMENT_VERSION
    last_updated: str = field(default_factory=utc_timestamp)
    generated_from_csv: str = field(default_factory=utc_timestamp)
    entries: List[RoadmapEntry] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "version": self.version,
            "last_updated": self.last_updated,
            "generated_from_csv": self.generated_from_csv,
            "entries": [entry.to_dict() for entry in self.entries],
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "RoadmapDocument":
        return cls(
            version=data.get("version", DOCUMENT_VERSION),
            last_updated=data.get("last_updated", ""),
            generated_from_csv=data.get("generated_from_csv", ""),
            entries=[RoadmapEntry.from_dict(entry) for entry in data.get("entries", [])],
        )

    def entry(self, item_id: str) -> Optional[RoadmapEntry]:
        for entry in self.entries:
            if entry.id == item_id:
                return entry
        return None

    def touch(self) -> None:
        self.last_updated = utc_timestamp()


# ---------------------------------------------------------------------------
# Recommendations
# ---------------------------------------------------------------------------


@dataclass(slots=True)
class RecommendationRecord:
    """A single proposed roadmap change produced by an analysis cycle."""

    id: str
    type: str
    affects: str
    title: str = ""
    current_state: str = ""
    proposed_change: str = ""
    rationale: str = ""
    kpi_impact: Optional[str] = None
    confidence: str = "Medium"
    approved: bool = False

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary representation."""
        return {
            "id": self.id,
            "title": self.title,
            "type": self.type,
            "affects": self.affects,
            "current_state": self.current_state,
            "proposed_change": self.proposed_change,
            "rationale": self.rationale,
            "kpi_impact": self.kpi_impact,
            "confidence": self.confidence,
            "approved": self.approved,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "RecommendationRecord":
        """Create from dictionary representation."""
        return cls(
            id=str(data["id"]),
            type=str(data["type"]),
            affects=str(data["affects"]),
            title=data.get("title") or "",
            current_state=data.get("current_state") or "",
            proposed_change=data.get("proposed_change") or "",
            rationale=data.get("rationale") or "",
            kpi_impact=data.get("kpi_impact") or None,
            confidence=data.get("confidence") or "Medium",
            approved=bool(data.get("approved", False)),
        )

    def validate(self) -> List[str]:
        """Validate the record and return any issues."""
        issues = []

        if not self.id:
            issues.append("Recommendation ID is required")
        if self.type not in RECOMMENDATION_TYPES:
            issues.append(f"Invalid recommendation type: {self.type}")
        if not self.affects:
            issues.append("Affected item ID is required")
        if self.confidence not in CONFIDENCES:
            issues.append(f"Invalid confidence: {self.confidence}")

        return issues


OUTCOME_APPLIED = "Applied"
OUTCOME_SKIPPED_NOT_FOUND = "SkippedNotFound"
OUTCOME_SKIPPED_UNPARSEABLE = "SkippedUnparseable"
OUTCOME_SKIPPED_BY_DESIGN = "SkippedByDesign"

OUTCOMES = (
    OUTCOME_APPLIED,
    OUTCOME_SKIPPED_NOT_FOUND,
    OUTCOME_SKIPPED_UNPARSEABLE,
    OUTCOME_SKIPPED_BY_DESIGN,
)


@dataclass(slots=True)
class ApplyOutcome:
    """What happened to one approved recommendation."""

    kind: str  # one of OUTCOMES
    recommendation_id: str
    affects: str
    type: str
    reason: str
    changes: Dict[str, Any] = field(default_factory=dict)

    @property
    def applied(self) -> bool:
        return self.kind == OUTCOME_APPLIED

    def to_dict(self) -> Dict[str, Any]:
        return {
            "kind": self.kind,
            "recommendation_id": self.recommendation_id,
            "affects": self.affects,
            "type": self.type,
            "reason": self.reason,
            "changes": dict(self.changes),
            "applied": self.applied,
        }


@dataclass(slots=True)
class ApplyReport:
    """Per-record outcomes of one apply run."""

    outcomes: List[ApplyOutcome] = field(default_factory=list)
    persisted: bool = False

    @property
    def approved(self) -> int:
        return len(self.outcomes)

    @property
    def applied(self) -> int:
        return sum(1 for outcome in self.outcomes if outcome.applied)

    @property
    def skipped(self) -> int:
        return self.approved - self.applied

    def by_kind(self, kind: str) -> List[ApplyOutcome]:
        return [outcome for outcome in self.outcomes if outcome.kind == kind]

    def summary(self) -> Dict[str, int]:
        return {
            "approved": self.approved,
            "applied": self.applied,
            "skipped": self.skipped,
        }

    def to_dict(self) -> Dict[str, Any]:
        return {
            **self.summary(),
            "persisted": self.persisted,
            "outcomes": [outcome.to_dict() for outcome in self.outcomes],
        }


# ---------------------------------------------------------------------------
# Analysis service contract
# ---------------------------------------------------------------------------


@dataclass(slots=True)
class KpiAssessment:
    key: str
    current_value: Optional[float]
    target: Optional[float]
    status: str
    trend: str

    def to_dict(self) -> Dict[str, Any]:
        return {
            "key": self.key,
            "current_value": self.current_value,
            "target": self.target,
            "status": self.status,
            "trend": self.trend,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "KpiAssessment":
        return cls(
            key=str(data["key"]),
            current_value=data.get("current_value"),
            target=data.get("target"),
            status=data.get("status") or "no-data",
            trend=data.get("trend") or "",
        )


@dataclass(slots=True)
class WorkstreamUpdate:
    workstream_id: str
    current_state_summary: str
    observations: List[str] = field(default_factory=list)
    risks: List[str] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "workstream_id": self.workstream_id,
            "current_state_summary": self.current_state_summary,
            "observations": list(self.observations),
            "risks": list(self.risks),
        }

    @classmethod
    def from_dict(cls, workstream_id: str, data: Dict[str, Any]) -> "WorkstreamUpdate":
        return cls(
            workstream_id=data.get("workstream_id") or workstream_id,
            current_state_summary=data.get("current_state_summary") or data.get("summary") or "",
            observations=[str(obs) for obs in data.get("observations") or []],
            risks=[str(risk) for risk in data.get("risks") or []],
        )


@dataclass(slots=True)
class AnalysisOutput:
    """Structured response of one analysis cycle."""

    executive_summary: str
    kpi_assessment: List[KpiAssessment] = field(default_factory=list)
    recommendations: List[RecommendationRecord] = field(default_factory=list)
    workstream_updates: Dict[str, WorkstreamUpdate] = field(default_factory=dict)
    observations: List[str] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "executive_summary": self.executive_summary,
            "kpi_assessment": [kpi.to_dict() for kpi in self.kpi_assessment],
            "recommendations": [rec.to_dict() for rec in self.recommendations],
            "workstream_updates": {key: update.to_dict() for key, update in self.workstream_updates.items()},
            "observations": list(self.observations),
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "AnalysisOutput":
        return cls(
            executive_summary=data["executive_summary"],
            kpi_assessment=[KpiAssessment.from_dict(kpi) for kpi in data["kpi_assessment"]],
            recommendations=[RecommendationRecord.from_dict(rec) for rec in data["recommendations"]],
            workstream_updates={
                key: WorkstreamUpdate.from_dict(key, value)
                for key, value in data["workstream_updates"].items()
            },
            observations=[str(obs) for obs in data["observations"]],
        )

    def recommendations_for(self, item_id: str) -> List[RecommendationRecord]:
        return [rec for rec in self.recommendations if rec.affects == item_id]


# ---------------------------------------------------------------------------
# KPI tracking, analysis history and input index
# ---------------------------------------------------------------------------


@dataclass(slots=True)
class KpiTarget:
    key: str
    name: str
    target: Optional[float]
    unit: str
    direction: str  # 'above' or 'below'

    def to_dict(self) -> Dict[str, Any]:
        return {
            "key": self.key,
            "name": self.name,
            "target": self.target,
            "unit": self.unit,
            "direction": self.direction,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "KpiTarget":
        return cls(
            key=data["key"],
            name=data.get("name", data["key"]),
            target=data.get("target"),
            unit=data.get("unit", ""),
            direction=data.get("direction", "above"),
        )


@dataclass(slots=True)
class RoadmapMetrics:
    total_tasks: int = 0
    completed: int = 0
    in_progress: int = 0
    blocked: int = 0
    not_started: int = 0
    completion_pct: int = 0
    schedule_health: str = "on-track"

    def to_dict(self) -> Dict[str, Any]:
        return {
            "total_tasks": self.total_tasks,
            "completed": self.completed,
            "in_progress": self.in_progress,
            "blocked": self.blocked,
            "not_started": self.not_started,
            "completion_pct": self.completion_pct,
            "schedule_health": self.schedule_health,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "RoadmapMetrics":
        return cls(**{key: data[key] for key in cls.__dataclass_fields__ if key in data})


@dataclass(slots=True)
class KpiSnapshot:
    week: str  # "YYYY-WXX"
    date: str
    metrics: Dict[str, Optional[float]]
    roadmap_metrics: RoadmapMetrics
    notes: str = ""

    def to_dict(self) -> Dict[str, Any]:
        return {
            "week": self.week,
            "date": self.date,
            "metrics": dict(self.metrics),
            "roadmap_metrics": self.roadmap_metrics.to_dict(),
            "notes": self.notes,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "KpiSnapshot":
        return cls(
            week=data["week"],
            date=data.get("date", ""),
            metrics=dict(data.get("metrics", {})),
            roadmap_metrics=RoadmapMetrics.from_dict(data.get("roadmap_metrics", {})),
            notes=data.get("notes", ""),
        )


@dataclass(slots=True)
class KpiData:
    version: str = DOCUMENT_VERSION
    targets: List[KpiTarget] = field(default_factory=list)
    history: List[KpiSnapshot] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "version": self.version,
            "targets": [target.to_dict() for target in self.targets],
            "history": [snapshot.to_dict() for snapshot in self.history],
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "KpiData":
        return cls(
            version=data.get("version", DOCUMENT_VERSION),
            targets=[KpiTarget.from_dict(target) for target in data.get("targets", [])],
            history=[KpiSnapshot.from_dict(snapshot) for snapshot in data.get("history", [])],
        )

    def snapshot_for(self, week: str) -> Optional[KpiSnapshot]:
        for snapshot in self.history:
            if snapshot.week == week:
                return snapshot
        return None

    @property
    def latest(self) -> Optional[KpiSnapshot]:
        return self.history[-1] if self.history else None


@dataclass(slots=True)
class AnalysisRecord:
    week: str
    timestamp: str
    input_tokens: int
    output_tokens: int
    thinking_tokens: int
    cost_estimate: float
    recommendation_count: int
    recommendations_file: str

    def to_dict(self) -> Dict[str, Any]:
        return {
            "week": self.week,
            "timestamp": self.timestamp,
            "input_tokens": self.input_tokens,
            "output_tokens": self.output_tokens,
            "thinking_tokens": self.thinking_tokens,
            "cost_estimate": self.cost_estimate,
            "recommendation_count": self.recommendation_count,
            "recommendations_file": self.recommendations_file,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "AnalysisRecord":
        return cls(**{key: data[key] for key in cls.__dataclass_fields__})


@dataclass(slots=True)
class AnalysisHistory:
    version: str = DOCUMENT_VERSION
    runs: List[AnalysisRecord] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return {"version": self.version, "runs": [run.to_dict() for run in self.runs]}

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "AnalysisHistory":
        return cls(
            version=data.get("version", DOCUMENT_VERSION),
            runs=[AnalysisRecord.from_dict(run) for run in data.get("runs", [])],
        )


@dataclass(slots=True)
class InputRecord:
    week: str
    file: str
    type: str  # one of INPUT_TYPES
    indexed_at: str
    size_bytes: int

    def to_dict(self) -> Dict[str, Any]:
        return {
            "week": self.week,
            "file": self.file,
            "type": self.type,
            "indexed_at": self.indexed_at,
            "size_bytes": self.size_bytes,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "InputRecord":
        return cls(**{key: data[key] for key in cls.__dataclass_fields__})


@dataclass(slots=True)
class InputIndex:
    version: str = DOCUMENT_VERSION
    inputs: List[InputRecord] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return {"version": self.version, "inputs": [record.to_dict() for record in self.inputs]}

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "InputIndex":
        return cls(
            version=data.get("version", DOCUMENT_VERSION),
            inputs=[InputRecord.from_dict(record) for record in data.get("inputs", [])],
        )

    def known_files(self) -> set[str]:
        return {record.file for record in self.inputs}


# ---------------------------------------------------------------------------
# Weekly cycle
# ---------------------------------------------------------------------------


@dataclass(slots=True)
class WorkflowStep:
    """Represents a single step in the weekly roadmap cycle."""

    step_number: int
    name: str
    tool_name: str
    description: str
    purpose: str
    prerequisites: List[str] = field(default_factory=list)
    expected_output: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary representation."""
        return {
            "step_number": self.step_number,
            "name": self.name,
            "tool_name": self.tool_name,
            "description": self.description,
            "purpose": self.purpose,
            "prerequisites": list(self.prerequisites),
            "expected_output": self.expected_output,
        }

    def can_execute(self, completed_steps: List[str]) -> bool:
        """Check if this step can be executed based on prerequisites."""
        return all(prereq in completed_steps for prereq in self.prerequisites)


WORKFLOW_STEPS = [
    WorkflowStep(
        step_number=1,
        name="Workstream Generation",
        tool_name="generate_workstreams",
        description="Seed the enriched roadmap and workstream narratives from the roadmap CSV",
        purpose="Create data/roadmap.json and the per-initiative and per-epic markdown files",
        expected_output="data/roadmap.json and workstreams/**.md"
    ),
    WorkflowStep(
        step_number=2,
        name="Input Processing",
        tool_name="process_inputs",
        description="Index weekly emails, meeting notes and status updates",
        purpose="Track which inputs exist for each week and flag unfilled templates",
        prerequisites=["Workstream Generation"],
        expected_output="data/input-index.json"
    ),
    WorkflowStep(
        step_number=3,
        name="KPI Update",
        tool_name="update_kpis",
        description="Append the weekly KPI snapshot",
        purpose="Record KPI values from status.md and roadmap-derived metrics",
        prerequisites=["Input Processing"],
        expected_output="data/kpis.json"
    ),
    WorkflowStep(
        step_number=4,
        name="Analysis",
        tool_name="analyze",
        description="Run the weekly analysis cycle against the roadmap and inputs",
        purpose="Produce the recommendations report and refresh AI fields",
        prerequisites=["KPI Update"],
        expected_output="recommendations/archive/{week}.md and recommendations/latest.md"
    ),
    WorkflowStep(
        step_number=5,
        name="Review",
        tool_name="recommendation_status",
        description="Tick the Approved box on recommendations that should be applied",
        purpose="Keep a human in the loop for every roadmap change",
        prerequisites=["Analysis"],
        expected_output="Edited recommendations report"
    ),
    WorkflowStep(
        step_number=6,
        name="Apply",
        tool_name="apply_recommendations",
        description="Apply approved recommendations to the roadmap CSV and enriched JSON",
        purpose="Merge approved changes into both stores",
        prerequisites=["Review"],
        expected_output="Updated roadmap CSV and data/roadmap.json"
    ),
]
