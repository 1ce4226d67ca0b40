"""Application of approved recommendations to the roadmap stores.

Both stores are loaded into a single :class:`RoadmapModel`. Each record is
parsed exactly once into a change set (field name -> new value); the model
writes that change set into the tabular row and the enriched entry, so the
two stores cannot disagree about what a recommendation meant. Problems with
individual records never raise: they come back as :class:`ApplyOutcome`
values so callers can count and report them.
"""

from __future__ import annotations

import copy
import logging
import re
from typing import Any, Callable, Dict, List, Optional, Sequence, Tuple

from .models import (
    DATE_CHANGE,
    DEPENDENCY_CHANGE,
    NEW_TASK,
    NOTE_UPDATE,
    OUTCOME_APPLIED,
    OUTCOME_SKIPPED_BY_DESIGN,
    OUTCOME_SKIPPED_NOT_FOUND,
    OUTCOME_SKIPPED_UNPARSEABLE,
    RISK_FLAG,
    STATUS_CHANGE,
    STATUSES,
    ApplyOutcome,
    ApplyReport,
    RecommendationRecord,
    RoadmapDocument,
    RoadmapEntry,
    RoadmapItem,
)
from .roadmapkit_logging import log_recommendation_outcome

logger = logging.getLogger("roadmapkit.applier")

_STATUS_PATTERN = re.compile("(" + "|".join(re.escape(status) for status in STATUSES) + ")", re.IGNORECASE)
_CANONICAL_STATUS = {status.lower(): status for status in STATUSES}
_DATE_PATTERN = re.compile(r"\d{1,2}/\d{1,2}/\d{4}")
_DEPENDENCY_PATTERN = re.compile(r"[A-Z]{3}-\d{3}")

_ROW_FIELDS = frozenset(RoadmapItem.__dataclass_fields__)
_ENTRY_FIELDS = frozenset(RoadmapEntry.__dataclass_fields__)


# ---------------------------------------------------------------------------
# proposed_change parsers
# ---------------------------------------------------------------------------


def parse_status(text: str) -> Optional[str]:
    """The status named earliest in ``text``, canonically cased."""
    match = _STATUS_PATTERN.search(text or "")
    if not match:
        return None
    return _CANONICAL_STATUS[match.group(1).lower()]


def parse_dates(text: str) -> List[str]:
    """All ``M/D/YYYY`` tokens in ``text``, in order."""
    return _DATE_PATTERN.findall(text or "")


def parse_dependencies(text: str) -> List[str]:
    """Distinct ``ABC-123`` style ids in ``text``, in order of first mention."""
    seen: List[str] = []
    for token in _DEPENDENCY_PATTERN.findall(text or ""):
        if token not in seen:
            seen.append(token)
    return seen


# ---------------------------------------------------------------------------
# Canonical model
# ---------------------------------------------------------------------------


class RoadmapModel:
    """The tabular rows and enriched entries of one roadmap, keyed by id.

    The model owns deep copies of what it was built from, so nothing the
    caller holds is mutated. ``to_items`` and ``to_document`` project the
    model back into the two store shapes, preserving each store's own row
    order and membership.
    """

    def __init__(self, items: Sequence[RoadmapItem], document: Optional[RoadmapDocument] = None):
        self._items: List[RoadmapItem] = [copy.deepcopy(item) for item in items]
        self._document: Optional[RoadmapDocument] = copy.deepcopy(document) if document is not None else None

        self._rows: Dict[str, RoadmapItem] = {}
        for item in self._items:
            self._rows.setdefault(item.id, item)

        self._entries: Dict[str, RoadmapEntry] = {}
        if self._document is not None:
            for entry in self._document.entries:
                self._entries.setdefault(entry.id, entry)
            missing = [item_id for item_id in self._rows if item_id not in self._entries]
            if missing:
                logger.warning(f"{len(missing)} roadmap item(s) have no enriched entry: {', '.join(missing[:5])}")

    @classmethod
    def from_stores(cls, items: Sequence[RoadmapItem], document: Optional[RoadmapDocument]) -> "RoadmapModel":
        return cls(items, document)

    def __contains__(self, item_id: str) -> bool:
        return item_id in self._rows

    def row(self, item_id: str) -> Optional[RoadmapItem]:
        return self._rows.get(item_id)

    def entry(self, item_id: str) -> Optional[RoadmapEntry]:
        return self._entries.get(item_id)

    def update(self, item_id: str, changes: Dict[str, Any]) -> None:
        """Write one change set into both the row and the enriched entry."""
        row = self._rows[item_id]
        entry = self._entries.get(item_id)
        for name, value in changes.items():
            if name in _ROW_FIELDS:
                setattr(row, name, copy.deepcopy(value))
            if entry is not None and name in _ENTRY_FIELDS:
                setattr(entry, name, copy.deepcopy(value))

    def to_items(self) -> List[RoadmapItem]:
        return self._items

    def to_document(self) -> Optional[RoadmapDocument]:
        return self._document


# ---------------------------------------------------------------------------
# Per-type change builders
# ---------------------------------------------------------------------------


def _status_changes(record: RecommendationRecord) -> Optional[Dict[str, Any]]:
    status = parse_status(record.proposed_change)
    return {"status": status} if status else None


def _date_changes(record: RecommendationRecord) -> Optional[Dict[str, Any]]:
    dates = parse_dates(record.proposed_change)
    if len(dates) >= 2:
        return {"start_date": dates[0], "end_date": dates[1]}
    if len(dates) == 1:
        return {"end_date": dates[0]}
    return None


def _note_changes(record: RecommendationRecord) -> Optional[Dict[str, Any]]:
    return {"notes": record.proposed_change}


def _dependency_changes(record: RecommendationRecord) -> Optional[Dict[str, Any]]:
    dependencies = parse_dependencies(record.proposed_change)
    return {"dependencies": dependencies} if dependencies else None


def _risk_changes(record: RecommendationRecord) -> Optional[Dict[str, Any]]:
    return {"ai_risk_level": "red"}


CHANGE_BUILDERS: Dict[str, Callable[[RecommendationRecord], Optional[Dict[str, Any]]]] = {
    STATUS_CHANGE: _status_changes,
    DATE_CHANGE: _date_changes,
    NOTE_UPDATE: _note_changes,
    DEPENDENCY_CHANGE: _dependency_changes,
    RISK_FLAG: _risk_changes,
}


def _describe(record: RecommendationRecord, before: RoadmapItem, changes: Dict[str, Any]) -> str:
    if record.type == STATUS_CHANGE:
        return f"status '{before.status}' -> '{changes['status']}'"
    if record.type == DATE_CHANGE and "start_date" in changes:
        return (
            f"dates '{before.start_date} - {before.end_date}' -> "
            f"'{changes['start_date']} - {changes['end_date']}'"
        )
    if record.type == DATE_CHANGE:
        return f"end_date '{before.end_date}' -> '{changes['end_date']}'"
    if record.type == NOTE_UPDATE:
        return "notes updated"
    if record.type == DEPENDENCY_CHANGE:
        return f"dependencies -> [{', '.join(changes['dependencies'])}]"
    return "flagged as at-risk (enriched roadmap only)"


def _outcome(kind: str, record: RecommendationRecord, reason: str, changes: Optional[Dict[str, Any]] = None) -> ApplyOutcome:
    outcome = ApplyOutcome(
        kind=kind,
        recommendation_id=record.id,
        affects=record.affects,
        type=record.type,
        reason=reason,
        changes=dict(changes or {}),
    )
    if outcome.applied:
        logger.info(f"  {record.affects}: {reason}")
    else:
        logger.warning(f"  Skipped {record.id} ({record.type} -> {record.affects}): {reason}")
    log_recommendation_outcome(record.id, record.affects, kind, reason)
    return outcome


def apply_recommendation(model: RoadmapModel, record: RecommendationRecord) -> ApplyOutcome:
    """Apply one record to the model and report what happened."""
    row = model.row(record.affects)
    if row is None:
        return _outcome(
            OUTCOME_SKIPPED_NOT_FOUND,
            record,
            f"Item {record.affects} not found in roadmap CSV",
        )

    if record.type == NEW_TASK:
        return _outcome(
            OUTCOME_SKIPPED_BY_DESIGN,
            record,
            f"New task for {record.affects} is not applied automatically; add it to the CSV manually",
        )

    builder = CHANGE_BUILDERS.get(record.type)
    if builder is None:
        return _outcome(
            OUTCOME_SKIPPED_UNPARSEABLE,
            record,
            f"Unknown recommendation type '{record.type}'",
        )

    changes = builder(record)
    if changes is None:
        return _outcome(
            OUTCOME_SKIPPED_UNPARSEABLE,
            record,
            f"Could not apply {record.id} ({record.type}) - unrecognized format",
        )

    before = copy.deepcopy(row)
    model.update(record.affects, changes)
    return _outcome(OUTCOME_APPLIED, record, _describe(record, before, changes), changes)


def apply_recommendations(
    records: Sequence[RecommendationRecord],
    items: Sequence[RoadmapItem],
    document: Optional[RoadmapDocument],
) -> Tuple[List[RoadmapItem], Optional[RoadmapDocument], ApplyReport]:
    """Apply approved records to copies of both stores.

    Returns the updated rows, the updated enriched document (``None`` when
    none was given) and a report with one outcome per record, in input
    order. The inputs are left untouched and nothing is written to disk.
    """
    model = RoadmapModel.from_stores(items, document)
    report = ApplyReport()
    for record in records:
        report.outcomes.append(apply_recommendation(model, record))
    return model.to_items(), model.to_document(), report
