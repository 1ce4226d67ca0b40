"""Extraction of recommendation records from a recommendations report.

A report is a sequence of blocks, each opened by a ``### <n>. <title>``
heading and holding one ``- [ ] **Approved**`` checkbox plus labelled
``- **Label:** value`` lines. Parsing is split into three small steps: split
the text into blocks, read the labelled fields of a block, and turn the
fields into a record when the required ones are present.
"""

from __future__ import annotations

import logging
import re
from typing import Dict, List, Optional

from .models import RecommendationRecord

logger = logging.getLogger("roadmapkit.parser")

FIELD_LABELS: Dict[str, str] = {
    "ID": "id",
    "Type": "type",
    "Affects": "affects",
    "Current": "current_state",
    "Proposed": "proposed_change",
    "Rationale": "rationale",
    "KPI Impact": "kpi_impact",
    "Confidence": "confidence",
}

REQUIRED_FIELDS = ("id", "type", "affects")

# Blocks missing a required field are dropped without producing a record.
MISSING_REQUIRED_POLICY = "drop"

DEFAULT_CONFIDENCE = "Medium"

_BLOCK_SPLIT_PATTERN = re.compile(r"(?=### \d+\. )")
_HEADING_PATTERN = re.compile(r"### \d+\. (.+)")
_APPROVED_PATTERN = re.compile(r"- \[x\] \*\*Approved\*\*", re.IGNORECASE)
_FIELD_PATTERNS = {
    label: re.compile(rf"\*\*{re.escape(label)}:\*\*[ \t]*(.*)", re.IGNORECASE)
    for label in FIELD_LABELS
}


def split_blocks(text: str) -> List[str]:
    """Split a report into recommendation blocks, dropping any preamble."""
    return [chunk for chunk in _BLOCK_SPLIT_PATTERN.split(text) if _HEADING_PATTERN.match(chunk)]


def is_approved(block: str) -> bool:
    return bool(_APPROVED_PATTERN.search(block))


def block_title(block: str) -> str:
    match = _HEADING_PATTERN.match(block)
    return match.group(1).strip() if match else ""


def extract_fields(block: str) -> Dict[str, Optional[str]]:
    """Read every labelled field of a block.

    Keys are record attribute names; a label that is absent or has an empty
    value maps to ``None``. The first occurrence of a label wins.
    """
    fields: Dict[str, Optional[str]] = {}
    for label, attribute in FIELD_LABELS.items():
        match = _FIELD_PATTERNS[label].search(block)
        value = match.group(1).strip() if match else ""
        fields[attribute] = value or None
    if fields["type"]:
        fields["type"] = fields["type"].replace("`", "").strip() or None
    if fields["kpi_impact"] and fields["kpi_impact"].lower() == "none":
        fields["kpi_impact"] = None
    return fields


def missing_required(fields: Dict[str, Optional[str]]) -> List[str]:
    return [name for name in REQUIRED_FIELDS if not fields.get(name)]


def record_from_block(block: str) -> Optional[RecommendationRecord]:
    """Build a record from one block, or ``None`` if a required field is missing."""
    fields = extract_fields(block)
    missing = missing_required(fields)
    if missing:
        if MISSING_REQUIRED_POLICY == "drop":
            logger.debug(f"Dropping recommendation block '{block_title(block)}': missing {', '.join(missing)}")
        return None
    return RecommendationRecord(
        id=fields["id"],
        type=fields["type"],
        affects=fields["affects"],
        title=block_title(block),
        current_state=fields["current_state"] or "",
        proposed_change=fields["proposed_change"] or "",
        rationale=fields["rationale"] or "",
        kpi_impact=fields["kpi_impact"],
        confidence=fields["confidence"] or DEFAULT_CONFIDENCE,
        approved=is_approved(block),
    )


def parse_all_recommendations(text: str) -> List[RecommendationRecord]:
    """Every well-formed block in the report, approved or not."""
    records: List[RecommendationRecord] = []
    for block in split_blocks(text):
        record = record_from_block(block)
        if record is not None:
            records.append(record)
    return records


def parse_recommendations(text: str) -> List[RecommendationRecord]:
    """Approved records in report order.

    Unchecked blocks are skipped before their fields are read. Duplicate IDs
    are kept.
    """
    records: List[RecommendationRecord] = []
    for block in split_blocks(text):
        if not is_approved(block):
            continue
        record = record_from_block(block)
        if record is not None:
            records.append(record)
    return records
