"""Reading and writing the roadmap stores.

The tabular store is a CSV file with one row per roadmap item. The enriched
store is a JSON document mirroring it with the fields maintained by the
analysis cycle. KPI data, analysis history and the input index are plain JSON
documents handled by the generic helpers at the bottom of this module.
"""

from __future__ import annotations

import csv
import io
import json
import logging
from pathlib import Path
from typing import Any, Dict, List, Optional, Sequence

from .models import RoadmapDocument, RoadmapItem, normalize_impact, normalize_status

logger = logging.getLogger("roadmapkit.stores")

TABULAR_COLUMNS = (
    "id",
    "parent_id",
    "level",
    "title",
    "owner",
    "status",
    "start_date",
    "end_date",
    "effort_days",
    "impact",
    "dependency",
    "notes",
)


class StoreError(RuntimeError):
    """A store file could not be read or written."""


# ---------------------------------------------------------------------------
# Tabular store
# ---------------------------------------------------------------------------


def parse_tabular_text(text: str) -> List[RoadmapItem]:
    """Parse roadmap CSV text into rows, normalizing loose values."""
    reader = csv.DictReader(io.StringIO(text))
    if reader.fieldnames:
        reader.fieldnames = [name.strip() for name in reader.fieldnames]

    items: List[RoadmapItem] = []
    for line_number, raw in enumerate(reader, start=2):
        row = {key: (value or "").strip() for key, value in raw.items() if key is not None}
        if not any(row.values()):
            continue
        try:
            level = int(row.get("level") or 1)
        except ValueError:
            logger.warning(f"Line {line_number}: invalid level '{row.get('level')}', defaulting to 1")
            level = 1
        try:
            effort = int(row.get("effort_days") or 0)
        except ValueError:
            logger.warning(f"Line {line_number}: invalid effort_days '{row.get('effort_days')}', defaulting to 0")
            effort = 0
        dependency = row.get("dependency", "")
        items.append(
            RoadmapItem(
                id=row.get("id", ""),
                parent_id=row.get("parent_id") or None,
                level=level,
                title=row.get("title") or "Untitled",
                owner=row.get("owner", ""),
                status=normalize_status(row.get("status")),
                start_date=row.get("start_date", ""),
                end_date=row.get("end_date", ""),
                effort_days=effort,
                impact=normalize_impact(row.get("impact")),
                dependencies=[dep.strip() for dep in dependency.split(",") if dep.strip()],
                notes=row.get("notes", ""),
            )
        )
    return items


def render_tabular_text(items: Sequence[RoadmapItem]) -> str:
    """Serialize rows back to CSV in the fixed column order."""
    buffer = io.StringIO()
    writer = csv.DictWriter(buffer, fieldnames=TABULAR_COLUMNS, lineterminator="\n")
    writer.writeheader()
    for item in items:
        writer.writerow({
            "id": item.id,
            "parent_id": item.parent_id or "",
            "level": item.level,
            "title": item.title,
            "owner": item.owner,
            "status": item.status,
            "start_date": item.start_date,
            "end_date": item.end_date,
            "effort_days": item.effort_days or "",
            "impact": item.impact,
            "dependency": ", ".join(item.dependencies),
            "notes": item.notes,
        })
    return buffer.getvalue()


def read_tabular(path: Path) -> List[RoadmapItem]:
    """Read the roadmap CSV from disk."""
    try:
        text = Path(path).read_text(encoding="utf-8")
    except OSError as e:
        raise StoreError(f"Could not read roadmap CSV at {path}: {e}") from e
    return parse_tabular_text(text)


def write_tabular(path: Path, items: Sequence[RoadmapItem]) -> None:
    """Write the roadmap CSV to disk."""
    path = Path(path)
    try:
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(render_tabular_text(items), encoding="utf-8")
    except OSError as e:
        raise StoreError(f"Could not write roadmap CSV at {path}: {e}") from e
    logger.info(f"Wrote {len(items)} rows to {path}")


# ---------------------------------------------------------------------------
# JSON documents
# ---------------------------------------------------------------------------


def load_json(path: Path) -> Optional[Dict[str, Any]]:
    """Read a JSON document, returning ``None`` when the file does not exist."""
    path = Path(path)
    if not path.exists():
        return None
    try:
        return json.loads(path.read_text(encoding="utf-8"))
    except OSError as e:
        raise StoreError(f"Could not read {path}: {e}") from e
    except json.JSONDecodeError as e:
        raise StoreError(f"{path} is not valid JSON: {e}") from e


def save_json(path: Path, data: Dict[str, Any]) -> None:
    """Write a JSON document with two-space indentation."""
    path = Path(path)
    try:
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(json.dumps(data, indent=2) + "\n", encoding="utf-8")
    except OSError as e:
        raise StoreError(f"Could not write {path}: {e}") from e


def load_document(path: Path) -> Optional[RoadmapDocument]:
    """Load the enriched roadmap document, or ``None`` if it was never generated."""
    data = load_json(path)
    if data is None:
        return None
    try:
        return RoadmapDocument.from_dict(data)
    except (KeyError, TypeError, ValueError) as e:
        raise StoreError(f"{path} does not look like a roadmap document: {e}") from e


def save_document(path: Path, document: RoadmapDocument) -> None:
    save_json(path, document.to_dict())
    logger.info(f"Wrote {len(document.entries)} entries to {path}")
