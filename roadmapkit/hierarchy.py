"""Initiative -> Epic -> Task grouping of the flat roadmap table."""

from __future__ import annotations

import math
from dataclasses import dataclass, field
from typing import Dict, Iterable, List, Optional, Sequence

from .models import ItemId, RoadmapItem, STATUSES


@dataclass(slots=True)
class EpicNode:
    epic: RoadmapItem
    tasks: List[RoadmapItem] = field(default_factory=list)


@dataclass(slots=True)
class InitiativeNode:
    initiative: RoadmapItem
    epics: List[EpicNode] = field(default_factory=list)

    @property
    def tasks(self) -> List[RoadmapItem]:
        return [task for node in self.epics for task in node.tasks]


def build_hierarchy(items: Sequence[RoadmapItem]) -> List[InitiativeNode]:
    """Group rows into initiatives, epics and tasks by ``parent_id``.

    Only the declared ``level`` and ``parent_id`` are consulted. Rows whose
    parent does not resolve to an item one level up are left out of the tree.
    """
    epics_by_parent: Dict[str, List[RoadmapItem]] = {}
    tasks_by_parent: Dict[str, List[RoadmapItem]] = {}
    for item in items:
        if item.level == 2 and item.parent_id:
            epics_by_parent.setdefault(item.parent_id, []).append(item)
        elif item.level == 3 and item.parent_id:
            tasks_by_parent.setdefault(item.parent_id, []).append(item)

    tree: List[InitiativeNode] = []
    for initiative in items:
        if initiative.level != 1:
            continue
        node = InitiativeNode(initiative=initiative)
        for epic in epics_by_parent.get(initiative.id, []):
            node.epics.append(EpicNode(epic=epic, tasks=list(tasks_by_parent.get(epic.id, []))))
        tree.append(node)
    return tree


def resolve_parent_id(item: RoadmapItem) -> Optional[str]:
    """Declared parent, falling back to the one implied by the id shape."""
    if item.parent_id:
        return item.parent_id
    parsed = ItemId.parse(item.id)
    return parsed.parent_id if parsed else None


def workstream_file_for(item: RoadmapItem, items: Iterable[RoadmapItem]) -> Optional[str]:
    """Path of the narrative file that documents ``item``.

    Level 1 items own ``initiative.md``; level 2 items own ``<epic>.md`` under
    their initiative directory. Tasks are described in their epic's file and
    have no file of their own.
    """
    if item.level == 1:
        return f"workstreams/{item.id}/initiative.md"
    if item.level == 2:
        parent_id = resolve_parent_id(item)
        known = {other.id for other in items}
        if parent_id and parent_id in known:
            return f"workstreams/{parent_id}/{item.id}.md"
    return None


def task_counts(tasks: Sequence[RoadmapItem]) -> Dict[str, int]:
    """Count tasks per status plus a rounded completion percentage."""
    counts = {status: 0 for status in STATUSES}
    for task in tasks:
        counts[task.status] = counts.get(task.status, 0) + 1
    total = len(tasks)
    counts["total"] = total
    counts["completion_pct"] = percentage(counts["Complete"], total)
    return counts


def percentage(part: int, total: int) -> int:
    """Whole-number percentage, halves rounded up; 0 when ``total`` is 0."""
    if total <= 0:
        return 0
    return math.floor(part / total * 100 + 0.5)
