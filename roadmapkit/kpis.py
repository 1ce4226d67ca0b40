"""KPI extraction and roadmap-derived metrics."""

from __future__ import annotations

import re
from typing import Dict, Optional, Sequence

from .hierarchy import percentage
from .models import KpiData, KpiTarget, RoadmapItem, RoadmapMetrics

KPI_KEYS = ("payment_success_rate", "avg_cost_per_transaction", "pct_hotels_on_stack")

_KPI_PATTERNS = {
    "payment_success_rate": re.compile(r"Payment Success Rate[:\s]*([0-9.]+)", re.IGNORECASE),
    "avg_cost_per_transaction": re.compile(
        r"(?:Avg |Average )?Cost per Transaction[:\s]*\$?([0-9.]+)", re.IGNORECASE
    ),
    "pct_hotels_on_stack": re.compile(r"(?:% )?Hotels on (?:Payment )?Stack[:\s]*([0-9.]+)", re.IGNORECASE),
}


def parse_number(value: str) -> Optional[float]:
    cleaned = re.sub(r"[^0-9.\-]", "", value)
    try:
        return float(cleaned)
    except ValueError:
        return None


def extract_kpis_from_status(content: str) -> Dict[str, Optional[float]]:
    """Pull KPI values out of a weekly status document.

    Every key of ``KPI_KEYS`` is present in the result; values that the
    document does not mention are ``None``.
    """
    metrics: Dict[str, Optional[float]] = {key: None for key in KPI_KEYS}
    for key, pattern in _KPI_PATTERNS.items():
        match = pattern.search(content)
        if match:
            metrics[key] = parse_number(match.group(1))
    return metrics


def roadmap_metrics(items: Sequence[RoadmapItem]) -> RoadmapMetrics:
    """Status counts and schedule health over level-3 tasks."""
    tasks = [item for item in items if item.level == 3]
    total = len(tasks)
    completed = sum(1 for task in tasks if task.status == "Complete")
    in_progress = sum(1 for task in tasks if task.status == "In Progress")
    blocked = sum(1 for task in tasks if task.status == "Blocked")
    completion_pct = percentage(completed, total)

    health = "on-track"
    if blocked > 0:
        health = "behind"
    elif completion_pct < 20 and in_progress < total * 0.3:
        health = "at-risk"

    return RoadmapMetrics(
        total_tasks=total,
        completed=completed,
        in_progress=in_progress,
        blocked=blocked,
        not_started=total - completed - in_progress - blocked,
        completion_pct=completion_pct,
        schedule_health=health,
    )


def default_kpi_data() -> KpiData:
    return KpiData(
        targets=[
            KpiTarget(
                key="payment_success_rate",
                name="Payment Success Rate",
                target=75,
                unit="%",
                direction="above",
            ),
            KpiTarget(
                key="avg_cost_per_transaction",
                name="Avg Cost per Transaction",
                target=None,
                unit="$",
                direction="below",
            ),
            KpiTarget(
                key="pct_hotels_on_stack",
                name="% Hotels on Payment Stack",
                target=None,
                unit="%",
                direction="above",
            ),
        ],
    )
