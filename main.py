"""MCP server exposing the weekly roadmap cycle as tools."""

from __future__ import annotations

import os
from pathlib import Path
from typing import Any, Dict, List, Optional

from mcp.server.fastmcp import FastMCP

from roadmapkit import RoadmapWorkflow, RoadmapWorkspace, setup_logging

mcp = FastMCP("roadmapkit")


PROJECT_MARKERS = ("data/roadmap.json", RoadmapWorkspace.DEFAULT_TABULAR_PATH)
SERVER_ROOT = Path(__file__).resolve().parent


def _candidate_bases() -> List[Path]:
    cwd = Path.cwd().resolve()
    bases: List[Path] = [cwd]
    bases.extend(cwd.parents)
    if SERVER_ROOT not in bases:
        bases.append(SERVER_ROOT)
    seen: set[Path] = set()
    ordered: List[Path] = []
    for base in bases:
        if base not in seen:
            seen.add(base)
            ordered.append(base)
    return ordered


def _locate_workspace_root() -> Optional[Path]:
    for base in _candidate_bases():
        for marker in PROJECT_MARKERS:
            if (base / marker).exists():
                return base
    return None


def _resolve_root(root: Optional[str]) -> Path:
    if root:
        resolved = Path(root).expanduser().resolve()
        if not resolved.exists():
            raise ValueError(f"Provided root '{root}' does not exist.")
        return resolved

    env_root = os.getenv(RoadmapWorkspace.ROOT_ENV)
    if env_root:
        env_path = Path(env_root).expanduser().resolve()
        if not env_path.exists():
            raise ValueError(
                f"Environment variable {RoadmapWorkspace.ROOT_ENV} points to '{env_root}', which does not exist."
            )
        return env_path

    detected_root = _locate_workspace_root()
    if detected_root:
        return detected_root

    raise ValueError(
        "Unable to determine project root automatically. Provide the 'root' argument when calling the tool "
        f"or set the {RoadmapWorkspace.ROOT_ENV} environment variable."
    )


def _workflow(root: Optional[str]) -> RoadmapWorkflow:
    return RoadmapWorkflow(_resolve_root(root))


@mcp.tool()
def generate_workstreams(force: bool = False, root: Optional[str] = None) -> Dict[str, Any]:
    """STEP 1: Seed data/roadmap.json and the workstream narratives from the roadmap CSV.
    Existing narrative files are kept unless force is true. Initializes the KPI,
    analysis-history and input-index stores when they are missing."""

    return _workflow(root).generate_workstreams(force=force)


@mcp.tool()
def process_inputs(root: Optional[str] = None) -> Dict[str, Any]:
    """STEP 2: Index new Markdown inputs under inputs/ (templates/ is skipped).
    Reports files that still look like unfilled templates."""

    return _workflow(root).process_inputs()


@mcp.tool()
def update_kpis(week: Optional[str] = None, root: Optional[str] = None) -> Dict[str, Any]:
    """STEP 3: Append the KPI snapshot for a week (YYYY-WXX, defaults to the current week).
    Values come from inputs/weekly/<week>/status.md plus task counts from the CSV."""

    return _workflow(root).update_kpis(week)


@mcp.tool()
def analyze(week: Optional[str] = None, dry_run: bool = False, root: Optional[str] = None) -> Dict[str, Any]:
    """STEP 4: Run the weekly analysis and write recommendations/latest.md.
    Requires ANTHROPIC_API_KEY. With dry_run the recommendations are returned but nothing is written."""

    return _workflow(root).analyze(week, dry_run=dry_run)


@mcp.tool()
def recommendation_status(report_path: Optional[str] = None, root: Optional[str] = None) -> Dict[str, Any]:
    """STEP 5: List the recommendations of a report and which ones are approved.
    Defaults to recommendations/latest.md. Approve a recommendation by ticking `- [x] **Approved**`."""

    return _workflow(root).recommendation_status(report_path)


@mcp.tool()
def apply_recommendations(report_path: Optional[str] = None, root: Optional[str] = None) -> Dict[str, Any]:
    """STEP 6: Apply approved recommendations to the roadmap CSV and data/roadmap.json.
    Nothing is written unless at least one recommendation applies. Each approved
    recommendation is reported as applied or skipped with a reason."""

    return _workflow(root).apply_recommendations(report_path)


@mcp.tool()
def workspace_status(root: Optional[str] = None) -> Dict[str, Any]:
    """Summarize which stores and reports exist in the workspace."""

    return _workflow(root).status()


@mcp.tool()
def workflow_guide() -> Dict[str, Any]:
    """Get the weekly roadmap cycle in recommended order."""

    return RoadmapWorkflow(SERVER_ROOT).get_workflow_guide()


@mcp.resource("roadmapkit://recommendations/latest")
def resource_latest_recommendations() -> str:
    """The most recent recommendations report."""

    try:
        workspace = RoadmapWorkspace(_resolve_root(None))
    except ValueError:
        return f"No project root detected. Launch tools with a 'root' argument or set {RoadmapWorkspace.ROOT_ENV}."

    if not workspace.latest_report_path.exists():
        return "No recommendations have been generated yet. Run the analyze tool first."
    return workspace.latest_report_path.read_text(encoding="utf-8")


if __name__ == "__main__":
    setup_logging(os.getenv("ROADMAPKIT_LOG_LEVEL", "INFO"), os.getenv("ROADMAPKIT_LOG_FILE"))
    mcp.run(transport="stdio")
