"""Command-line entry point for the weekly roadmap cycle."""

from __future__ import annotations

import argparse
import json
import sys
from typing import Any, Dict, List, Optional

from .roadmapkit_logging import setup_logging
from .workflow import RoadmapWorkflow


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="roadmapkit", description="AI-assisted weekly roadmap maintenance")
    parser.add_argument("--root", help="Project root (default: $ROADMAPKIT_PROJECT_ROOT or the current directory)")
    parser.add_argument("--csv", dest="tabular_path", help="Roadmap CSV path relative to the root")
    parser.add_argument("--log-level", default="INFO", help="Console log level (default: INFO)")
    parser.add_argument("--log-file", help="Also write JSON logs to this file")
    parser.add_argument("--json", action="store_true", help="Print the full result as JSON")

    subparsers = parser.add_subparsers(dest="command", required=True)

    generate = subparsers.add_parser("generate-workstreams", help="Seed roadmap.json and workstream narratives")
    generate.add_argument("--force", action="store_true", help="Overwrite existing narrative files")

    subparsers.add_parser("process-inputs", help="Index new input documents")

    kpis = subparsers.add_parser("update-kpis", help="Record the weekly KPI snapshot")
    kpis.add_argument("--week", help="Week as YYYY-WXX (default: current week)")

    analyze = subparsers.add_parser("analyze", help="Run the weekly analysis")
    analyze.add_argument("--week", help="Week as YYYY-WXX (default: current week)")
    analyze.add_argument("--dry-run", action="store_true", help="Call the model but write nothing")

    apply = subparsers.add_parser("apply", help="Apply approved recommendations")
    apply.add_argument("report", nargs="?", help="Recommendations report (default: recommendations/latest.md)")

    status = subparsers.add_parser("status", help="Show approval state of a recommendations report")
    status.add_argument("report", nargs="?", help="Recommendations report (default: recommendations/latest.md)")

    subparsers.add_parser("guide", help="Print the weekly cycle")
    return parser


def run_command(workflow: RoadmapWorkflow, args: argparse.Namespace) -> Dict[str, Any]:
    if args.command == "generate-workstreams":
        return workflow.generate_workstreams(force=args.force)
    if args.command == "process-inputs":
        return workflow.process_inputs()
    if args.command == "update-kpis":
        return workflow.update_kpis(args.week)
    if args.command == "analyze":
        return workflow.analyze(args.week, dry_run=args.dry_run)
    if args.command == "apply":
        return workflow.apply_recommendations(args.report)
    if args.command == "status":
        return workflow.recommendation_status(args.report)
    return workflow.get_workflow_guide()


def _print_result(result: Dict[str, Any]) -> None:
    if "steps" in result:
        for step in result["steps"]:
            print(f"{step['step']}. {step['name']} ({step['tool']}): {step['description']}")
        return
    print(result.get("message", ""))
    for outcome in result.get("outcomes", []):
        marker = "APPLIED" if outcome["applied"] else outcome["kind"]
        print(f"  [{marker}] {outcome['recommendation_id']} -> {outcome['affects']}: {outcome['reason']}")
    for record in result.get("recommendations", []):
        marker = "x" if record.get("approved") else " "
        print(f"  [{marker}] [{record['confidence']}] {record['id']}: {record['title']} ({record['type']} -> {record['affects']})")
    if result.get("error"):
        print(f"Suggestion: {result.get('suggestion', '')}", file=sys.stderr)
    elif result.get("workflow_tip"):
        print(f"Next: {result['workflow_tip']}")


def main(argv: Optional[List[str]] = None) -> int:
    args = build_parser().parse_args(argv)
    setup_logging(args.log_level.upper(), args.log_file)

    workflow = RoadmapWorkflow(args.root, tabular_path=args.tabular_path)
    result = run_command(workflow, args)

    if args.json:
        print(json.dumps(result, indent=2, default=str))
    else:
        _print_result(result)
    return 1 if result.get("error") else 0
