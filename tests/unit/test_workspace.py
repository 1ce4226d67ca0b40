"""Unit tests for roadmapkit workspace functionality.

This module tests the weekly cycle steps against a project directory:
workstream generation, input indexing, KPI snapshots, analysis and applying
approved recommendations.
"""

import json
from datetime import date

import pytest

from roadmapkit.analysis import AnalysisError
from roadmapkit.models import AnalysisOutput, RoadmapDocument, RoadmapEntry, WorkstreamUpdate
from roadmapkit.stores import StoreError
from roadmapkit.workspace import (
    RoadmapWorkspace,
    apply_analysis_to_document,
    current_week,
    cycle_risk_level,
    prior_weeks,
)
from roadmap_samples import FakeAnalysisClient, analysis_payload, recommendation_block, report, write_report

STATUS = """# Weekly Status - 2025-W06

## KPIs
- Payment Success Rate: 72.5%
- Avg Cost per Transaction: $0.31
"""


def write_input(root, rel_path, content):
    path = root / "inputs" / rel_path
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(content, encoding="utf-8")
    return path


class TestWeekHelpers:
    """Test cases for week labels."""

    def test_current_week(self):
        assert current_week(date(2025, 1, 1)) == "2025-W01"
        assert current_week(date(2025, 1, 4)) == "2025-W01"
        assert current_week(date(2025, 1, 5)) == "2025-W02"
        assert current_week(date(2025, 2, 7)) == "2025-W06"

    def test_prior_weeks_wrap_the_year(self):
        assert prior_weeks("2025-W06", 2) == ["2025-W05", "2025-W04"]
        assert prior_weeks("2025-W02", 3) == ["2025-W01", "2024-W52", "2024-W51"]

    def test_prior_weeks_rejects_bad_week(self):
        with pytest.raises(ValueError):
            prior_weeks("week 6", 1)


class TestRiskLevels:
    """Test cases for the per-cycle risk level."""

    def test_cycle_risk_level(self):
        risky = WorkstreamUpdate(workstream_id="PAY-013", current_state_summary="", risks=["vendor"])
        calm = WorkstreamUpdate(workstream_id="PAY-013", current_state_summary="")
        assert cycle_risk_level(None, False) is None
        assert cycle_risk_level(calm, False) is None
        assert cycle_risk_level(risky, False) == "yellow"
        assert cycle_risk_level(risky, True) == "red"
        assert cycle_risk_level(None, True) == "red"

    def test_apply_analysis_to_document(self):
        document = RoadmapDocument(
            entries=[
                RoadmapEntry(id="PAY-010", level=2, ai_risk_level="red"),
                RoadmapEntry(id="PAY-013", level=3),
                RoadmapEntry(id="LOY-011", level=3, ai_risk_level="yellow"),
            ]
        )
        analysis = AnalysisOutput.from_dict(analysis_payload())
        touched = apply_analysis_to_document(document, analysis, "2025-02-07T00:00:00Z")

        assert touched == ["PAY-010", "PAY-013"]
        assert document.entry("PAY-013").ai_risk_level == "red"
        assert document.entry("PAY-010").ai_risk_level == "yellow"
        assert document.entry("PAY-010").ai_observations == ["Orchestrator onboarding finished"]
        assert document.entry("PAY-010").last_ai_review == "2025-02-07T00:00:00Z"
        assert document.entry("LOY-011").ai_risk_level == "yellow"
        assert document.entry("LOY-011").last_ai_review is None


class TestWorkspaceInitialization:
    """Test cases for workspace configuration."""

    def test_defaults(self, project_root):
        workspace = RoadmapWorkspace(project_root)
        assert workspace.root == project_root.resolve()
        assert workspace.tabular_path == project_root.resolve() / "public" / "sample-roadmap-data.csv"
        assert workspace.roadmap_path == project_root.resolve() / "data" / "roadmap.json"
        assert workspace.program_name == "Roadmap Program"
        assert not (project_root / "data").exists()

    def test_environment(self, project_root, monkeypatch):
        monkeypatch.setenv("ROADMAPKIT_PROJECT_ROOT", str(project_root))
        monkeypatch.setenv("ROADMAPKIT_TABULAR_PATH", "roadmap.csv")
        monkeypatch.setenv("ROADMAPKIT_PROGRAM_NAME", "Payments Program")
        workspace = RoadmapWorkspace()
        assert workspace.root == project_root.resolve()
        assert workspace.tabular_path.name == "roadmap.csv"
        assert workspace.program_name == "Payments Program"

    def test_relative_outside_root(self, workspace, tmp_path_factory):
        outside = tmp_path_factory.mktemp("elsewhere") / "report.md"
        assert workspace.relative(outside) == outside.as_posix()


class TestGenerateWorkstreams:
    """Test cases for seeding the enriched roadmap and narratives."""

    def test_creates_files(self, workspace):
        result = workspace.generate_workstreams()
        root = workspace.root

        assert [initiative["id"] for initiative in result["initiatives"]] == ["PAY-001", "LOY-001"]
        assert result["initiatives"][0]["epics"] == [{"id": "PAY-010", "title": "PSP Integration", "tasks": 3}]
        assert result["entries"] == 8
        assert "workstreams/_overview.md" in result["written"]
        assert (root / "workstreams" / "PAY-001" / "initiative.md").exists()
        assert (root / "workstreams" / "PAY-001" / "PAY-010.md").exists()
        assert (root / "workstreams" / "LOY-001" / "LOY-010.md").exists()
        assert sorted(result["initialized"]) == [
            "data/analysis-history.json",
            "data/input-index.json",
            "data/kpis.json",
        ]

        document = workspace.load_document()
        assert [entry.id for entry in document.entries][:3] == ["PAY-001", "PAY-010", "PAY-011"]
        assert document.entry("PAY-010").workstream_file == "workstreams/PAY-001/PAY-010.md"
        assert document.entry("PAY-013").workstream_file is None
        assert document.entry("PAY-013").ai_risk_level is None

    def test_keeps_existing_narratives(self, seeded_workspace):
        epic_path = seeded_workspace.root / "workstreams" / "PAY-001" / "PAY-010.md"
        epic_path.write_text("edited by hand", encoding="utf-8")

        result = seeded_workspace.generate_workstreams()
        assert "workstreams/PAY-001/PAY-010.md" in result["skipped"]
        assert result["initialized"] == []
        assert epic_path.read_text(encoding="utf-8") == "edited by hand"

        seeded_workspace.generate_workstreams(force=True)
        assert epic_path.read_text(encoding="utf-8").startswith("# PAY-010: PSP Integration")

    def test_missing_csv(self, tmp_path):
        with pytest.raises(StoreError, match="Roadmap CSV not found"):
            RoadmapWorkspace(tmp_path).generate_workstreams()


class TestProcessInputs:
    """Test cases for indexing weekly inputs."""

    def test_indexes_new_files_once(self, seeded_workspace):
        root = seeded_workspace.root
        write_input(root, "weekly/2025-W06/status.md", STATUS)
        write_input(root, "baseline/charter.md", "Charter. " * 40)
        write_input(root, "templates/status.md", "[Name]")

        result = seeded_workspace.process_inputs()
        assert result["found"] == 2
        files = {record["file"]: record for record in result["new"]}
        assert files["inputs/weekly/2025-W06/status.md"]["type"] == "status"
        assert files["inputs/weekly/2025-W06/status.md"]["week"] == "2025-W06"
        assert files["inputs/baseline/charter.md"]["week"] == "baseline"
        assert result["warnings"] == {
            "inputs/weekly/2025-W06/status.md": ["Very short content - may be an empty template"]
        }
        assert result["warning_count"] == 1

        again = seeded_workspace.process_inputs()
        assert again["new"] == []
        assert again["total_indexed"] == 2

    def test_no_inputs_directory(self, workspace):
        result = workspace.process_inputs()
        assert result["found"] == 0
        assert workspace.input_index_path.exists()


class TestUpdateKpis:
    """Test cases for KPI snapshots."""

    def test_requires_kpi_store(self, workspace):
        with pytest.raises(StoreError, match="Run generate-workstreams first"):
            workspace.update_kpis("2025-W06")

    def test_snapshot_from_status(self, seeded_workspace):
        write_input(seeded_workspace.root, "weekly/2025-W06/status.md", STATUS)
        result = seeded_workspace.update_kpis("2025-W06")

        assert result["created"] is True
        assert result["snapshot"]["metrics"]["payment_success_rate"] == 72.5
        assert result["snapshot"]["metrics"]["pct_hotels_on_stack"] is None
        assert result["snapshot"]["roadmap_metrics"]["total_tasks"] == 4
        assert result["total_snapshots"] == 1

    def test_existing_snapshot_is_kept(self, seeded_workspace):
        seeded_workspace.update_kpis("2025-W06")
        write_input(seeded_workspace.root, "weekly/2025-W06/status.md", STATUS)
        result = seeded_workspace.update_kpis("2025-W06")

        assert result["created"] is False
        assert result["snapshot"]["metrics"]["payment_success_rate"] is None
        assert len(seeded_workspace.load_kpis().history) == 1

    def test_bad_week(self, seeded_workspace):
        with pytest.raises(ValueError):
            seeded_workspace.update_kpis("2025-6")


class TestAnalyze:
    """Test cases for the analysis cycle."""

    def test_dry_run_writes_nothing(self, seeded_workspace, fake_client):
        before = seeded_workspace.roadmap_path.read_text(encoding="utf-8")
        result = seeded_workspace.analyze("2025-W06", dry_run=True, client=fake_client)

        assert result["dry_run"] is True
        assert len(result["recommendations"]) == 2
        assert "written" not in result
        assert not seeded_workspace.latest_report_path.exists()
        assert seeded_workspace.roadmap_path.read_text(encoding="utf-8") == before

    def test_prompt_carries_context(self, seeded_workspace, fake_client):
        write_input(seeded_workspace.root, "weekly/2025-W06/status.md", STATUS)
        write_report(seeded_workspace.root, "Last week's report", name="archive/2025-W05.md")
        seeded_workspace.analyze("2025-W06", dry_run=True, client=fake_client)

        system_prompt, user_prompt = fake_client.calls[0]
        assert "Payment Success Rate - Target: >= 75%" in system_prompt
        assert "### inputs/weekly/2025-W06/status.md" in user_prompt
        assert "### recommendations/archive/2025-W05.md\n\nLast week's report" in user_prompt
        assert "### workstreams/PAY-001/PAY-010.md" in user_prompt

    def test_writes_reports_logs_and_stores(self, seeded_workspace, fake_client):
        root = seeded_workspace.root
        result = seeded_workspace.analyze("2025-W06", client=fake_client)

        archive = root / "recommendations" / "archive" / "2025-W06.md"
        assert archive.read_text(encoding="utf-8") == seeded_workspace.latest_report_path.read_text(encoding="utf-8")
        assert "recommendations/latest.md" in result["written"]

        epic_text = (root / "workstreams" / "PAY-001" / "PAY-010.md").read_text(encoding="utf-8")
        assert "### Week 2025-W06" in epic_text
        assert "**Summary:** Waiting on vendor." in epic_text
        assert "_No entries yet." not in epic_text

        document = seeded_workspace.load_document()
        assert document.entry("PAY-013").ai_risk_level == "red"
        assert document.entry("PAY-010").ai_risk_level == "yellow"
        assert document.entry("PAY-013").last_ai_review == document.last_updated

        snapshot = seeded_workspace.load_kpis().snapshot_for("2025-W06")
        assert snapshot.metrics["payment_success_rate"] == 72.5
        assert snapshot.notes.startswith("Program is mostly on track")

        run = seeded_workspace.load_history().runs[0]
        assert run.recommendation_count == 2
        assert run.recommendations_file == "recommendations/archive/2025-W06.md"
        assert run.input_tokens == 1200
        assert run.thinking_tokens == 5

    def test_later_cycle_replaces_risk_level(self, seeded_workspace, fake_client):
        seeded_workspace.analyze("2025-W06", client=fake_client)
        calmer = analysis_payload(
            recommendations=[],
            workstream_updates={
                "PAY-013": {"current_state_summary": "Vendor delivered", "observations": [], "risks": ["UAT"]}
            },
        )
        seeded_workspace.analyze("2025-W07", client=FakeAnalysisClient(json.dumps(calmer)))
        assert seeded_workspace.load_document().entry("PAY-013").ai_risk_level == "yellow"

    def test_existing_kpi_snapshot_is_kept(self, seeded_workspace, fake_client):
        seeded_workspace.update_kpis("2025-W06")
        seeded_workspace.analyze("2025-W06", client=fake_client)
        history = seeded_workspace.load_kpis().history
        assert len(history) == 1
        assert history[0].metrics["payment_success_rate"] is None

    def test_malformed_response(self, seeded_workspace):
        with pytest.raises(AnalysisError, match="not valid JSON"):
            seeded_workspace.analyze("2025-W06", client=FakeAnalysisClient("Sorry, I cannot help"))
        assert not seeded_workspace.latest_report_path.exists()


class TestRecommendationStatus:
    """Test cases for listing report recommendations."""

    def test_counts(self, workspace):
        write_report(
            workspace.root,
            report(
                recommendation_block(1, "REC-1", "status_change", "PAY-013", "Mark Blocked"),
                recommendation_block(2, "REC-2", "note_update", "PAY-012", "x", approved=False),
            ),
        )
        result = workspace.recommendation_status()
        assert (result["total"], result["approved"], result["pending"]) == (2, 1, 1)

    def test_missing_report(self, workspace):
        with pytest.raises(StoreError, match="Recommendations report not found"):
            workspace.recommendation_status("recommendations/archive/2025-W01.md")


class TestApplyRecommendations:
    """Test cases for applying an approved report."""

    def test_persists_both_stores(self, seeded_workspace):
        write_report(
            seeded_workspace.root,
            report(
                recommendation_block(1, "REC-1", "date_change", "PAY-013", "Shift to 3/1/2025 - 3/15/2025"),
                recommendation_block(2, "REC-2", "risk_flag", "PAY-013", "Flag as at-risk"),
                recommendation_block(3, "REC-3", "status_change", "PAY-012", "Mark Complete", approved=False),
            ),
        )
        before = seeded_workspace.load_document().last_updated

        result = seeded_workspace.apply_recommendations()
        assert result.summary() == {"approved": 2, "applied": 2, "skipped": 0}
        assert result.persisted

        rows = {item.id: item for item in seeded_workspace.load_items()}
        assert (rows["PAY-013"].start_date, rows["PAY-013"].end_date) == ("3/1/2025", "3/15/2025")
        assert rows["PAY-012"].status == "Not Started"

        document = seeded_workspace.load_document()
        assert document.entry("PAY-013").end_date == "3/15/2025"
        assert document.entry("PAY-013").ai_risk_level == "red"
        assert document.last_updated >= before

    def test_nothing_applied_leaves_files_untouched(self, seeded_workspace):
        write_report(
            seeded_workspace.root,
            report(
                recommendation_block(1, "REC-1", "status_change", "PAY-999", "Mark Complete"),
                recommendation_block(2, "REC-2", "new_task", "PAY-010", "Add UAT"),
            ),
        )
        csv_before = seeded_workspace.tabular_path.read_text(encoding="utf-8")
        json_before = seeded_workspace.roadmap_path.read_text(encoding="utf-8")

        result = seeded_workspace.apply_recommendations()
        assert result.applied == 0
        assert result.skipped == 2
        assert not result.persisted
        assert seeded_workspace.tabular_path.read_text(encoding="utf-8") == csv_before
        assert seeded_workspace.roadmap_path.read_text(encoding="utf-8") == json_before

    def test_no_approved(self, seeded_workspace):
        write_report(
            seeded_workspace.root,
            report(recommendation_block(1, "REC-1", "note_update", "PAY-013", "x", approved=False)),
        )
        result = seeded_workspace.apply_recommendations()
        assert result.approved == 0
        assert not result.persisted

    def test_without_enriched_document(self, workspace):
        write_report(workspace.root, report(recommendation_block(1, "REC-1", "note_update", "PAY-013", "New note")))
        result = workspace.apply_recommendations()
        assert result.applied == 1
        assert not workspace.roadmap_path.exists()
        assert next(item for item in workspace.load_items() if item.id == "PAY-013").notes == "New note"

    def test_explicit_report_path(self, seeded_workspace):
        path = write_report(
            seeded_workspace.root,
            report(recommendation_block(1, "REC-1", "note_update", "PAY-013", "From archive")),
            name="archive/2025-W06.md",
        )
        assert seeded_workspace.apply_recommendations(path).applied == 1
        assert seeded_workspace.apply_recommendations("recommendations/archive/2025-W06.md").applied == 1


class TestStatus:
    def test_status(self, seeded_workspace):
        status = seeded_workspace.status()
        assert status["tabular_store"] == "public/sample-roadmap-data.csv"
        assert status["enriched_entries"] == 8
        assert status["kpi_snapshots"] == 0
        assert status["analysis_runs"] == 0
        assert status["latest_report"] is None
