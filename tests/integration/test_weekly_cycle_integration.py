"""
Integration test for the weekly roadmap cycle:
generate workstreams, index inputs, record KPIs, analyze, approve and apply,
driven through the MCP server tools against a real project directory.
"""

import json

import pytest

import main as server
from roadmapkit.parser import parse_all_recommendations
from roadmapkit.stores import read_tabular
from roadmap_samples import FakeAnalysisClient, analysis_payload

STATUS = """# Weekly Status - 2025-W06

## KPIs
- Payment Success Rate: 72.5%
- Avg Cost per Transaction: $0.31
- % Hotels on Payment Stack: 18

## Highlights
PMS vendor missed the Feb 3 drop. Orchestrator onboarding is complete and the
acquirer connector team is ready to start once PAY-011 hand-off notes are done.
"""

MEETING = """# Payments sync - Feb 5

Attendees: Ana, Raj, Brian

- PMS vendor needs two more weeks; integration end date should move to 2/21/2025.
- Loyalty kickoff stays on 3/1.
"""


class TestWeeklyCycleIntegration:
    """Integration tests for one full weekly cycle."""

    @pytest.fixture
    def fake_client(self, monkeypatch):
        client = FakeAnalysisClient(json.dumps(analysis_payload()))
        monkeypatch.setattr("roadmapkit.workspace.AnalysisClient", lambda: client)
        return client

    @pytest.fixture
    def weekly_inputs(self, project_root):
        weekly = project_root / "inputs" / "weekly" / "2025-W06"
        weekly.mkdir(parents=True)
        (weekly / "status.md").write_text(STATUS, encoding="utf-8")
        (weekly / "meeting-notes.md").write_text(MEETING, encoding="utf-8")
        return weekly

    def test_full_cycle(self, project_root, weekly_inputs, fake_client):
        """
        Given: a roadmap CSV and this week's status and meeting notes
        When: every tool of the cycle runs in order and a reviewer approves one change
        Then: the approved change lands in both stores and the rest stay untouched
        """
        root = str(project_root)

        generated = server.generate_workstreams(root=root)
        assert generated["next_suggested_step"] == "process_inputs"

        indexed = server.process_inputs(root=root)
        assert len(indexed["new"]) == 2

        kpis = server.update_kpis(week="2025-W06", root=root)
        assert kpis["snapshot"]["metrics"]["payment_success_rate"] == 72.5

        analysis = server.analyze(week="2025-W06", root=root)
        assert analysis["next_suggested_step"] == "recommendation_status"
        assert "PMS vendor needs two more weeks" in fake_client.calls[0][1]

        pending = server.recommendation_status(root=root)
        assert (pending["total"], pending["approved"]) == (2, 0)

        latest = project_root / "recommendations" / "latest.md"
        text = latest.read_text(encoding="utf-8")
        latest.write_text(text.replace("- [ ] **Approved**", "- [x] **Approved**", 1), encoding="utf-8")
        approved = server.recommendation_status(root=root)
        assert approved["approved"] == 1
        assert approved["next_suggested_step"] == "apply_recommendations"

        applied = server.apply_recommendations(root=root)
        assert applied["message"] == "Approved: 1, applied: 1, skipped: 0."

        rows = {item.id: item for item in read_tabular(project_root / "public" / "sample-roadmap-data.csv")}
        assert rows["PAY-013"].end_date == "2/21/2025"
        assert rows["PAY-013"].start_date == "1/20/2025"
        assert rows["PAY-012"].status == "Not Started"

        document = json.loads((project_root / "data" / "roadmap.json").read_text(encoding="utf-8"))
        entries = {entry["id"]: entry for entry in document["entries"]}
        assert entries["PAY-013"]["end_date"] == "2/21/2025"
        assert entries["PAY-013"]["ai_risk_level"] == "red"

        status = server.workspace_status(root=root)
        assert status["analysis_runs"] == 1
        assert status["kpi_snapshots"] == 1

    def test_report_resource(self, project_root, fake_client, monkeypatch):
        """
        Given: a project root from the environment
        When: the latest report resource is read before and after an analysis
        Then: it explains how to produce a report, then returns it verbatim
        """
        monkeypatch.setenv("ROADMAPKIT_PROJECT_ROOT", str(project_root))
        assert "Run the analyze tool first" in server.resource_latest_recommendations()

        server.generate_workstreams()
        server.analyze(week="2025-W06")
        content = server.resource_latest_recommendations()
        assert [record.id for record in parse_all_recommendations(content)] == [
            "REC-2025-W06-001",
            "REC-2025-W06-002",
        ]

    def test_regenerate_keeps_weekly_log(self, project_root, fake_client):
        """
        Given: an analyzed week whose log entries were appended to an epic file
        When: workstreams are regenerated without force
        Then: the appended narrative survives
        """
        root = str(project_root)
        server.generate_workstreams(root=root)
        server.analyze(week="2025-W06", root=root)

        result = server.generate_workstreams(root=root)
        epic = (project_root / "workstreams" / "PAY-001" / "PAY-010.md").read_text(encoding="utf-8")
        assert "workstreams/PAY-001/PAY-010.md" in result["skipped"]
        assert "### Week 2025-W06" in epic

    def test_invalid_root(self, tmp_path):
        with pytest.raises(ValueError, match="does not exist"):
            server.process_inputs(root=str(tmp_path / "missing"))

    def test_workflow_guide(self):
        guide = server.workflow_guide()
        assert guide["steps"][0]["tool"] == "generate_workstreams"
