"""Unit tests for analysis prompt construction."""

from roadmapkit.kpis import default_kpi_data
from roadmapkit.models import RoadmapDocument, RoadmapEntry
from roadmapkit.prompts import AnalysisContext, build_analysis_prompt, build_system_prompt


class TestSystemPrompt:
    """Test cases for the system prompt."""

    def test_names_program_and_targets(self):
        prompt = build_system_prompt("Payments Program", default_kpi_data().targets, program_owner="Brian")
        assert "analyst for the Payments Program" in prompt
        assert "Program owner: Brian" in prompt
        assert "1. Payment Success Rate - Target: >= 75%" in prompt
        assert "2. Avg Cost per Transaction - Target: decreasing trend" in prompt
        assert prompt.rstrip().endswith("Return ONLY the JSON object, no markdown fencing or other text.")

    def test_without_targets(self):
        prompt = build_system_prompt("Payments Program")
        assert "KEY KPIs YOU TRACK" not in prompt
        assert "Program owner" not in prompt
        assert '"workstream_updates"' in prompt


class TestAnalysisPrompt:
    """Test cases for the user prompt."""

    def test_sections_in_order(self, sample_csv_text):
        context = AnalysisContext(
            week="2025-W06",
            csv_text=sample_csv_text,
            document=RoadmapDocument(entries=[RoadmapEntry(id="PAY-013", level=3, ai_risk_level="yellow")]),
            kpi_data=default_kpi_data(),
            baseline_docs=[("inputs/baseline/charter.md", "Charter")],
            weekly_inputs=[("inputs/weekly/2025-W06/status.md", "Status body")],
            prior_reports=[("recommendations/archive/2025-W05.md", "Last week")],
            workstream_files=[("workstreams/PAY-001/PAY-010.md", "Epic body")],
            program_owner="Brian",
        )
        prompt = build_analysis_prompt(context)

        headings = [
            "## Analysis for Week 2025-W06",
            "## Current Roadmap Data (CSV)",
            "## Enriched Roadmap (JSON)",
            "## KPI History",
            "## Baseline Documents",
            "## This Week's Inputs (2025-W06)",
            "## Prior Recommendations",
            "## Current Workstream Files",
        ]
        positions = [prompt.index(heading) for heading in headings]
        assert positions == sorted(positions)
        assert "### inputs/weekly/2025-W06/status.md\n\nStatus body" in prompt
        assert '"ai_risk_level": "yellow"' in prompt
        assert "PAY-013,PAY-010,3,PMS integration" in prompt
        assert "What decisions or actions should Brian prioritize this week?" in prompt

    def test_no_weekly_inputs(self):
        prompt = build_analysis_prompt(AnalysisContext(week="2025-W06", csv_text="id\n"))
        assert "No weekly inputs were provided" in prompt
        assert "## Enriched Roadmap (JSON)" not in prompt
        assert "## Prior Recommendations" not in prompt
        assert "should the program owner prioritize" in prompt
