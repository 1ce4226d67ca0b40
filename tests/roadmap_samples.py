"""Sample data and builders shared by the roadmapkit tests."""

from pathlib import Path

from roadmapkit.analysis import AnalysisResult


SAMPLE_CSV = """id,parent_id,level,title,owner,status,start_date,end_date,effort_days,impact,dependency,notes
PAY-001,,1,Payment Orchestration,Brian,In Progress,1/6/2025,6/30/2025,,High,,Core platform rollout
PAY-010,PAY-001,2,PSP Integration,Ana,In Progress,1/6/2025,3/31/2025,,High,,
PAY-011,PAY-010,3,Orchestrator onboarding,Ana,Complete,1/6/2025,1/31/2025,10,High,,
PAY-012,PAY-010,3,Acquirer connector,Raj,Not Started,2/1/2025,2/28/2025,15,Medium,PAY-011,
PAY-013,PAY-010,3,PMS integration,Raj,In Progress,1/20/2025,2/7/2025,12,High,"PAY-011, PAY-012",Waiting on PMS vendor
LOY-001,,1,Loyalty Integration,Mia,Not Started,3/1/2025,9/30/2025,,Medium,,
LOY-010,LOY-001,2,Points engine,Mia,Not Started,3/1/2025,5/31/2025,,Medium,,
LOY-011,LOY-010,3,Points API,Mia,Blocked,3/1/2025,3/31/2025,8,Low,,
"""


def recommendation_block(
    number,
    rec_id,
    rec_type,
    affects,
    proposed,
    approved=True,
    title=None,
    current="Current state",
    rationale="Evidence from weekly inputs",
    kpi_impact="None",
    confidence="High",
):
    """One report block in the exact layout the analysis report uses."""
    box = "x" if approved else " "
    return (
        f"### {number}. {title or rec_id}\n"
        f"- [{box}] **Approved**\n"
        f"- **ID:** {rec_id}\n"
        f"- **Type:** `{rec_type}`\n"
        f"- **Affects:** {affects}\n"
        f"- **Current:** {current}\n"
        f"- **Proposed:** {proposed}\n"
        f"- **Rationale:** {rationale}\n"
        f"- **KPI Impact:** {kpi_impact}\n"
        f"- **Confidence:** {confidence}\n"
        "\n"
    )


def report(*blocks):
    return "# Roadmap Recommendations - Week 2025-W06\n\n## Recommended Changes\n\n" + "".join(blocks)


def analysis_payload(**overrides):
    payload = {
        "executive_summary": "Program is mostly on track; PMS integration is slipping.",
        "kpi_assessment": [
            {
                "key": "payment_success_rate",
                "current_value": 72.5,
                "target": 75,
                "status": "below-target",
                "trend": "improving",
            }
        ],
        "recommendations": [
            {
                "id": "REC-2025-W06-001",
                "title": "Extend PMS integration",
                "type": "date_change",
                "affects": "PAY-013",
                "current_state": "Ends 2/7/2025",
                "proposed_change": "Extend deadline to 2/21/2025",
                "rationale": "Feb 5 meeting notes report vendor delays",
                "kpi_impact": None,
                "confidence": "High",
            },
            {
                "id": "REC-2025-W06-002",
                "title": "Flag PMS integration",
                "type": "risk_flag",
                "affects": "PAY-013",
                "current_state": "Not flagged",
                "proposed_change": "Flag as at-risk",
                "rationale": "Vendor has missed two milestones",
                "kpi_impact": "Delays hotel rollout",
                "confidence": "Medium",
            },
        ],
        "workstream_updates": {
            "PAY-010": {
                "workstream_id": "PAY-010",
                "current_state_summary": "Connector work is progressing; PMS is late.",
                "observations": ["Orchestrator onboarding finished"],
                "risks": ["PMS vendor delays"],
            },
            "PAY-013": {
                "workstream_id": "PAY-013",
                "current_state_summary": "Waiting on vendor.",
                "observations": ["Vendor missed the Feb 3 drop"],
                "risks": ["Vendor capacity"],
            },
        },
        "observations": ["Loyalty work has not started yet"],
    }
    payload.update(overrides)
    return payload


class FakeAnalysisClient:
    """Stands in for AnalysisClient and records the prompts it receives."""

    def __init__(self, response_text, model="test-model"):
        self.response_text = response_text
        self.model = model
        self.calls = []

    def analyze(self, system_prompt, user_prompt):
        self.calls.append((system_prompt, user_prompt))
        return AnalysisResult(
            response=self.response_text,
            thinking="weighing vendor risk",
            input_tokens=1200,
            output_tokens=800,
            thinking_tokens=5,
            cost_estimate=0.078,
            model=self.model,
        )


def write_report(root: Path, text: str, name: str = "latest.md") -> Path:
    path = root / "recommendations" / name
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(text, encoding="utf-8")
    return path
