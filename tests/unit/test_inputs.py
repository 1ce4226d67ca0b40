"""Unit tests for weekly input discovery and validation."""

import pytest

from roadmapkit.inputs import (
    classify_input,
    extract_week,
    is_valid_week,
    read_documents,
    scan_inputs,
    validate_input,
)


class TestClassification:
    """Test cases for input type and week detection."""

    @pytest.mark.parametrize(
        "path,expected",
        [
            ("baseline/charter.md", "baseline"),
            ("weekly/2025-W06/emails.md", "emails"),
            ("weekly/2025-W06/Meeting-notes.md", "meetings"),
            ("weekly/2025-W06/status.md", "status"),
            ("weekly/2025-W06/scratch.md", "notes"),
        ],
    )
    def test_classify(self, path, expected):
        assert classify_input(path) == expected

    def test_extract_week(self):
        assert extract_week("weekly/2025-W06/status.md") == "2025-W06"
        assert extract_week("weekly\\2025-W07\\notes.md") == "2025-W07"
        assert extract_week("baseline/charter.md") == "baseline"

    def test_is_valid_week(self):
        assert is_valid_week("2025-W06")
        assert not is_valid_week("2025-6")
        assert not is_valid_week("")


class TestValidateInput:
    """Test cases for template-like content warnings."""

    def test_clean_content(self):
        content = "Payment Success Rate: 72%\n" + "Real status text. " * 20
        assert validate_input(content, "status") == []

    def test_unfilled_template(self):
        warnings = validate_input("# Meeting [Date]\nAttendees: [Name], [Name]\n", "meetings")
        assert warnings[0] == "Has 3 unfilled placeholder(s): [Date], [Name], [Name]"
        assert "Very short content - may be an empty template" in warnings

    def test_status_without_kpis(self):
        content = "Work continues. " * 20
        assert validate_input(content, "status") == ["Status file missing KPI section"]

    def test_links_are_not_placeholders(self):
        content = "See [the design doc](https://example.com). " * 10
        assert validate_input(content, "notes") == []


class TestScanInputs:
    """Test cases for discovering input files."""

    def test_skips_templates_and_non_markdown(self, tmp_path):
        inputs = tmp_path / "inputs"
        (inputs / "weekly" / "2025-W06").mkdir(parents=True)
        (inputs / "templates").mkdir()
        (inputs / "baseline").mkdir()
        (inputs / "weekly" / "2025-W06" / "status.md").write_text("s", encoding="utf-8")
        (inputs / "weekly" / "2025-W06" / "raw.txt").write_text("t", encoding="utf-8")
        (inputs / "templates" / "status.md").write_text("template", encoding="utf-8")
        (inputs / "baseline" / "charter.md").write_text("c", encoding="utf-8")

        found = [path.relative_to(inputs).as_posix() for path in scan_inputs(inputs)]
        assert found == ["baseline/charter.md", "weekly/2025-W06/status.md"]

    def test_missing_directory(self, tmp_path):
        assert scan_inputs(tmp_path / "nope") == []

    def test_read_documents(self, tmp_path):
        folder = tmp_path / "inputs" / "baseline"
        folder.mkdir(parents=True)
        (folder / "b.md").write_text("B", encoding="utf-8")
        (folder / "a.md").write_text("A", encoding="utf-8")

        assert read_documents(folder, tmp_path) == [
            ("inputs/baseline/a.md", "A"),
            ("inputs/baseline/b.md", "B"),
        ]
        assert read_documents(tmp_path / "missing", tmp_path) == []
