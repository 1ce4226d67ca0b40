"""Shared fixtures for roadmapkit tests."""

import json
import logging

import pytest

from roadmapkit.stores import parse_tabular_text
from roadmapkit.workspace import RoadmapWorkspace
from roadmap_samples import SAMPLE_CSV, FakeAnalysisClient, analysis_payload

ENV_VARS = (
    "ROADMAPKIT_PROJECT_ROOT",
    "ROADMAPKIT_TABULAR_PATH",
    "ROADMAPKIT_PROGRAM_NAME",
    "ROADMAPKIT_PROGRAM_OWNER",
    "ROADMAPKIT_MODEL",
)


@pytest.fixture(autouse=True)
def restore_roadmapkit_logger():
    """Undo setup_logging calls made by a test."""
    logger = logging.getLogger("roadmapkit")
    level, handlers = logger.level, list(logger.handlers)
    yield
    for handler in logger.handlers:
        if handler not in handlers:
            handler.close()
    logger.handlers[:] = handlers
    logger.setLevel(level)


@pytest.fixture
def sample_csv_text():
    return SAMPLE_CSV


@pytest.fixture
def sample_items():
    return parse_tabular_text(SAMPLE_CSV)


@pytest.fixture
def project_root(tmp_path, monkeypatch):
    """A project directory holding only the roadmap CSV."""
    for name in ENV_VARS:
        monkeypatch.delenv(name, raising=False)
    csv_path = tmp_path / RoadmapWorkspace.DEFAULT_TABULAR_PATH
    csv_path.parent.mkdir(parents=True)
    csv_path.write_text(SAMPLE_CSV, encoding="utf-8")
    return tmp_path


@pytest.fixture
def workspace(project_root):
    return RoadmapWorkspace(project_root)


@pytest.fixture
def seeded_workspace(workspace):
    """A workspace after generate_workstreams has run."""
    workspace.generate_workstreams()
    return workspace


@pytest.fixture
def fake_client():
    return FakeAnalysisClient(json.dumps(analysis_payload()))
