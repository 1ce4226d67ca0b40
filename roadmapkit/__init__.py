"""roadmapkit - AI-assisted weekly roadmap maintenance."""

from .analysis import AnalysisClient, AnalysisError
from .applier import RoadmapModel, apply_recommendations
from .models import (
    ApplyOutcome,
    ApplyReport,
    ItemId,
    RecommendationRecord,
    RoadmapDocument,
    RoadmapEntry,
    RoadmapItem,
)
from .parser import parse_recommendations
from .roadmapkit_logging import setup_logging
from .stores import StoreError
from .workflow import RoadmapWorkflow
from .workspace import RoadmapWorkspace

__version__ = "0.1.0"

__all__ = [
    "AnalysisClient",
    "AnalysisError",
    "ApplyOutcome",
    "ApplyReport",
    "ItemId",
    "RecommendationRecord",
    "RoadmapDocument",
    "RoadmapEntry",
    "RoadmapItem",
    "RoadmapModel",
    "RoadmapWorkflow",
    "RoadmapWorkspace",
    "StoreError",
    "apply_recommendations",
    "parse_recommendations",
    "setup_logging",
]
