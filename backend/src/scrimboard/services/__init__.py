"""Business logic services."""

from scrimboard.services.scoring_policy import compute_total, kill_points, placement_points
from scrimboard.services.roster_registry import active_roster, import_roster, parse_roster_lines
from scrimboard.services.result_reconciler import ResultReconciler, reconcile
from scrimboard.services.standings_aggregator import compute_standings, to_export_rows
from scrimboard.services.vision_client import (
    GeminiVisionClient,
    MockVisionClient,
    get_vision_client,
)
from scrimboard.services.analysis_logger import AnalysisLogger

__all__ = [
    "compute_total",
    "kill_points",
    "placement_points",
    "active_roster",
    "import_roster",
    "parse_roster_lines",
    "ResultReconciler",
    "reconcile",
    "compute_standings",
    "to_export_rows",
    "GeminiVisionClient",
    "MockVisionClient",
    "get_vision_client",
    "AnalysisLogger",
]
