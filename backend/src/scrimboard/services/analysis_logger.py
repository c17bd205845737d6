"""Diagnostic capture of lobby analysis runs.

Each analysis can be written to a JSON file holding the raw extractor
rows per screenshot and how every row was bound to the roster. Useful
for tuning the reconciliation order against real screenshots.

Usage:
    from scrimboard.services.analysis_logger import AnalysisLogger

    diagnostics = AnalysisLogger(enabled=True)
    diagnostics.capture(match, roster, raw_batches, outcome, status="completed")
"""
import json
import logging
import os
from datetime import datetime
from pathlib import Path
from typing import Optional

from scrimboard.models.extraction import ReconcileOutcome, RowBinding
from scrimboard.models.match import Match
from scrimboard.models.team import Team

# Configure module logger
module_logger = logging.getLogger("scrimboard.analysis_diagnostics")


class AnalysisLogger:
    """Writes one JSON diagnostics file per lobby analysis."""

    def __init__(self, output_dir: Optional[Path] = None, enabled: bool = False):
        """Initialize analysis logger.

        Args:
            output_dir: Directory to save diagnostic files. Defaults to logs/analysis/
            enabled: Whether capture is active. ANALYSIS_DIAGNOSTICS=true/false overrides.
        """
        env_enabled = os.environ.get("ANALYSIS_DIAGNOSTICS", "").lower()
        if env_enabled == "true":
            enabled = True
        elif env_enabled == "false":
            enabled = False

        self.enabled = enabled
        self.output_dir = output_dir or Path(__file__).parents[4] / "logs" / "analysis"

        if self.enabled:
            self.output_dir.mkdir(parents=True, exist_ok=True)
            module_logger.info(f"Analysis diagnostics enabled, output dir: {self.output_dir}")

    def capture(
        self,
        match: Match,
        roster: list[Team],
        raw_batches: list[list[dict]],
        outcome: Optional[ReconcileOutcome],
        status: str,
    ) -> Optional[Path]:
        """Save one analysis run.

        Args:
            match: The lobby that was analyzed
            roster: Active roster used for matching
            raw_batches: Raw extractor rows, one list per screenshot
            outcome: Reconciliation outcome (None if nothing was extracted)
            status: "completed", "empty" or "unmatched"

        Returns:
            Path to saved file, or None if disabled
        """
        if not self.enabled:
            return None

        names = {team.id: team.name for team in roster}
        trace = outcome.trace if outcome else []
        entry = {
            "match_id": match.id,
            "match_number": match.match_number,
            "status": status,
            "timestamp": datetime.now().isoformat(),
            "roster": [team.name for team in roster],
            "screenshots": len(raw_batches),
            "raw_rows": raw_batches,
            "summary": {
                binding.value: sum(1 for t in trace if t.binding == binding)
                for binding in RowBinding
            },
            "rows": [
                {
                    "index": t.index,
                    "label": t.label,
                    "binding": t.binding.value,
                    "team": names.get(t.team_id) if t.team_id else None,
                }
                for t in trace
            ],
        }

        timestamp = datetime.now().strftime("%Y%m%d_%H%M%S_%f")
        output_path = self.output_dir / f"lobby_{match.id[:8]}_{timestamp}_{status}.json"
        with open(output_path, "w") as f:
            json.dump(entry, f, indent=2, default=str)

        module_logger.info(f"Analysis diagnostics saved: {output_path}")
        return output_path
