# nav_logger.py
# Handles all file I/O for a navigation session.
# Saves route snapshots as JSON and appends events to a JSONL session log.

import json
import logging
import os
from datetime import datetime
from typing import Optional

from .events import NavigationEvent, event_to_dict
from .models import ActiveRoute, DeviationResult, LocationFix
from .nav_config import NavConfig

# Standard Python logger, configure at app entry point if needed
logger = logging.getLogger(__name__)


class NavLogger:
    """
    Persists route snapshots and navigation events to JSON files.

    An instance can be registered directly as an event listener:
        machine.add_event_listener(nav_logger)

    Args:
        config: NavConfig instance for file paths and directories.
    """

    def __init__(self, config: Optional[NavConfig] = None) -> None:
        self.config = config or NavConfig()
        os.makedirs(self.config.log_dir, exist_ok=True)

    def __call__(self, event: NavigationEvent) -> None:
        self.log_event(event)

    # ------------------------------------------------------------------
    # Route persistence
    # ------------------------------------------------------------------

    def save_route(self, route: ActiveRoute) -> bool:
        """
        Serialize a route snapshot to JSON.

        Returns:
            True on success, False on failure.
        """
        filepath = self.config.route_filepath
        try:
            data = {
                "saved_at": datetime.now().isoformat(),
                "leg_count": len(route.legs),
                "route": route.to_dict(),
            }
            with open(filepath, "w", encoding="utf-8") as f:
                json.dump(data, f, ensure_ascii=False, indent=2)
            logger.info(f"Route saved to {filepath} ({len(route.legs)} legs).")
            return True
        except OSError as e:
            logger.error(f"Failed to save route to {filepath}: {e}")
            return False

    # ------------------------------------------------------------------
    # Session event logging
    # ------------------------------------------------------------------

    def log_event(self, event: NavigationEvent) -> None:
        """Append a state-machine event to the session log."""
        self._append(event_to_dict(event))

    def log_deviation(self, fix: LocationFix, result: DeviationResult) -> None:
        """Append a deviation verdict for one location fix."""
        entry = {"type": "deviation_check", "fix": fix.to_dict()}
        entry.update(result.to_dict())
        self._append(entry)

    def _append(self, entry: dict) -> None:
        entry = {"timestamp": datetime.now().isoformat(), **entry}
        try:
            with open(self.config.session_filepath, "a", encoding="utf-8") as f:
                f.write(json.dumps(entry, ensure_ascii=False) + "\n")
        except OSError as e:
            logger.error(f"Failed to write event log: {e}")
