"""
logger.py - Logging utilities for the strategy bots.

This module provides:
- Root logger setup shared by the CLI and scripts
- ActionLogger: which main loop handler acted on each pass

Action logs can be exported as JSON for later analysis.
"""

import json
import time
import logging
from dataclasses import dataclass, asdict
from pathlib import Path
from typing import Dict, List, Optional

LOG_FORMAT = '%(asctime)s - %(name)s - %(levelname)s - %(message)s'


def setup_logging(level: str = "INFO", log_file: Optional[str] = None) -> None:
    """
    Configure the root logger.

    Args:
        level: Level name (DEBUG, INFO, ...)
        log_file: Optional file to log to in addition to the console
    """
    handlers: List[logging.Handler] = [logging.StreamHandler()]
    if log_file:
        Path(log_file).parent.mkdir(parents=True, exist_ok=True)
        handlers.append(logging.FileHandler(log_file))

    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.INFO),
        format=LOG_FORMAT,
        handlers=handlers,
        force=True,
    )


@dataclass
class LogEntry:
    """A single main loop pass."""
    timestamp: float
    tick: int
    handler: Optional[str]


class ActionLogger:
    """
    Logger for tracking which handler acted on each main loop pass.

    Useful for debugging strategy behavior and understanding which
    priorities dominate a match.
    """

    def __init__(self, history_size: int = 100):
        self.action_counts: Dict[str, int] = {}
        self.idle_passes = 0
        self.total_passes = 0
        self.history_size = history_size
        self.history: List[LogEntry] = []

    def log_pass(self, handler: Optional[str]) -> None:
        """
        Log the outcome of one pass.

        Args:
            handler: Name of the handler that acted, or None
        """
        self.total_passes += 1
        if handler is None:
            self.idle_passes += 1
        else:
            self.action_counts[handler] = self.action_counts.get(handler, 0) + 1

        self.history.append(LogEntry(timestamp=time.time(), tick=self.total_passes,
                                     handler=handler))
        if len(self.history) > self.history_size:
            self.history = self.history[-self.history_size:]

    def get_distribution(self) -> Dict[str, float]:
        """Fraction of acting passes taken by each handler."""
        total = sum(self.action_counts.values())
        if total == 0:
            return {}
        return {k: v / total for k, v in self.action_counts.items()}

    def get_summary(self) -> Dict:
        return {
            'total_passes': self.total_passes,
            'idle_passes': self.idle_passes,
            'action_counts': dict(self.action_counts),
            'distribution': self.get_distribution(),
        }

    def save(self, path: str) -> None:
        """Write the summary and recent history as JSON."""
        Path(path).parent.mkdir(parents=True, exist_ok=True)
        with open(path, 'w') as f:
            json.dump({
                'summary': self.get_summary(),
                'history': [asdict(entry) for entry in self.history],
            }, f, indent=2)

    def reset(self) -> None:
        self.action_counts = {}
        self.idle_passes = 0
        self.total_passes = 0
        self.history = []
