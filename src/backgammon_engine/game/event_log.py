"""Event logging to JSONL files.

`GameEventLogger` subscribes to a controller and appends every domain
event as one JSON line, stamped with a sequence number and the elapsed
time. At the end of a session it can write a JSON summary next to the
event log.
"""

import json
import logging
import time
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, Optional

from backgammon_engine.game.events import GameEvent


logger = logging.getLogger(__name__)


@dataclass
class GameEventLogger:
    """Append-only event log.

    Use it as a controller listener:

        with GameEventLogger(log_dir="logs") as event_log:
            controller.subscribe(event_log)
            ...

    Args:
        log_dir: Directory for logs
        run_name: Base name of the log files
    """

    log_dir: Path
    run_name: str = "backgammon"

    _jsonl_file: Optional[Any] = field(default=None, init=False, repr=False)
    _event_count: int = field(default=0, init=False, repr=False)
    _counts: Dict[str, int] = field(default_factory=dict, init=False, repr=False)
    _start_time: float = field(default_factory=time.time, init=False, repr=False)

    def __post_init__(self):
        self.log_dir = Path(self.log_dir)
        self.log_dir.mkdir(parents=True, exist_ok=True)
        self._jsonl_file = open(self.events_path, 'a')

    @property
    def events_path(self) -> Path:
        return self.log_dir / f"{self.run_name}_events.jsonl"

    @property
    def summary_path(self) -> Path:
        return self.log_dir / f"{self.run_name}_summary.json"

    @property
    def event_count(self) -> int:
        return self._event_count

    @property
    def counts(self) -> Dict[str, int]:
        """Number of events logged per event type."""
        return dict(self._counts)

    def __call__(self, event: GameEvent) -> None:
        self.log_event(event)

    def log_event(self, event: GameEvent) -> None:
        """Append one event to the log file."""
        if self._jsonl_file is None:
            raise ValueError("Event log is closed")
        entry = {
            "seq": self._event_count,
            "timestamp": time.time() - self._start_time,
            **event.to_dict(),
        }
        self._jsonl_file.write(json.dumps(entry) + '\n')
        self._jsonl_file.flush()
        self._event_count += 1
        self._counts[event.type] = self._counts.get(event.type, 0) + 1

    def save_summary(self, summary: Dict[str, Any]) -> Path:
        """Write a JSON summary (match score, statistics, ...).

        The per-type event counts are added under "event_counts".
        """
        data = {**summary, "event_counts": self.counts}
        with open(self.summary_path, 'w') as f:
            json.dump(data, f, indent=2)
        logger.info("Summary saved to %s", self.summary_path)
        return self.summary_path

    def close(self) -> None:
        if self._jsonl_file is not None:
            self._jsonl_file.close()
            self._jsonl_file = None

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.close()
