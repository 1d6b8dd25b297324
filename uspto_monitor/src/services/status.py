import contextlib
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Dict, Iterator, List, Optional

from loguru import logger

from ..config import Config
from ..processing import InFlightGuard
from ..utils import read_json_file, write_json_file

MAX_RECENT_ERRORS = 10


class AutomationStatus:
    """Process-wide automation state.

    Created once at startup and shared by the controller, the scheduler and
    the API. The in-flight set itself lives in the guard; this object only
    reports it. ``save`` writes a snapshot so a restart can tell whether the
    scheduler was enabled.
    """

    def __init__(self, guard: InFlightGuard, path: Path | None = None):
        self.guard = guard
        self.path = path or Config.STATUS_PATH
        self.enabled = False
        self.active_runs = 0
        self.last_run: Optional[str] = None
        self.errors: List[Dict[str, str]] = []

    @property
    def running(self) -> bool:
        return self.active_runs > 0

    @contextlib.contextmanager
    def track_run(self, kind: str) -> Iterator[None]:
        """Count a sweep or targeted run as active for the duration of the block."""
        self.active_runs += 1
        logger.debug(f"[status] {kind} run started; active={self.active_runs}")
        try:
            yield
        finally:
            self.active_runs -= 1
            self.last_run = datetime.now(timezone.utc).isoformat()
            self.save()

    def record_error(self, message: str):
        self.errors.append({"timestamp": datetime.now(timezone.utc).isoformat(), "error": message})
        self.errors = self.errors[-MAX_RECENT_ERRORS:]

    def snapshot(self) -> Dict[str, Any]:
        return {
            "enabled": self.enabled,
            "running": self.running,
            "activeRuns": self.active_runs,
            "lastRun": self.last_run,
            "currentlyProcessing": self.guard.snapshot(),
            "recentErrors": self.errors[-5:],
            "serverTime": datetime.now(timezone.utc).isoformat(),
        }

    def save(self):
        try:
            write_json_file(self.path, {**self.snapshot(), "lastUpdated": datetime.now(timezone.utc).isoformat()})
        except OSError as exc:
            logger.error(f"[status] could not save {self.path}: {exc}")

    def restore(self) -> bool:
        """Load the last snapshot; returns whether the scheduler was enabled."""
        try:
            data = read_json_file(self.path, default={})
        except (OSError, ValueError) as exc:
            logger.error(f"[status] unreadable status file {self.path}: {exc}")
            return False
        if not isinstance(data, dict):
            return False

        self.last_run = data.get("lastRun")
        stale = data.get("currentlyProcessing") or []
        if stale:
            # A snapshot taken mid-run; those attempts died with the old process.
            logger.warning(f"[status] previous process stopped while processing {stale}")
        logger.info(f"[status] restored enabled={bool(data.get('enabled'))} last_run={self.last_run}")
        return bool(data.get("enabled"))
