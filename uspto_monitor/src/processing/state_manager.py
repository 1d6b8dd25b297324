import os
from pathlib import Path
from typing import Dict, Mapping, Optional

from loguru import logger

from ..config import Config
from ..utils import read_json_file, write_json_file


class StateManager:
    """Persists the last processed document date per application number."""

    def __init__(self, state_path: Path | None = None):
        self.state_path = state_path or Config.STATE_PATH

    def load(self) -> Dict[str, str]:
        """Load the mapping; a missing or unreadable file counts as nothing processed."""
        try:
            data = read_json_file(self.state_path, default={})
        except (OSError, ValueError) as exc:
            logger.error(f"[state] unreadable state file {self.state_path}: {exc}")
            self._set_aside_corrupt()
            return {}

        if not isinstance(data, dict):
            logger.error(f"[state] unexpected state shape {type(data).__name__}; starting fresh")
            self._set_aside_corrupt()
            return {}

        return {str(k): str(v) for k, v in data.items() if v}

    def save(self, state: Mapping[str, str]):
        """Write the whole mapping."""
        write_json_file(self.state_path, dict(state))
        logger.info(f"[state] saved entries={len(state)} path={self.state_path}")

    def commit(self, state: Mapping[str, str]) -> Dict[str, str]:
        """Merge ``state`` into the stored mapping, keeping the later date per key.

        An overlapping sweep may have committed since ``state`` was loaded;
        merging keeps every entry monotonic instead of letting the last writer
        move a date backwards.
        """
        merged = self.load()
        for app_number, date_key in state.items():
            current = merged.get(app_number)
            if current is None or date_key > current:
                merged[app_number] = date_key
        self.save(merged)
        return merged

    @staticmethod
    def advance(state: Dict[str, str], app_number: str, date_key: str) -> bool:
        """Advance one in-memory entry; earlier or equal dates are ignored."""
        current: Optional[str] = state.get(app_number)
        if current is not None and date_key <= current:
            return False
        state[app_number] = date_key
        logger.info(f"[state] advanced app={app_number} {current or 'never'} -> {date_key}")
        return True

    def _set_aside_corrupt(self):
        backup = self.state_path.with_name(self.state_path.name + ".bad")
        try:
            os.replace(self.state_path, backup)
            logger.warning(f"[state] moved unreadable state to {backup}")
        except OSError as exc:
            logger.warning(f"[state] could not move unreadable state aside: {exc}")
