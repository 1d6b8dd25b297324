import threading
from pathlib import Path
from typing import Any, Dict, Iterable, List, Optional

from loguru import logger
from pydantic import ValidationError

from ..config import Config
from ..errors import DuplicateMatterError, MatterNotFoundError
from ..models import FilingType, Matter, utc_now_iso
from ..utils import read_json_file, write_json_file


class MatterRegistry:
    """Durable list of tracked matters backed by a single JSON document.

    Mutations rewrite the raw records, so an entry that does not parse as a
    ``Matter`` is carried through untouched rather than dropped.
    """

    def __init__(self, path: Path | None = None):
        self.path = path or Config.MATTERS_PATH
        self._lock = threading.Lock()

    def _read_records(self) -> List[Any]:
        raw = read_json_file(self.path, default=[])
        if not isinstance(raw, list):
            raise ValueError(f"expected a list of matters in {self.path}")
        return raw

    @staticmethod
    def _parse(record: Any) -> Optional[Matter]:
        try:
            return Matter.model_validate(record)
        except ValidationError as exc:
            logger.warning(f"[registry] skipping invalid matter record {record!r}: {exc}")
            return None

    def _read(self) -> List[Matter]:
        return [m for m in (self._parse(r) for r in self._read_records()) if m is not None]

    def _write(self, records: List[Any]):
        write_json_file(self.path, records)
        logger.debug(f"[registry] wrote {len(records)} matter records to {self.path}")

    def load_all(self) -> List[Matter]:
        """Return every valid registered matter, or an empty list if the file is unusable."""
        try:
            return self._read()
        except (OSError, ValueError) as exc:
            logger.error(f"[registry] error loading {self.path}: {exc}")
            return []

    def get(self, lawmatics_id: str) -> Optional[Matter]:
        return next((m for m in self.load_all() if m.lawmatics_id == lawmatics_id), None)

    def get_many(self, lawmatics_ids: Iterable[str]) -> List[Matter]:
        """Return the registered matters among ``lawmatics_ids`` in registry order."""
        wanted = set(lawmatics_ids)
        return [m for m in self.load_all() if m.lawmatics_id in wanted]

    def register(self, application_number: str, lawmatics_id: str, filing_type: FilingType | str) -> Matter:
        with self._lock:
            records = self._read_records()
            existing: List[Dict[str, Any]] = [r for r in records if isinstance(r, dict)]
            if any(r.get("applicationNumber") == application_number for r in existing):
                raise DuplicateMatterError("Matter already exists with this application number")
            if any(r.get("lawmaticsID") == lawmatics_id for r in existing):
                raise DuplicateMatterError("Matter already exists with this Lawmatics ID")

            matter = Matter(
                lawmatics_id=lawmatics_id,
                application_number=application_number,
                type=FilingType(filing_type),
            )
            records.append(matter.to_record())
            self._write(records)

        logger.info(f"[registry] registered {matter.type.value} #{application_number} id={lawmatics_id}")
        return matter

    def update_status(self, lawmatics_id: str, status: str) -> Matter:
        """Set the display status on one valid record; other records are written back as read."""
        with self._lock:
            records = self._read_records()
            for record in records:
                if not isinstance(record, dict) or record.get("lawmaticsID") != lawmatics_id:
                    continue
                matter = self._parse(record)
                if matter is None:
                    continue
                old_status = matter.status
                record["status"] = status
                record["lastUpdated"] = utc_now_iso()
                self._write(records)
                break
            else:
                raise MatterNotFoundError(lawmatics_id)

        if old_status != status:
            logger.info(f"[registry] matter {lawmatics_id} status: {old_status} -> {status}")
        return matter.model_copy(update={"status": status, "last_updated": record["lastUpdated"]})

    def remove(self, lawmatics_id: str) -> int:
        with self._lock:
            records = self._read_records()
            remaining = [
                r for r in records if not (isinstance(r, dict) and r.get("lawmaticsID") == lawmatics_id)
            ]
            removed = len(records) - len(remaining)
            if not removed:
                raise MatterNotFoundError(lawmatics_id)
            self._write(remaining)

        logger.info(f"[registry] removed matter {lawmatics_id}")
        return removed

    def try_update_status(self, lawmatics_id: str, status: str) -> bool:
        """Status update used during processing; failures are logged, never raised."""
        try:
            self.update_status(lawmatics_id, status)
            return True
        except (MatterNotFoundError, OSError, ValueError) as exc:
            logger.error(f"[registry] could not set status {status!r} on {lawmatics_id}: {exc}")
            return False


__all__ = ["MatterRegistry"]
