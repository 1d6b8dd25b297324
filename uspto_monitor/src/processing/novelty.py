"""Novelty decisions for fetched documents.

Dates are compared as ``YYYY-MM-DD`` strings, which order the same way as the
dates they represent.
"""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Iterable, List, Optional, Tuple

from ..models import Document


def today_key(now: Optional[datetime] = None) -> str:
    """Return today's UTC date as ``YYYY-MM-DD``."""
    return (now or datetime.now(timezone.utc)).date().isoformat()


def is_novel(document_date: str, last_processed_date: Optional[str], today_date: str) -> bool:
    """Decide whether a document dated ``document_date`` counts as unseen.

    With a recorded date the comparison is strict, so a date is processed at
    most once after it has been recorded. Without one, only documents dated
    today or later qualify; a new matter does not replay its backlog.
    """
    if last_processed_date:
        return document_date > last_processed_date
    return document_date >= today_date


def select_latest_batch(
    documents: Iterable[Document],
    last_processed_date: Optional[str],
    today_date: str,
) -> Tuple[Optional[str], List[Document]]:
    """Return the latest novel date and every novel document carrying it."""
    novel = [
        doc for doc in documents if is_novel(doc.date_key, last_processed_date, today_date)
    ]
    if not novel:
        return None, []
    latest = max(doc.date_key for doc in novel)
    return latest, [doc for doc in novel if doc.date_key == latest]


__all__ = ["today_key", "is_novel", "select_latest_batch"]
