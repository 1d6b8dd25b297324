import re
from typing import Any

import orjson


class TextUtils:
    """Utility class for text processing operations."""

    @staticmethod
    def truncate_text(text: Any, limit: int) -> str:
        """Truncate text to specified limit with indicator."""
        try:
            s = text if isinstance(text, str) else orjson.dumps(text, default=str).decode("utf-8")
        except TypeError:
            s = str(text)
        if limit <= 0 or len(s) <= limit:
            return s
        tail = len(s) - limit
        return f"{s[:limit]}... [truncated {tail} chars]"

    @staticmethod
    def safe_filename(application_number: str, description: str, extension: str) -> str:
        """Build an upload file name from the application number and description."""
        slug = re.sub(r"[^a-zA-Z0-9]", "_", description or "document")
        return f"{application_number}-{slug}.{extension}"
