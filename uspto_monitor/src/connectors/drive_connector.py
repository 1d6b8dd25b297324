from typing import Optional

import httpx
import orjson
from loguru import logger

from ..config import Config
from ..errors import ConfigurationError

_BOUNDARY = "uspto-monitor-upload"


class DriveConnector:
    """Uploads document files into the configured Google Drive folder."""

    def __init__(self, client: Optional[httpx.AsyncClient] = None):
        self._client = client

    @staticmethod
    def is_available() -> bool:
        return bool(Config.GDRIVE_ACCESS_TOKEN)

    @staticmethod
    def build_multipart_body(file_name: str, folder_id: Optional[str], content: bytes, mime_type: str) -> bytes:
        """Build a ``multipart/related`` body: JSON metadata part, then the media part."""
        metadata = {"name": file_name}
        if folder_id:
            metadata["parents"] = [folder_id]
        return b"".join(
            [
                f"--{_BOUNDARY}\r\nContent-Type: application/json; charset=UTF-8\r\n\r\n".encode(),
                orjson.dumps(metadata),
                f"\r\n--{_BOUNDARY}\r\nContent-Type: {mime_type}\r\n\r\n".encode(),
                content,
                f"\r\n--{_BOUNDARY}--\r\n".encode(),
            ]
        )

    async def upload(self, content: bytes, file_name: str, mime_type: str) -> Optional[str]:
        """Upload ``content`` and return its web view link.

        Returns None when no Drive token is configured (upload unavailable).
        HTTP failures raise ``httpx.HTTPError``.
        """
        if not self.is_available():
            logger.info("[drive] no access token configured; skipping upload")
            return None
        if not Config.GDRIVE_FOLDER_ID:
            raise ConfigurationError("GDRIVE_FOLDER_ID is not set")

        body = self.build_multipart_body(file_name, Config.GDRIVE_FOLDER_ID, content, mime_type)
        headers = {
            "Authorization": f"Bearer {Config.GDRIVE_ACCESS_TOKEN}",
            "Content-Type": f"multipart/related; boundary={_BOUNDARY}",
        }

        logger.info(f"[drive] uploading {file_name} ({mime_type}, {len(content)} bytes)")
        if self._client is not None:
            response = await self._client.post(
                Config.GDRIVE_UPLOAD_URL, content=body, headers=headers, timeout=Config.DOWNLOAD_TIMEOUT
            )
        else:
            async with httpx.AsyncClient(timeout=Config.DOWNLOAD_TIMEOUT) as client:
                response = await client.post(Config.GDRIVE_UPLOAD_URL, content=body, headers=headers)
        response.raise_for_status()

        link = response.json().get("webViewLink")
        logger.info(f"[drive] uploaded {file_name}: {link}")
        return link
