import asyncio
from typing import Any, Dict, Optional

import httpx
from loguru import logger

from ..config import Config
from ..utils import TextUtils

# Lawmatics custom field ids for the USPTO fields on a prospect.
CUSTOM_FIELD_IDS: Dict[str, str] = {
    "application_number": "31473",
    "date": "549382",
    "description": "624707",
    "document_code": "633940",
    "category": "624715",
    "link": "654950",
}


class LawmaticsConnector:
    """Lawmatics CRM client: prospect reads, prospect updates and form submission."""

    def __init__(self, client: Optional[httpx.AsyncClient] = None):
        self._client = client

    @staticmethod
    def get_headers() -> Dict[str, str]:
        return {"Authorization": Config.LAW_TOKEN or "", "Content-Type": "application/json"}

    async def _request(self, method: str, url: str, timeout: float, **kwargs) -> httpx.Response:
        if self._client is not None:
            response = await self._client.request(method, url, headers=self.get_headers(), timeout=timeout, **kwargs)
        else:
            async with httpx.AsyncClient(timeout=timeout) as client:
                response = await client.request(method, url, headers=self.get_headers(), **kwargs)
        response.raise_for_status()
        return response

    @staticmethod
    def build_prospect_payload(fields: Dict[str, str]) -> Dict[str, Any]:
        """Map record fields onto a note plus Lawmatics custom fields."""
        return {
            "notes": [
                {
                    "name": "USPTO Update",
                    "body": (
                        f"Document Type: {fields.get('description', 'Unknown')}\n"
                        f"Mailroom Date: {fields.get('date', '')}\n"
                        f"Download Link: {fields.get('link', 'N/A')}"
                    ),
                }
            ],
            "custom_fields": [
                {"id": field_id, "value": fields.get(name) or "N/A"}
                for name, field_id in CUSTOM_FIELD_IDS.items()
            ],
        }

    async def update_prospect(self, lawmatics_id: str, fields: Dict[str, str]):
        """PUT the USPTO fields onto a prospect. HTTP errors propagate."""
        url = f"{Config.LAWMATICS_API_URL}/prospects/{lawmatics_id}"
        await self._request("PUT", url, timeout=Config.CRM_TIMEOUT, json=self.build_prospect_payload(fields))
        logger.info(f"[lawmatics] prospect {lawmatics_id} updated for #{fields.get('application_number')}")

    async def get_prospect(self, lawmatics_id: str) -> Optional[Dict[str, Any]]:
        """Return prospect attributes, or None when they cannot be fetched."""
        url = f"{Config.LAWMATICS_API_URL}/prospects/{lawmatics_id}"
        try:
            response = await self._request("GET", url, timeout=Config.CRM_TIMEOUT, params={"fields": "all"})
            return response.json()["data"]["attributes"]
        except httpx.HTTPStatusError as exc:
            body = TextUtils.truncate_text(exc.response.text, Config.LOG_PAYLOAD_PREVIEW_MAX)
            logger.error(f"[lawmatics] prospect {lawmatics_id} fetch status={exc.response.status_code} body={body}")
        except httpx.HTTPError as exc:
            logger.error(f"[lawmatics] prospect {lawmatics_id} fetch failed: {exc!r}")
        except (ValueError, KeyError, TypeError) as exc:
            logger.error(f"[lawmatics] prospect {lawmatics_id} malformed response: {exc!r}")
        return None

    async def submit_form(self, lawmatics_id: str, fields: Dict[str, str], timeout: Optional[float] = None) -> bool:
        """Submit the update-by-id form once, with a soft timeout and no retry.

        Returns False when no form URL is configured. Timeouts raise
        ``asyncio.TimeoutError``; HTTP failures raise ``httpx.HTTPError``.
        """
        if not Config.LAWMATICS_FORM_URL:
            logger.info("[lawmatics] no form URL configured; skipping form submission")
            return False

        payload = {"id": lawmatics_id, **{k: v for k, v in fields.items() if v and v != "N/A"}}
        limit = timeout if timeout is not None else Config.FORM_TIMEOUT
        await asyncio.wait_for(
            self._request("POST", Config.LAWMATICS_FORM_URL, timeout=limit, json=payload),
            timeout=limit,
        )
        logger.info(f"[lawmatics] form submitted for prospect {lawmatics_id}")
        return True
