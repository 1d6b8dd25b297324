import re
from datetime import date
from typing import Awaitable, Callable, Dict, List, Optional, Tuple
from urllib.parse import quote
from xml.etree import ElementTree as ET

import httpx
from loguru import logger

from ..config import Config
from ..models import Document, FetchResult, FilingType
from ..utils import TextUtils

_TZ_SUFFIX_RE = re.compile(r"-\d{2}:\d{2}$")
_ISO_DATE_RE = re.compile(r"^\s*(\d{4}-\d{2}-\d{2})")


def parse_effective_date(raw: Optional[str]) -> Optional[date]:
    """Return the calendar date at the start of ``raw`` or None if there is none."""
    if not raw:
        return None
    match = _ISO_DATE_RE.match(_TZ_SUFFIX_RE.sub("", raw.strip()))
    if not match:
        return None
    try:
        return date.fromisoformat(match.group(1))
    except ValueError:
        return None


def _local(tag: str) -> str:
    return tag.rsplit("}", 1)[-1]


def _child_text(element: ET.Element, name: str) -> Optional[str]:
    for child in element:
        if _local(child.tag) == name and child.text and child.text.strip():
            return child.text.strip()
    return None


def _first_url_path(element: ET.Element) -> Optional[str]:
    for child in element:
        if _local(child.tag) == "UrlPathList":
            for sub in child.iter():
                if _local(sub.tag) == "UrlPath" and sub.text and sub.text.strip():
                    return sub.text.strip()
    return None


class UsptoConnector:
    """Fetches and normalizes matter documents from the USPTO registries.

    Trademarks come from the TSDR case-docs XML bundle, patents from the
    patent file wrapper JSON API. Every registry failure is reported as an
    empty result with an error message; nothing raises past ``fetch``.
    """

    def __init__(self, client: Optional[httpx.AsyncClient] = None):
        self._client = client
        self._variants: Dict[FilingType, Tuple[Callable[[str], Awaitable[httpx.Response]], Callable[[httpx.Response], List[Document]]]] = {
            FilingType.TRADEMARK: (self._request_trademark, self._parse_trademark_response),
            FilingType.PATENT: (self._request_patent, self._parse_patent_response),
        }

    @staticmethod
    def _headers(key_header: str, accept: Optional[str] = None) -> Dict[str, str]:
        headers: Dict[str, str] = {}
        if Config.USPTO_API_KEY:
            headers[key_header] = Config.USPTO_API_KEY
        if accept:
            headers["accept"] = accept
        return headers

    async def _get(self, url: str, headers: Dict[str, str], timeout: float, params: Optional[dict] = None) -> httpx.Response:
        if self._client is not None:
            response = await self._client.get(url, headers=headers, params=params, timeout=timeout)
        else:
            async with httpx.AsyncClient(timeout=timeout, follow_redirects=True) as client:
                response = await client.get(url, headers=headers, params=params)
        response.raise_for_status()
        return response

    async def _request_trademark(self, application_number: str) -> httpx.Response:
        return await self._get(
            Config.TRADEMARK_DOCS_URL,
            headers=self._headers("USPTO-API-KEY"),
            timeout=Config.REGISTRY_TIMEOUT,
            params={"sn": application_number},
        )

    async def _request_patent(self, application_number: str) -> httpx.Response:
        url = f"{Config.PATENT_DOCS_URL}/{quote(application_number, safe='')}/documents"
        return await self._get(
            url,
            headers=self._headers("X-API-KEY", accept="application/json"),
            timeout=Config.REGISTRY_TIMEOUT,
        )

    @staticmethod
    def parse_trademark_documents(xml_payload: str | bytes) -> List[Document]:
        """Normalize a TSDR ``DocumentList`` payload, newest first."""
        root = ET.fromstring(xml_payload)
        documents = []
        for element in root.iter():
            if _local(element.tag) != "Document":
                continue
            effective = parse_effective_date(
                _child_text(element, "MailRoomDate") or _child_text(element, "ScanDateTime")
            )
            if effective is None:
                continue
            documents.append(
                Document(
                    date=effective,
                    description=_child_text(element, "DocumentTypeDescriptionText") or "Unknown",
                    link=_first_url_path(element) or "N/A",
                )
            )
        documents.sort(key=lambda d: d.date, reverse=True)
        return documents

    @staticmethod
    def parse_patent_documents(payload: dict) -> List[Document]:
        """Normalize a patent ``documentBag`` payload, newest first."""
        documents = []
        for raw in payload.get("documentBag") or []:
            effective = parse_effective_date(raw.get("officialDate"))
            if effective is None:
                continue
            downloads = raw.get("downloadOptionBag") or [{}]
            documents.append(
                Document(
                    date=effective,
                    description=raw.get("documentCodeDescriptionText") or "Unknown",
                    document_code=raw.get("documentCode") or "N/A",
                    category=raw.get("directionCategory") or "N/A",
                    link=downloads[0].get("downloadUrl") or "N/A",
                )
            )
        documents.sort(key=lambda d: d.date, reverse=True)
        return documents

    def _parse_trademark_response(self, response: httpx.Response) -> List[Document]:
        return self.parse_trademark_documents(response.content)

    def _parse_patent_response(self, response: httpx.Response) -> List[Document]:
        payload = response.json()
        if not isinstance(payload, dict):
            raise ValueError("patent documents payload is not an object")
        return self.parse_patent_documents(payload)

    async def fetch(self, application_number: str, filing_type: FilingType | str) -> FetchResult:
        """Fetch documents for one matter, reporting failures in ``FetchResult.error``."""
        try:
            kind = FilingType(filing_type)
        except ValueError:
            logger.error(f"[uspto] unknown filing type {filing_type!r} for {application_number}")
            return FetchResult(error=f"unknown filing type: {filing_type}")

        request, parse = self._variants[kind]
        logger.info(f"[uspto] fetching {kind.value.lower()} documents for {application_number}")

        try:
            response = await request(application_number)
            documents = parse(response)
        except httpx.HTTPStatusError as exc:
            body = TextUtils.truncate_text(exc.response.text, Config.LOG_PAYLOAD_PREVIEW_MAX)
            logger.error(
                f"[uspto] {kind.value} #{application_number} status={exc.response.status_code} body={body}"
            )
            return FetchResult(error=f"HTTP {exc.response.status_code}")
        except httpx.HTTPError as exc:
            logger.error(f"[uspto] {kind.value} #{application_number} request failed: {exc!r}")
            return FetchResult(error=f"request failed: {exc.__class__.__name__}")
        except (ET.ParseError, ValueError, TypeError, AttributeError) as exc:
            logger.error(f"[uspto] {kind.value} #{application_number} malformed payload: {exc}")
            return FetchResult(error=f"malformed payload: {exc}")

        if documents:
            logger.info(f"[uspto] found {len(documents)} dated documents for {application_number}")
        else:
            logger.info(f"[uspto] no {kind.value.lower()} documents for {application_number}")
        return FetchResult(documents=documents)

    async def fetch_documents(self, application_number: str, filing_type: FilingType | str) -> List[Document]:
        return (await self.fetch(application_number, filing_type)).documents

    async def download(self, document: Document, filing_type: FilingType) -> Tuple[bytes, str, str]:
        """Download a document's source file.

        Returns ``(content, mime_type, extension)``. Patent downloads go
        through ``PATENT_DOWNLOAD_PROXY`` when one is configured.
        """
        if filing_type == FilingType.PATENT:
            if Config.PATENT_DOWNLOAD_PROXY:
                response = await self._get(
                    Config.PATENT_DOWNLOAD_PROXY,
                    headers={},
                    timeout=Config.DOWNLOAD_TIMEOUT,
                    params={"url": document.link},
                )
                return response.content, "application/pdf", "pdf"
            return await self.download_patent_file(document.link), "application/pdf", "pdf"

        response = await self._get(document.link, headers={}, timeout=Config.DOWNLOAD_TIMEOUT)
        if "/webcontent" not in document.link and ".xml" in document.link:
            return response.content, "application/xml", "xml"
        return response.content, "application/pdf", "pdf"

    async def download_patent_file(self, url: str) -> bytes:
        """Fetch a patent file straight from the registry with the API key."""
        response = await self._get(url, headers=self._headers("X-API-KEY"), timeout=Config.DOWNLOAD_TIMEOUT)
        return response.content
