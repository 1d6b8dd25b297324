import asyncio
from datetime import date

import httpx
import pytest

from uspto_monitor.src.config import Config
from uspto_monitor.src.connectors.uspto_connector import UsptoConnector, parse_effective_date
from uspto_monitor.src.models import FilingType

TRADEMARK_XML = b"""<?xml version="1.0" encoding="UTF-8"?>
<DocumentList xmlns="urn:us:gov:doc:uspto:trademark">
  <Document>
    <ScanDateTime>2024-03-01T10:15:00-05:00</ScanDateTime>
    <DocumentTypeDescriptionText>Response to Office Action</DocumentTypeDescriptionText>
    <UrlPathList><UrlPath>https://tsdr.example/docs/older.pdf</UrlPath></UrlPathList>
  </Document>
  <Document>
    <MailRoomDate>2024-03-05-04:00</MailRoomDate>
    <ScanDateTime>2024-03-06T08:00:00-04:00</ScanDateTime>
    <DocumentTypeDescriptionText>Office Action</DocumentTypeDescriptionText>
    <UrlPathList><UrlPath>https://tsdr.example/docs/oa.xml</UrlPath></UrlPathList>
  </Document>
  <Document>
    <DocumentTypeDescriptionText>Undated</DocumentTypeDescriptionText>
  </Document>
</DocumentList>
"""

PATENT_JSON = {
    "documentBag": [
        {
            "officialDate": "2024-02-10T00:00:00.000-0500",
            "documentCodeDescriptionText": "Non-Final Rejection",
            "documentCode": "CTNF",
            "directionCategory": "OUTGOING",
            "downloadOptionBag": [{"downloadUrl": "https://api.example/ctnf.pdf"}],
        },
        {
            "officialDate": "2024-03-04T00:00:00.000-0500",
            "documentCode": "NOA",
        },
        {"documentCode": "X"},
    ]
}


def _connector(handler) -> UsptoConnector:
    return UsptoConnector(client=httpx.AsyncClient(transport=httpx.MockTransport(handler)))


@pytest.mark.parametrize(
    "raw, expected",
    [
        ("2024-03-05-04:00", date(2024, 3, 5)),
        ("2024-03-05T23:30:00-05:00", date(2024, 3, 5)),
        ("2024-03-05", date(2024, 3, 5)),
        ("", None),
        (None, None),
        ("March 5", None),
    ],
)
def test_parse_effective_date(raw, expected):
    assert parse_effective_date(raw) == expected


def test_parse_trademark_documents_newest_first():
    docs = UsptoConnector.parse_trademark_documents(TRADEMARK_XML)

    assert [d.date_key for d in docs] == ["2024-03-05", "2024-03-01"]
    assert docs[0].description == "Office Action"
    assert docs[0].link == "https://tsdr.example/docs/oa.xml"
    assert docs[1].document_code == "N/A"


def test_parse_patent_documents_defaults():
    docs = UsptoConnector.parse_patent_documents(PATENT_JSON)

    assert [d.date_key for d in docs] == ["2024-03-04", "2024-02-10"]
    assert docs[0].description == "Unknown"
    assert docs[0].link == "N/A"
    assert docs[1].document_code == "CTNF"
    assert docs[1].category == "OUTGOING"
    assert docs[1].link == "https://api.example/ctnf.pdf"


def test_fetch_trademark_sends_serial_and_key(monkeypatch):
    monkeypatch.setattr(Config, "USPTO_API_KEY", "secret")
    seen = []

    def handler(request: httpx.Request):
        seen.append(request)
        return httpx.Response(200, content=TRADEMARK_XML)

    result = asyncio.run(_connector(handler).fetch("97123456", FilingType.TRADEMARK))

    assert not result.failed
    assert len(result.documents) == 2
    assert seen[0].url.params["sn"] == "97123456"
    assert seen[0].headers["USPTO-API-KEY"] == "secret"


def test_fetch_patent_uses_documents_endpoint(monkeypatch):
    monkeypatch.setattr(Config, "USPTO_API_KEY", "secret")
    seen = []

    def handler(request: httpx.Request):
        seen.append(request)
        return httpx.Response(200, json=PATENT_JSON)

    docs = asyncio.run(_connector(handler).fetch_documents("16123456", "Patent"))

    assert len(docs) == 2
    assert seen[0].url.path.endswith("/16123456/documents")
    assert seen[0].headers["X-API-KEY"] == "secret"


def test_fetch_http_error_returns_empty_with_error():
    result = asyncio.run(
        _connector(lambda request: httpx.Response(500, text="down")).fetch("97123456", FilingType.TRADEMARK)
    )
    assert result.documents == []
    assert result.error == "HTTP 500"


def test_fetch_transport_error_returns_empty_with_error():
    def handler(request):
        raise httpx.ConnectError("refused", request=request)

    result = asyncio.run(_connector(handler).fetch("16123456", FilingType.PATENT))
    assert result.documents == []
    assert result.error == "request failed: ConnectError"


def test_fetch_malformed_payload_returns_empty_with_error():
    result = asyncio.run(
        _connector(lambda request: httpx.Response(200, content=b"<DocumentList>")).fetch(
            "97123456", FilingType.TRADEMARK
        )
    )
    assert result.documents == []
    assert result.error.startswith("malformed payload")


def test_fetch_unknown_type_is_an_error():
    result = asyncio.run(_connector(lambda request: httpx.Response(200)).fetch("1", "Design"))
    assert result.failed
    assert result.documents == []


def test_download_detects_trademark_xml(make_doc):
    connector = _connector(lambda request: httpx.Response(200, content=b"<xml/>"))
    doc = make_doc("2024-03-05", link="https://tsdr.example/docs/oa.xml")

    content, mime, ext = asyncio.run(connector.download(doc, FilingType.TRADEMARK))

    assert content == b"<xml/>"
    assert (mime, ext) == ("application/xml", "xml")


def test_download_patent_through_proxy(monkeypatch, make_doc):
    monkeypatch.setattr(Config, "PATENT_DOWNLOAD_PROXY", "https://proxy.example/fetch")
    seen = []

    def handler(request: httpx.Request):
        seen.append(request)
        return httpx.Response(200, content=b"%PDF")

    doc = make_doc("2024-03-05", link="https://api.example/ctnf.pdf")
    _, mime, ext = asyncio.run(_connector(handler).download(doc, FilingType.PATENT))

    assert (mime, ext) == ("application/pdf", "pdf")
    assert seen[0].url.host == "proxy.example"
    assert seen[0].url.params["url"] == "https://api.example/ctnf.pdf"


def test_download_patent_file_sends_api_key(monkeypatch):
    monkeypatch.setattr(Config, "USPTO_API_KEY", "secret")
    seen = []

    def handler(request: httpx.Request):
        seen.append(request)
        return httpx.Response(200, content=b"%PDF")

    content = asyncio.run(_connector(handler).download_patent_file("https://api.example/ctnf.pdf"))

    assert content == b"%PDF"
    assert seen[0].headers["X-API-KEY"] == "secret"
