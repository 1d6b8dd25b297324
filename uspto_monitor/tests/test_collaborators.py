import asyncio

import httpx
import orjson
import pytest

from uspto_monitor.src.config import Config
from uspto_monitor.src.connectors import DriveConnector, LawmaticsConnector, MailConnector
from uspto_monitor.src.errors import ConfigurationError

FIELDS = {
    "application_number": "97123456",
    "date": "2024-03-05",
    "description": "Office Action",
    "document_code": "N/A",
    "category": "N/A",
    "link": "https://drive.example/file/1",
}


def _client(handler) -> httpx.AsyncClient:
    return httpx.AsyncClient(transport=httpx.MockTransport(handler))


def test_prospect_payload_maps_custom_fields():
    payload = LawmaticsConnector.build_prospect_payload(FIELDS)

    assert payload["notes"][0]["name"] == "USPTO Update"
    assert "Office Action" in payload["notes"][0]["body"]
    values = {f["id"]: f["value"] for f in payload["custom_fields"]}
    assert values["31473"] == "97123456"
    assert values["549382"] == "2024-03-05"
    assert values["654950"] == "https://drive.example/file/1"


def test_update_prospect_puts_payload(monitor_env, monkeypatch):
    monkeypatch.setattr(Config, "LAW_TOKEN", "Bearer abc")
    seen = []

    def handler(request: httpx.Request):
        seen.append(request)
        return httpx.Response(200, json={"data": {}})

    asyncio.run(LawmaticsConnector(client=_client(handler)).update_prospect("L1", FIELDS))

    assert seen[0].method == "PUT"
    assert seen[0].url.path.endswith("/prospects/L1")
    assert seen[0].headers["Authorization"] == "Bearer abc"
    assert orjson.loads(seen[0].content)["custom_fields"]


def test_update_prospect_propagates_http_errors(monitor_env):
    connector = LawmaticsConnector(client=_client(lambda request: httpx.Response(422, text="bad")))
    with pytest.raises(httpx.HTTPStatusError):
        asyncio.run(connector.update_prospect("L1", FIELDS))


def test_get_prospect(monitor_env):
    ok = LawmaticsConnector(
        client=_client(lambda request: httpx.Response(200, json={"data": {"attributes": {"first_name": "Ada"}}}))
    )
    missing = LawmaticsConnector(client=_client(lambda request: httpx.Response(404, text="nope")))

    assert asyncio.run(ok.get_prospect("L1")) == {"first_name": "Ada"}
    assert asyncio.run(missing.get_prospect("L1")) is None


def test_submit_form_without_url_is_skipped(monitor_env):
    connector = LawmaticsConnector(client=_client(lambda request: httpx.Response(200)))
    assert asyncio.run(connector.submit_form("L1", FIELDS)) is False


def test_submit_form_posts_non_placeholder_fields(monitor_env, monkeypatch):
    monkeypatch.setattr(Config, "LAWMATICS_FORM_URL", "https://forms.example/update")
    seen = []

    def handler(request: httpx.Request):
        seen.append(orjson.loads(request.content))
        return httpx.Response(200)

    assert asyncio.run(LawmaticsConnector(client=_client(handler)).submit_form("L1", FIELDS)) is True
    assert seen[0]["id"] == "L1"
    assert "document_code" not in seen[0]
    assert seen[0]["date"] == "2024-03-05"


def test_submit_form_times_out(monitor_env, monkeypatch):
    monkeypatch.setattr(Config, "LAWMATICS_FORM_URL", "https://forms.example/update")

    async def slow_handler(request: httpx.Request):
        await asyncio.sleep(0.5)
        return httpx.Response(200)

    connector = LawmaticsConnector(client=_client(slow_handler))
    with pytest.raises(asyncio.TimeoutError):
        asyncio.run(connector.submit_form("L1", FIELDS, timeout=0.05))


def test_drive_upload_without_token_returns_none(monitor_env):
    connector = DriveConnector(client=_client(lambda request: httpx.Response(500)))
    assert asyncio.run(connector.upload(b"%PDF", "a.pdf", "application/pdf")) is None


def test_drive_upload_requires_folder(monitor_env, monkeypatch):
    monkeypatch.setattr(Config, "GDRIVE_ACCESS_TOKEN", "token")
    connector = DriveConnector(client=_client(lambda request: httpx.Response(200, json={})))
    with pytest.raises(ConfigurationError):
        asyncio.run(connector.upload(b"%PDF", "a.pdf", "application/pdf"))


def test_drive_upload_returns_view_link(monitor_env, monkeypatch):
    monkeypatch.setattr(Config, "GDRIVE_ACCESS_TOKEN", "token")
    monkeypatch.setattr(Config, "GDRIVE_FOLDER_ID", "folder-1")
    seen = []

    def handler(request: httpx.Request):
        seen.append(request)
        return httpx.Response(200, json={"id": "f1", "webViewLink": "https://drive.example/file/f1"})

    link = asyncio.run(DriveConnector(client=_client(handler)).upload(b"%PDF", "a.pdf", "application/pdf"))

    assert link == "https://drive.example/file/f1"
    assert seen[0].headers["Authorization"] == "Bearer token"
    assert seen[0].headers["Content-Type"].startswith("multipart/related")
    assert b'"parents":["folder-1"]' in seen[0].content
    assert b"%PDF" in seen[0].content


def test_mail_not_configured_returns_false(monitor_env):
    assert asyncio.run(MailConnector().notify("subject", "<p>body</p>")) is False


def test_mail_sends_html_message(monitor_env, monkeypatch):
    monkeypatch.setattr(Config, "EMAIL_USER", "monitor@example.com")
    monkeypatch.setattr(Config, "EMAIL_PASS", "pw")
    monkeypatch.setattr(Config, "EMAIL_TO", ["a@example.com", "b@example.com"])
    sent = []
    connector = MailConnector()
    monkeypatch.setattr(connector, "_send_blocking", sent.append)

    assert asyncio.run(connector.notify("New document", "<p>hello</p>")) is True
    msg = sent[0]
    assert msg["To"] == "a@example.com, b@example.com"
    assert msg["Subject"] == "New document"
    assert msg.get_body(preferencelist=("html",)).get_content().strip() == "<p>hello</p>"
