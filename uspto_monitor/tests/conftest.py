import datetime as dt
from typing import Dict, List, Optional, Set

import httpx
import pytest

from uspto_monitor.src.config import Config
from uspto_monitor.src.models import Document, FetchResult, PipelineResult, StepOutcome
from uspto_monitor.src.processing import InFlightGuard, MatterRegistry, RunOrchestrator, StateManager

TODAY = "2024-03-05"


def _make_doc(date_key: str, description: str = "Office Action", link: str = "https://example.test/doc.pdf", **extra):
    return Document(date=dt.date.fromisoformat(date_key), description=description, link=link, **extra)


class FakeSource:
    def __init__(self):
        self.documents: Dict[str, List[Document]] = {}
        self.errors: Dict[str, str] = {}
        self.failures: Dict[str, Exception] = {}
        self.calls: List[str] = []
        self.files: Dict[str, bytes] = {}

    async def fetch(self, application_number, filing_type):
        self.calls.append(application_number)
        if application_number in self.failures:
            raise self.failures[application_number]
        if application_number in self.errors:
            return FetchResult(error=self.errors[application_number])
        return FetchResult(documents=list(self.documents.get(application_number, [])))

    async def download_patent_file(self, url):
        if url not in self.files:
            raise httpx.HTTPStatusError(
                "not found", request=httpx.Request("GET", url), response=httpx.Response(404)
            )
        return self.files[url]


class FakePipeline:
    def __init__(self):
        self.runs: List[tuple] = []
        self.failures: Set[str] = set()

    async def run(self, matter, document):
        self.runs.append((matter.application_number, document.date_key, document.description))
        if matter.application_number in self.failures:
            raise RuntimeError("pipeline exploded")
        return PipelineResult(document=document, steps={"notify": StepOutcome.OK})


class FakeNotifier:
    def __init__(self, fail: Optional[Exception] = None):
        self.messages: List[tuple] = []
        self.fail = fail

    async def notify(self, subject, body):
        if self.fail is not None:
            raise self.fail
        self.messages.append((subject, body))
        return True


@pytest.fixture
def make_doc():
    return _make_doc


@pytest.fixture
def monitor_env(tmp_path, monkeypatch):
    """Point every persisted file at tmp_path and clear credentials."""
    state_dir = tmp_path / "state"
    monkeypatch.setattr(Config, "STATE_DIR", state_dir)
    monkeypatch.setattr(Config, "STATE_PATH", state_dir / "lastProcessedState.json")
    monkeypatch.setattr(Config, "STATUS_PATH", state_dir / "automation-status.json")
    monkeypatch.setattr(Config, "MATTERS_PATH", tmp_path / "map.json")
    for name in (
        "API_KEY",
        "USPTO_API_KEY",
        "PATENT_DOWNLOAD_PROXY",
        "EMAIL_USER",
        "EMAIL_PASS",
        "GDRIVE_ACCESS_TOKEN",
        "GDRIVE_FOLDER_ID",
        "LAW_TOKEN",
        "LAWMATICS_FORM_URL",
    ):
        monkeypatch.setattr(Config, name, None)
    monkeypatch.setattr(Config, "EMAIL_TO", [])
    return tmp_path


@pytest.fixture
def build_orchestrator(monitor_env):
    def _build(today: str = TODAY) -> RunOrchestrator:
        return RunOrchestrator(
            registry=MatterRegistry(Config.MATTERS_PATH),
            state_manager=StateManager(Config.STATE_PATH),
            guard=InFlightGuard(),
            source=FakeSource(),  # type: ignore[arg-type]
            pipeline=FakePipeline(),  # type: ignore[arg-type]
            notifier=FakeNotifier(),  # type: ignore[arg-type]
            matter_delay=0,
            submission_delay=0,
            today_provider=lambda: today,
        )

    return _build
