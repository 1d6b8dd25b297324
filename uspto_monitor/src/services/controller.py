import asyncio
from typing import Any, Dict, List, Optional

import httpx
from loguru import logger

from ..config import Config
from ..connectors import DriveConnector, LawmaticsConnector, MailConnector, UsptoConnector
from ..errors import DocumentsNotFoundError, UpstreamError
from ..models import FilingType
from ..processing import InFlightGuard, MatterRegistry, RunOrchestrator, SideEffectPipeline, StateManager
from .bootstrap import ServiceBootstrapper
from .scheduler import SchedulerCoordinator
from .status import AutomationStatus


class AutomationController:
    """Entry points shared by the HTTP API, the scheduler and the CLI.

    Every method returns a ``{success, message, ...}`` envelope.
    """

    def __init__(
        self,
        orchestrator: RunOrchestrator,
        status: AutomationStatus,
        scheduler: Optional[SchedulerCoordinator] = None,
    ):
        self.orchestrator = orchestrator
        self.registry = orchestrator.registry
        self.guard = orchestrator.guard
        self.status = status
        self.scheduler = scheduler or SchedulerCoordinator(self._scheduled_sweep, status)
        self._snapshot_task: Optional[asyncio.Task] = None

    @classmethod
    def from_config(cls) -> "AutomationController":
        source = UsptoConnector()
        notifier = MailConnector()
        guard = InFlightGuard()
        pipeline = SideEffectPipeline(source, DriveConnector(), notifier, LawmaticsConnector())
        orchestrator = RunOrchestrator(
            registry=MatterRegistry(),
            state_manager=StateManager(),
            guard=guard,
            source=source,
            pipeline=pipeline,
            notifier=notifier,
        )
        return cls(orchestrator, AutomationStatus(guard))

    async def _scheduled_sweep(self):
        with self.status.track_run("scheduled"):
            await self.orchestrator.run_sweep()

    async def _snapshot_loop(self):
        while True:
            await asyncio.sleep(Config.STATUS_SNAPSHOT_SECONDS)
            self.status.save()

    async def startup(self):
        ServiceBootstrapper.bootstrap()
        was_enabled = self.status.restore()
        if was_enabled or Config.AUTOSTART_SCHEDULER:
            logger.info("[controller] re-starting scheduled automation")
            self.scheduler.start_scheduler()
        self._snapshot_task = asyncio.get_running_loop().create_task(self._snapshot_loop())

    async def shutdown(self):
        if self._snapshot_task is not None:
            self._snapshot_task.cancel()
            self._snapshot_task = None
        enabled = self.scheduler.is_enabled
        self.scheduler.request_stop()
        # Keep the enabled flag so the next start resumes the schedule.
        self.status.enabled = enabled
        self.status.save()

    def start_scheduler(self) -> Dict[str, Any]:
        if not self.scheduler.start_scheduler():
            return {"success": False, "message": "Automation is already running"}
        return {"success": True, "message": f"Automation started (runs every {self.scheduler.minutes} minutes)"}

    def stop_scheduler(self) -> Dict[str, Any]:
        if not self.scheduler.request_stop():
            return {"success": False, "message": "Automation was not running"}
        return {"success": True, "message": "Automation stopped"}

    async def run_once(self) -> Dict[str, Any]:
        logger.info("[controller] running automation once (all matters)")
        with self.status.track_run("manual"):
            report = await self.orchestrator.run_sweep()
        return report.envelope()

    async def process_single(self, lawmatics_id: str) -> Dict[str, Any]:
        with self.status.track_run("single"):
            result = await self.orchestrator.process_single(lawmatics_id)
        matter = self.registry.get(lawmatics_id)
        return {
            "success": result.success,
            "message": result.message,
            "processed": result.processed,
            "matter": matter.to_record() if matter else None,
        }

    async def process_multiple(self, lawmatics_ids: List[str]) -> Dict[str, Any]:
        with self.status.track_run("targeted"):
            report = await self.orchestrator.run_targeted(lawmatics_ids)
        return report.envelope()

    def get_status(self) -> Dict[str, Any]:
        return {
            "success": True,
            "message": "Automation status",
            "scheduleMinutes": self.scheduler.minutes,
            **self.status.snapshot(),
        }

    def list_matters(self) -> List[Dict[str, Any]]:
        return [
            {**matter.to_record(), "isProcessing": self.guard.is_processing(matter.lawmatics_id)}
            for matter in self.registry.load_all()
        ]

    async def lookup_documents(self, application_number: str, filing_type: FilingType) -> Dict[str, Any]:
        """Normalized registry documents for one application, outside any sweep."""
        fetched = await self.orchestrator.source.fetch(application_number, filing_type)
        if fetched.failed:
            raise UpstreamError(f"Failed to fetch documents from USPTO: {fetched.error}")
        if not fetched.documents:
            raise DocumentsNotFoundError(f"No documents found for {filing_type.value.lower()} {application_number}")
        return {
            "success": True,
            "message": f"{len(fetched.documents)} documents",
            "applicationNumber": application_number,
            "type": filing_type.value,
            "documents": [
                doc.model_dump(mode="json", exclude={"drive_link", "file_type"}) for doc in fetched.documents
            ],
        }

    async def download_patent_file(self, url: str) -> bytes:
        try:
            return await self.orchestrator.source.download_patent_file(url)
        except httpx.HTTPError as exc:
            logger.error(f"[controller] patent file download failed for {url}: {exc!r}")
            raise UpstreamError("Failed to download file") from exc
