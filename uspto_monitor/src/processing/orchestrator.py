import asyncio
from typing import Callable, Dict, Iterable, List, Optional

from loguru import logger

from ..config import Config
from ..connectors import MailConnector, UsptoConnector
from ..models import Matter, MatterResult, MatterStatus, RunReport
from .inflight_guard import InFlightGuard
from .matter_registry import MatterRegistry
from .messages import no_updates_message, summary_message
from .novelty import select_latest_batch, today_key
from .pipeline import SideEffectPipeline
from .state_manager import StateManager


class RunOrchestrator:
    """Drives sweeps and targeted runs over the matter registry.

    Matters are processed one at a time. The processed-state mapping is
    loaded once per run and committed once when the run ends.
    """

    def __init__(
        self,
        registry: MatterRegistry,
        state_manager: StateManager,
        guard: InFlightGuard,
        source: UsptoConnector,
        pipeline: SideEffectPipeline,
        notifier: MailConnector,
        matter_delay: Optional[float] = None,
        submission_delay: Optional[float] = None,
        today_provider: Callable[[], str] = today_key,
    ):
        self.registry = registry
        self.state_manager = state_manager
        self.guard = guard
        self.source = source
        self.pipeline = pipeline
        self.notifier = notifier
        self.matter_delay = Config.MATTER_DELAY_SECONDS if matter_delay is None else matter_delay
        self.submission_delay = Config.SUBMISSION_DELAY_SECONDS if submission_delay is None else submission_delay
        self.today_provider = today_provider

    @staticmethod
    def _base_result(matter: Matter, **kwargs) -> MatterResult:
        return MatterResult(
            lawmatics_id=matter.lawmatics_id,
            application_number=matter.application_number,
            type=matter.type,
            **kwargs,
        )

    async def _process_documents(self, matter: Matter, state: Dict[str, str], today: str) -> MatterResult:
        fetched = await self.source.fetch(matter.application_number, matter.type)
        if fetched.failed:
            return self._base_result(matter, success=False, message=f"Document fetch failed: {fetched.error}")
        if not fetched.documents:
            logger.info(f"[matter] skip #{matter.application_number}: no documents found")
            return self._base_result(matter, message="No documents found", description="No documents")

        last_processed = state.get(matter.application_number)
        newest = max(doc.date_key for doc in fetched.documents)
        latest_date, batch = select_latest_batch(fetched.documents, last_processed, today)
        if not batch:
            logger.info(
                f"[matter] skip #{matter.application_number}: no new documents "
                f"(last={last_processed or 'never'} newest={newest})"
            )
            return self._base_result(
                matter,
                message="No new documents",
                description="No new documents",
                latest_doc_date=newest,
            )

        logger.info(f"[matter] #{matter.application_number}: {len(batch)} document(s) for latest date {latest_date}")
        pipeline_results = []
        for index, document in enumerate(batch):
            logger.info(f"[matter] document {index + 1}/{len(batch)} for {latest_date}")
            pipeline_results.append(await self.pipeline.run(matter, document))
            if index < len(batch) - 1 and self.submission_delay > 0:
                await asyncio.sleep(self.submission_delay)

        StateManager.advance(state, matter.application_number, latest_date)
        return self._base_result(
            matter,
            processed=True,
            message="New document processed",
            doc_count=len(batch),
            latest_doc_date=latest_date,
            description=batch[0].description,
            pipeline=pipeline_results,
        )

    async def process_matter(self, matter: Matter, state: Dict[str, str], today: str) -> MatterResult:
        """One guarded attempt: claim, fetch, filter, run the pipeline, set the display status."""
        with self.guard.hold(matter.lawmatics_id) as acquired:
            if not acquired:
                return self._base_result(
                    matter, success=False, rejected=True, message="Matter is already being processed"
                )

            logger.info(
                f"[matter] processing {matter.type.value} #{matter.application_number} "
                f"(Lawmatics ID: {matter.lawmatics_id})"
            )
            self.registry.try_update_status(matter.lawmatics_id, MatterStatus.PROCESSING)
            try:
                result = await self._process_documents(matter, state, today)
            except Exception as exc:
                logger.exception(f"[matter] error processing {matter.lawmatics_id}: {exc}")
                result = self._base_result(matter, success=False, message=str(exc) or exc.__class__.__name__)

            if result.processed:
                final_status = MatterStatus.COMPLETED
            elif result.success:
                final_status = MatterStatus.NO_UPDATES
            else:
                final_status = MatterStatus.FAILED
            self.registry.try_update_status(matter.lawmatics_id, final_status)
            return result

    async def _run_matters(self, matters: List[Matter], report: RunReport) -> Dict[str, str]:
        state = self.state_manager.load()
        today = self.today_provider()
        logger.info(f"[run] {len(matters)} matter(s), today={today}, tracked={len(state)}")

        for index, matter in enumerate(matters):
            result = await self.process_matter(matter, state, today)
            report.results.append(result)
            if index < len(matters) - 1 and self.matter_delay > 0:
                await asyncio.sleep(self.matter_delay)

        report.total = len(matters)
        report.updated = len(report.updated_results)
        report.documents = sum(r.doc_count for r in report.updated_results)
        return state

    def _commit(self, state: Dict[str, str], report: RunReport):
        try:
            self.state_manager.commit(state)
        except (OSError, ValueError) as exc:
            logger.error(f"[state] commit failed: {exc}")
            report.success = False
            report.message = f"{report.message} (state not saved: {exc})"

    async def _notify(self, subject: str, body: str):
        try:
            await self.notifier.notify(subject, body)
        except Exception as exc:
            logger.error(f"[run] notification {subject!r} failed: {exc!r}")

    async def run_sweep(self) -> RunReport:
        """Process every registered matter and send one summary email."""
        matters = self.registry.load_all()
        if not matters:
            logger.warning("[sweep] no matters registered")
            return RunReport(success=False, message="No matters found")

        logger.info(f"[sweep] starting sweep over {len(matters)} matters")
        report = RunReport()
        state = await self._run_matters(matters, report)
        report.message = f"Processed {report.documents} new documents across {report.updated} of {report.total} matters"
        self._commit(state, report)

        await self._notify(*summary_message(report))
        multi = sum(1 for r in report.updated_results if r.multi_doc)
        logger.info(
            f"[sweep] done total={report.total} updated={report.updated} "
            f"documents={report.documents} multi_doc_dates={multi}"
        )
        return report

    async def run_targeted(self, lawmatics_ids: Iterable[str]) -> RunReport:
        """Process an explicit subset of matters.

        A single consolidated "no new documents" email is sent when none of
        the targeted matters had anything new.
        """
        ids = list(dict.fromkeys(lawmatics_ids))
        matters = self.registry.get_many(ids)
        missing = set(ids) - {m.lawmatics_id for m in matters}
        if missing:
            logger.warning(f"[targeted] unknown matter ids ignored: {sorted(missing)}")
        if not matters:
            return RunReport(success=False, message="No valid matters found")

        logger.info(f"[targeted] processing {len(matters)} matters")
        report = RunReport()
        state = await self._run_matters(matters, report)
        report.message = f"Processed {report.documents} new documents across {report.updated} of {report.total} matters"
        self._commit(state, report)

        if report.updated == 0:
            await self._notify(*no_updates_message(len(matters)))
        logger.info(
            f"[targeted] done total={report.total} "
            f"successful={sum(1 for r in report.results if r.success)} updated={report.updated}"
        )
        return report

    async def process_single(self, lawmatics_id: str) -> MatterResult:
        report = await self.run_targeted([lawmatics_id])
        if not report.results:
            return MatterResult(lawmatics_id=lawmatics_id, success=False, message="Matter not found")
        return report.results[0]
