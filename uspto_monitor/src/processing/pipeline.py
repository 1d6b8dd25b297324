import asyncio
from typing import Dict

from loguru import logger

from ..connectors import DriveConnector, LawmaticsConnector, MailConnector, UsptoConnector
from ..models import Document, Matter, PipelineResult, StepOutcome
from ..utils import TextUtils
from .messages import new_document_message


class SideEffectPipeline:
    """Best-effort chain of side effects for one newly discovered document.

    Steps run in order: upload, notify, CRM update, form submission. A failed
    step is logged and recorded in the result; the following steps still run.
    """

    def __init__(
        self,
        source: UsptoConnector,
        storage: DriveConnector,
        notifier: MailConnector,
        crm: LawmaticsConnector,
    ):
        self.source = source
        self.storage = storage
        self.notifier = notifier
        self.crm = crm

    @staticmethod
    def record_fields(matter: Matter, document: Document) -> Dict[str, str]:
        """Structured CRM fields derived from a document."""
        return {
            "application_number": matter.application_number,
            "date": document.date_key,
            "description": document.description,
            "document_code": document.document_code,
            "category": document.category,
            "link": document.best_link,
        }

    async def upload_document(self, matter: Matter, document: Document, result: PipelineResult) -> Document:
        """Copy the source file to storage; any problem keeps the source link."""
        if not document.has_source_link():
            result.steps["upload"] = StepOutcome.FALLBACK
            return document

        try:
            content, mime_type, extension = await self.source.download(document, matter.type)
            file_name = TextUtils.safe_filename(matter.application_number, document.description, extension)
            link = await self.storage.upload(content, file_name, mime_type)
        except Exception as exc:
            logger.error(f"[pipeline] upload failed for #{matter.application_number}: {exc!r}; using source link")
            result.steps["upload"] = StepOutcome.FAILED
            return document

        if not link:
            result.steps["upload"] = StepOutcome.FALLBACK
            return document

        result.steps["upload"] = StepOutcome.OK
        return document.model_copy(update={"drive_link": link, "file_type": extension})

    async def send_notification(self, matter: Matter, document: Document, result: PipelineResult):
        subject, body = new_document_message(matter, document)
        try:
            sent = await self.notifier.notify(subject, body)
        except Exception as exc:
            logger.error(f"[pipeline] notification failed for #{matter.application_number}: {exc!r}")
            result.steps["notify"] = StepOutcome.FAILED
            return
        result.steps["notify"] = StepOutcome.OK if sent else StepOutcome.SKIPPED

    async def update_record(self, matter: Matter, fields: Dict[str, str], result: PipelineResult):
        try:
            await self.crm.update_prospect(matter.lawmatics_id, fields)
        except Exception as exc:
            logger.error(f"[pipeline] CRM update failed for {matter.lawmatics_id}: {exc!r}")
            result.steps["crm_update"] = StepOutcome.FAILED
            return
        result.steps["crm_update"] = StepOutcome.OK

    async def submit_form(self, matter: Matter, fields: Dict[str, str], result: PipelineResult):
        try:
            prospect = await self.crm.get_prospect(matter.lawmatics_id)
            if not prospect:
                logger.warning(f"[pipeline] no prospect data for {matter.lawmatics_id}; skipping form submission")
                result.steps["form_submit"] = StepOutcome.SKIPPED
                return
            submitted = await self.crm.submit_form(matter.lawmatics_id, fields)
        except asyncio.TimeoutError:
            logger.error(f"[pipeline] form submission timed out for {matter.lawmatics_id}")
            result.steps["form_submit"] = StepOutcome.FAILED
            return
        except Exception as exc:
            logger.error(f"[pipeline] form submission failed for {matter.lawmatics_id}: {exc!r}")
            result.steps["form_submit"] = StepOutcome.FAILED
            return
        result.steps["form_submit"] = StepOutcome.OK if submitted else StepOutcome.SKIPPED

    async def run(self, matter: Matter, document: Document) -> PipelineResult:
        logger.info(
            f"[pipeline] {matter.type.value} #{matter.application_number}: "
            f"{document.description} ({document.date_key})"
        )
        result = PipelineResult(document=document)

        document = await self.upload_document(matter, document, result)
        result.document = document

        await self.send_notification(matter, document, result)

        fields = self.record_fields(matter, document)
        await self.update_record(matter, fields, result)
        await self.submit_form(matter, fields, result)

        if result.failed_steps:
            logger.warning(
                f"[pipeline] #{matter.application_number} {document.date_key} finished with failed steps: "
                f"{', '.join(result.failed_steps)}"
            )
        else:
            logger.info(f"[pipeline] #{matter.application_number} {document.date_key} finished")
        return result
