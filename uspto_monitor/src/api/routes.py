"""FastAPI route handlers."""

from datetime import datetime, timezone
from typing import List, Optional

from fastapi import Header, Query, Request, Response
from loguru import logger
from pydantic import BaseModel, ConfigDict, Field

from ..config import Config
from ..errors import AuthorizationError
from ..models import FilingType
from ..services import AutomationController


class ProcessSingleRequest(BaseModel):
    lawmatics_id: str = Field(..., alias="lawmaticsId", min_length=1)


class ProcessMultipleRequest(BaseModel):
    lawmatics_ids: List[str] = Field(..., alias="lawmaticsIds", min_length=1)


class MatterCreateRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    application_number: str = Field(..., alias="applicationNumber", min_length=1)
    lawmatics_id: str = Field(..., alias="lawmaticsID", min_length=1)
    type: FilingType


class MatterStatusRequest(BaseModel):
    status: str = Field(..., min_length=1)


def _controller(request: Request) -> AutomationController:
    return request.app.state.controller


async def verify_api_key(x_api_key: Optional[str] = Header(None)):
    """Shared-secret check, active only when API_KEY is configured."""
    if Config.API_KEY and x_api_key != Config.API_KEY:
        raise AuthorizationError("Unauthorized. Invalid API key.")


async def health():
    return {
        "success": True,
        "status": "healthy",
        "service": Config.API_TITLE,
        "version": Config.API_VERSION,
        "timestamp": datetime.now(timezone.utc).isoformat(),
        "features": {
            "monitoring": True,
            "email_alerts": bool(Config.EMAIL_USER),
            "google_drive": bool(Config.GDRIVE_ACCESS_TOKEN),
            "lawmatics_integration": bool(Config.LAW_TOKEN),
            "form_submission": bool(Config.LAWMATICS_FORM_URL),
        },
    }


async def get_status(request: Request):
    return _controller(request).get_status()


async def start_automation(request: Request):
    return _controller(request).start_scheduler()


async def stop_automation(request: Request):
    return _controller(request).stop_scheduler()


async def run_once(request: Request):
    logger.info("[api] manual sweep triggered")
    return await _controller(request).run_once()


async def process_single(body: ProcessSingleRequest, request: Request):
    return await _controller(request).process_single(body.lawmatics_id)


async def process_multiple(body: ProcessMultipleRequest, request: Request):
    return await _controller(request).process_multiple(body.lawmatics_ids)


async def list_matters(request: Request):
    matters = _controller(request).list_matters()
    return {"success": True, "message": f"{len(matters)} matters", "matters": matters}


async def create_matter(body: MatterCreateRequest, request: Request):
    matter = _controller(request).registry.register(body.application_number, body.lawmatics_id, body.type)
    return {"success": True, "message": "Matter added successfully", "matter": matter.to_record()}


async def update_matter_status(lawmatics_id: str, body: MatterStatusRequest, request: Request):
    matter = _controller(request).registry.update_status(lawmatics_id, body.status)
    return {"success": True, "message": f"Status updated to {body.status}", "matter": matter.to_record()}


async def delete_matter(lawmatics_id: str, request: Request):
    removed = _controller(request).registry.remove(lawmatics_id)
    return {"success": True, "message": "Matter deleted successfully", "deletedCount": removed}


async def trademark_documents(serial: str, request: Request):
    return await _controller(request).lookup_documents(serial, FilingType.TRADEMARK)


async def patent_documents(app_number: str, request: Request):
    return await _controller(request).lookup_documents(app_number, FilingType.PATENT)


async def patent_download(request: Request, url: str = Query(..., min_length=1)):
    """Relay a patent file; this is the endpoint PATENT_DOWNLOAD_PROXY can point at."""
    content = await _controller(request).download_patent_file(url)
    return Response(content=content, media_type="application/pdf", headers={"Content-Disposition": "inline"})
