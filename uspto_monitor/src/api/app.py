import asyncio
import contextlib
from typing import Optional

from fastapi import Depends, FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from loguru import logger

from ..config import Config
from ..errors import MonitorError
from ..services import AutomationController
from . import routes


def _log_unhandled(loop: asyncio.AbstractEventLoop, context: dict):
    """Process-level handler: log and keep the service alive."""
    exc = context.get("exception")
    if exc is not None:
        logger.opt(exception=exc).error(f"[process] unhandled error: {context.get('message', exc)}")
    else:
        logger.error(f"[process] unhandled error: {context.get('message')}")


def create_app(controller: Optional[AutomationController] = None) -> FastAPI:
    controller = controller or AutomationController.from_config()

    @contextlib.asynccontextmanager
    async def lifespan(app: FastAPI):
        asyncio.get_running_loop().set_exception_handler(_log_unhandled)
        logger.info("=" * 70)
        logger.info(f"{Config.API_TITLE} started")
        logger.info(f"Matters file: {Config.MATTERS_PATH}")
        logger.info(f"State file: {Config.STATE_PATH}")
        logger.info(f"Schedule: every {Config.SCHEDULE_MINUTES} minutes")
        logger.info("=" * 70)
        await controller.startup()
        try:
            yield
        finally:
            await controller.shutdown()
            logger.info(f"{Config.API_TITLE} stopped")

    app = FastAPI(title=Config.API_TITLE, version=Config.API_VERSION, lifespan=lifespan)
    app.state.controller = controller

    @app.exception_handler(MonitorError)
    async def monitor_error_handler(request: Request, exc: MonitorError):
        return JSONResponse(status_code=exc.status_code, content={"success": False, "message": str(exc)})

    @app.exception_handler(RequestValidationError)
    async def validation_error_handler(request: Request, exc: RequestValidationError):
        return JSONResponse(
            status_code=400,
            content={
                "success": False,
                "message": "Invalid request",
                "errors": [{"loc": list(e.get("loc", ())), "msg": e.get("msg")} for e in exc.errors()],
            },
        )

    @app.exception_handler(Exception)
    async def unexpected_error_handler(request: Request, exc: Exception):
        logger.opt(exception=exc).error(f"[api] {request.method} {request.url.path} failed: {exc}")
        return JSONResponse(status_code=500, content={"success": False, "message": str(exc)})

    @app.middleware("http")
    async def log_requests(request: Request, call_next):
        logger.info(f"[api] {request.method} {request.url.path}")
        return await call_next(request)

    secured = [Depends(routes.verify_api_key)]

    # === Register Routes ===
    app.add_api_route("/api/health", routes.health, methods=["GET"])
    app.add_api_route("/api/automation/status", routes.get_status, methods=["GET"], dependencies=secured)
    app.add_api_route("/api/automation/start", routes.start_automation, methods=["POST"], dependencies=secured)
    app.add_api_route("/api/automation/stop", routes.stop_automation, methods=["POST"], dependencies=secured)
    app.add_api_route("/api/automation/run-once", routes.run_once, methods=["POST"], dependencies=secured)
    app.add_api_route("/api/automation/process-single", routes.process_single, methods=["POST"], dependencies=secured)
    app.add_api_route("/api/automation/process-multiple", routes.process_multiple, methods=["POST"], dependencies=secured)
    app.add_api_route("/api/matters", routes.list_matters, methods=["GET"], dependencies=secured)
    app.add_api_route("/api/matters", routes.create_matter, methods=["POST"], dependencies=secured)
    app.add_api_route("/api/matters/{lawmatics_id}", routes.update_matter_status, methods=["PUT"], dependencies=secured)
    app.add_api_route("/api/matters/{lawmatics_id}", routes.delete_matter, methods=["DELETE"], dependencies=secured)
    app.add_api_route("/api/trademark/{serial}", routes.trademark_documents, methods=["GET"], dependencies=secured)
    app.add_api_route("/api/patent/download", routes.patent_download, methods=["GET"], dependencies=secured)
    app.add_api_route(
        "/api/patent/{app_number}/documents", routes.patent_documents, methods=["GET"], dependencies=secured
    )

    return app
