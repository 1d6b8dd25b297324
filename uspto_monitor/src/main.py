import argparse
import asyncio
import contextlib
import sys
from pathlib import Path
from typing import List, Optional

from loguru import logger

from .config import Config
from .services import AutomationController, ServiceBootstrapper


def setup_logging():
    """Configure application logging."""
    with contextlib.suppress(OSError):
        Path(Config.LOG_FILE).parent.mkdir(parents=True, exist_ok=True)

    _ = logger.add(
        Config.LOG_FILE,
        rotation="10 MB",
        retention="10 days",
        enqueue=True,
        backtrace=True,
        diagnose=True,
    )


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="uspto-monitor", description="USPTO matter document monitor")
    sub = parser.add_subparsers(dest="command")
    serve = sub.add_parser("serve", help="Run the HTTP API and the scheduler (default)")
    serve.add_argument("--host", default=Config.API_HOST)
    serve.add_argument("--port", type=int, default=Config.API_PORT)
    sub.add_parser("run-once", help="Run one sweep over every matter and exit")
    return parser


async def run_once() -> bool:
    ServiceBootstrapper.bootstrap()
    controller = AutomationController.from_config()
    result = await controller.run_once()
    logger.info(f"[run] {result['message']}")
    return bool(result["success"])


def serve(host: str, port: int):
    import uvicorn

    from .api import create_app

    uvicorn.run(create_app(), host=host, port=port, log_config=None)


def main(argv: Optional[List[str]] = None):
    """Main entry point - serves the API with the scheduler, or runs one sweep."""
    setup_logging()
    args = build_parser().parse_args(argv)

    try:
        if args.command == "run-once":
            ok = asyncio.run(run_once())
            sys.exit(0 if ok else 1)
        serve(getattr(args, "host", Config.API_HOST), getattr(args, "port", Config.API_PORT))
    except KeyboardInterrupt:
        logger.info("Interrupted.")
        sys.exit(130)
    except Exception as e:
        logger.critical(f"Fatal error: {e}")
        sys.exit(1)
    finally:
        logger.info("Monitor stopped.")


if __name__ == "__main__":
    main()
