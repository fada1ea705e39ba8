"""API Service entry point - FastAPI application for annotation documents."""

import argparse
import logging
import logging.config
import sys

from pythonjsonlogger import jsonlogger


# A custom formatter to produce JSON logs
class JsonFormatter(jsonlogger.JsonFormatter):
    def add_fields(self, log_record, record, message_dict):
        super().add_fields(log_record, record, message_dict)
        log_record["level"] = record.levelname.lower()
        log_record["name"] = record.name
        log_record["service"] = "reelnotes"


def setup_logging(level: str = "INFO"):
    """
    Set up structured JSON logging for the entire application.
    This function configures the root logger, and all other loggers will inherit
    this configuration. It also explicitly configures the Uvicorn loggers to use
    JSON formatting.
    """
    log_config = {
        "version": 1,
        "disable_existing_loggers": False,
        "formatters": {
            "json": {
                "()": JsonFormatter,
                "format": "%(asctime)s %(name)s %(levelname)s %(message)s",
            },
        },
        "handlers": {
            "json_handler": {
                "class": "logging.StreamHandler",
                "formatter": "json",
                "stream": "ext://sys.stdout",
            },
        },
        "root": {
            "handlers": ["json_handler"],
            "level": level,
        },
        "loggers": {
            "uvicorn": {
                "handlers": ["json_handler"],
                "level": level,
                "propagate": False,
            },
            "uvicorn.access": {
                "handlers": ["json_handler"],
                "level": level,
                "propagate": False,
            },
        },
    }
    logging.config.dictConfig(log_config)


# Set up logging immediately when the module is imported, BEFORE any other imports
setup_logging()

# Now import everything else that might use logging
from fastapi import FastAPI  # noqa: E402

from reelnotes.api.annotation_controller import (  # noqa: E402
    router as annotation_router,
)
from reelnotes.repositories.json_document_repository import (  # noqa: E402
    JsonDocumentRepository,
)
from reelnotes.services.annotation_service import AnnotationService  # noqa: E402
from reelnotes.services.config_loader import ConfigLoader  # noqa: E402
from reelnotes.services.document_locks import DocumentLockRegistry  # noqa: E402

# Get a logger instance for this module
logger = logging.getLogger(__name__)


def create_app(config_path: str | None = None) -> FastAPI:
    """Create FastAPI application for the annotation service."""
    settings = ConfigLoader().load(config_path)
    setup_logging(settings.log_level)

    app = FastAPI(
        title="Reelnotes - Timeline Annotation API",
        description="API for annotating media timelines with acts, sections and shots",
        version="1.0.0",
    )

    repository = JsonDocumentRepository(settings)
    app.state.settings = settings
    app.state.annotation_service = AnnotationService(
        repository, locks=DocumentLockRegistry()
    )

    # Include routers
    app.include_router(annotation_router, prefix="/v1")
    logger.info("Routers included successfully")

    @app.get("/")
    async def root():
        """Hello world endpoint."""
        return {"message": "Reelnotes API Service is running"}

    @app.get("/health")
    async def health():
        """Health check endpoint."""
        return {"status": "healthy", "service": "api"}

    return app


def parse_args(argv: list[str] | None = None):
    """Parse command line arguments."""
    parser = argparse.ArgumentParser(
        description="Reelnotes API Service - Timeline Annotation Documents"
    )
    parser.add_argument(
        "--config",
        "-c",
        type=str,
        help="Path to configuration file (default: ~/.reelnotes/config.json, "
        "/etc/reelnotes/config.json or REELNOTES_CONFIG_PATH env var)",
    )
    parser.add_argument("--host", type=str, default="127.0.0.1", help="Bind address")
    parser.add_argument("--port", type=int, default=8000, help="Bind port")
    return parser.parse_args(argv)


def main(argv: list[str] | None = None) -> int:
    import uvicorn

    args = parse_args(argv)
    uvicorn.run(create_app(args.config), host=args.host, port=args.port)
    return 0


# Create app instance
if __name__ == "__main__":
    raise SystemExit(main())
else:
    # For uvicorn - check sys.argv for config
    config_path = None
    if "--config" in sys.argv:
        try:
            config_idx = sys.argv.index("--config")
            if config_idx + 1 < len(sys.argv):
                config_path = sys.argv[config_idx + 1]
        except (ValueError, IndexError):
            pass

    app = create_app(config_path)
