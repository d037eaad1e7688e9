"""
formrelay
FastAPI application that validates form submissions and relays them by email.

Run with the console script::

    formrelay

or through uvicorn's factory mode::

    uvicorn formrelay.main:create_app --factory --port 8080

Both load Settings from the environment (and .env) and authenticate the
mailer before serving. A configuration or authentication failure stops the
process; the service never runs without a working mailer.
"""

import logging
import sys
from typing import Optional

import uvicorn
from fastapi import FastAPI, Request
from fastapi.responses import PlainTextResponse

from formrelay.config import Settings, load_settings
from formrelay.errors import INTERNAL_ERROR_MESSAGE, StartupError, SubmissionError
from formrelay.routers import submit
from formrelay.services.mailer import GmailMailer, Mailer
from formrelay.services.pipeline import SubmissionPipeline
from formrelay.services.resolver import DnsMxResolver, DomainResolver

# Configure logging to output to console
logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
)

logger = logging.getLogger(__name__)


def create_app(
    settings: Optional[Settings] = None,
    mailer: Optional[Mailer] = None,
    resolver: Optional[DomainResolver] = None,
) -> FastAPI:
    """
    Build the application around explicit collaborators.

    Anything not passed in is built from the environment: Settings via
    load_settings(), a GmailMailer (authenticated here) and a DnsMxResolver.
    A mailer that is passed in is assumed to be ready to send.

    Raises:
        StartupError: Configuration is invalid or the mailer cannot authenticate
    """
    if settings is None:
        settings = load_settings()
    if mailer is None:
        mailer = GmailMailer(settings)
        mailer.authenticate()
    if resolver is None:
        resolver = DnsMxResolver(timeout=settings.dns_timeout)

    app = FastAPI(
        title="formrelay",
        description="Validates form submissions and relays them by email",
        version="0.1.0",
        docs_url=None,
        redoc_url=None,
        openapi_url=None,
    )
    app.state.settings = settings
    app.state.pipeline = SubmissionPipeline(settings, mailer, resolver)

    cors_headers = {"Access-Control-Allow-Origin": settings.site}

    @app.exception_handler(SubmissionError)
    async def submission_error_handler(request: Request, exc: SubmissionError) -> PlainTextResponse:
        logger.info(
            f"{request.method} {request.url.path} -> {exc.status_code} ({type(exc).__name__})"
        )
        return PlainTextResponse(
            exc.message,
            status_code=exc.status_code,
            headers={**cors_headers, **exc.headers},
        )

    @app.exception_handler(Exception)
    async def unhandled_error_handler(request: Request, exc: Exception) -> PlainTextResponse:
        logger.error(f"Unhandled error on {request.method} {request.url.path}: {exc}", exc_info=True)
        return PlainTextResponse(INTERNAL_ERROR_MESSAGE, status_code=500, headers=cors_headers)

    submit.register(app)

    logger.info(
        f"formrelay ready: form={settings.form_kind.value} site={settings.site} "
        f"honeypot={'on' if settings.honeypot_enabled else 'off'}"
    )
    return app


def run() -> None:
    """Console entry point: load config, authenticate, serve. Exits 1 on startup failure."""
    try:
        settings = load_settings()
        app = create_app(settings)
    except StartupError as e:
        logger.critical(f"Startup failed: {e}")
        sys.exit(1)

    uvicorn.run(app, host=settings.host, port=settings.port)


if __name__ == "__main__":
    run()
