"""
Submission router.

A single handler serves every path and every method so the origin and method
guards, not the framework's router, decide what is allowed. The route is
registered without a method filter; a method list would let the framework
answer unlisted verbs (TRACE, PROPFIND, ...) with its own 405 before the
origin guard runs. The handler is async for form parsing; the blocking part
of the pipeline (MX lookup and mail send) runs in the thread pool.

Endpoints:
  *  /{path}   - POST a form; anything else is rejected by the guards
"""

import logging

from fastapi import FastAPI, Request
from fastapi.responses import PlainTextResponse
from starlette.concurrency import run_in_threadpool

from formrelay.errors import MalformedBody
from formrelay.services.pipeline import SubmissionPipeline, assemble_submission

logger = logging.getLogger(__name__)

SUCCESS_MESSAGE = "Email sent successfully!"

SUBMIT_PATH = "/{path:path}"


def get_pipeline(request: Request) -> SubmissionPipeline:
    """The pipeline built by create_app for this application."""
    return request.app.state.pipeline


async def submit(request: Request) -> PlainTextResponse:
    """
    Validate a posted form and send it as an email.

    Errors are raised as SubmissionError subclasses and rendered by the
    handler registered in formrelay.main.
    """
    pipeline = get_pipeline(request)
    pipeline.guard(request.headers.get("origin"), request.method)

    try:
        form = await request.form()
    except Exception as e:
        logger.error(f"Could not parse form body: {e}")
        raise MalformedBody() from e

    submission = assemble_submission(form, pipeline.form_kind)
    await run_in_threadpool(pipeline.process, submission)

    return PlainTextResponse(
        SUCCESS_MESSAGE,
        headers={"Access-Control-Allow-Origin": pipeline.settings.site},
    )


def register(app: FastAPI) -> None:
    """Mount ``submit`` on every path, for every HTTP method."""
    app.add_route(SUBMIT_PATH, submit, methods=None, include_in_schema=False)
