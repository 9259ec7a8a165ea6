import logging
from fastapi import FastAPI, Request
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from subtrack.api import clickup, geos, reconcile, websites
from subtrack.config import settings
from subtrack.db.session import init_db
from subtrack.exceptions import (
    ClickUpError,
    ImmutableSubIdError,
    InvalidRequestError,
    NotFoundError,
    SubtrackError,
)
from subtrack.logging_conf import configure_logging

configure_logging()
log = logging.getLogger(__name__)

init_db()
app = FastAPI(title=settings.APP_NAME)


def _status_for(exc: SubtrackError) -> int:
    if isinstance(exc, NotFoundError):
        return 404
    if isinstance(exc, InvalidRequestError):
        return 400
    if isinstance(exc, ImmutableSubIdError):
        return 403
    if isinstance(exc, ClickUpError) and exc.status_code == 404:
        return 404
    return 500


@app.exception_handler(SubtrackError)
async def subtrack_error_handler(request: Request, exc: SubtrackError):
    status = _status_for(exc)
    if status >= 500:
        log.error("%s %s failed: %s", request.method, request.url.path, exc)
    return JSONResponse(status_code=status, content={"error": str(exc)})


@app.exception_handler(RequestValidationError)
async def validation_error_handler(request: Request, exc: RequestValidationError):
    return JSONResponse(status_code=400,
                        content={"error": "Invalid request", "details": jsonable_encoder(exc.errors())})


for module in (websites, clickup, geos, reconcile):
    app.include_router(module.router)
