import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse, Response
from sqlalchemy.exc import SQLAlchemyError
from starlette.middleware.cors import CORSMiddleware

from config import settings
from api.v1.router import api_router
from core.errors import InvalidInput, MessError, StoreFailure
from services.db import init_models

logging.basicConfig(
    level=settings.log_level.upper(),
    format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
)
_LOG = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(_: FastAPI):
    if settings.database_url.startswith("sqlite"):
        await init_models()
    yield


app = FastAPI(title="Mess Token API", version="1.0.0", lifespan=lifespan)


class _PreflightCORSMiddleware(CORSMiddleware):
    """Accepted preflights are answered with the CORS headers and no body."""

    def preflight_response(self, request_headers) -> Response:
        response = super().preflight_response(request_headers)
        if response.status_code != 200:
            return response
        headers = {
            k: v
            for k, v in response.headers.items()
            if k not in ("content-length", "content-type")
        }
        return Response(status_code=200, headers=headers)


# CORS – browser preflight (OPTIONS) short-circuits in the middleware
app.add_middleware(
    _PreflightCORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_methods=["*"],
    allow_headers=["authorization", "x-client-info", "apikey", "content-type"],
)


@app.exception_handler(MessError)
async def mess_error_handler(_: Request, exc: MessError) -> JSONResponse:
    return JSONResponse(status_code=exc.status_code, content=exc.payload())


@app.exception_handler(RequestValidationError)
async def validation_error_handler(_: Request, exc: RequestValidationError) -> JSONResponse:
    first = exc.errors()[0] if exc.errors() else {}
    where = ".".join(str(p) for p in first.get("loc", ()) if p != "body")
    err = InvalidInput(f"{where}: {first.get('msg', 'invalid value')}".strip(": "))
    return JSONResponse(status_code=err.status_code, content=err.payload())


@app.exception_handler(SQLAlchemyError)
async def store_error_handler(request: Request, exc: SQLAlchemyError) -> JSONResponse:
    _LOG.error("store failure on %s %s", request.method, request.url.path, exc_info=exc)
    err = StoreFailure()
    return JSONResponse(status_code=err.status_code, content=err.payload())


app.include_router(api_router, prefix="/api/v1")

@app.get("/health", tags=["meta"])
def health() -> dict[str, str]:
    return {"status": "ok", "env": settings.env_name}
