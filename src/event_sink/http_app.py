"""HTTP transport: receives CloudEvents and hands them to the processor."""

import logging
import secrets
from contextlib import asynccontextmanager
from typing import AsyncIterator

from fastapi import APIRouter, Depends, FastAPI, HTTPException, Request, Response
from fastapi.responses import JSONResponse
from fastapi.security import HTTPAuthorizationCredentials, HTTPBasic, HTTPBasicCredentials, HTTPBearer

from event_sink.cloudevents_http import CloudEventFormatError, from_http
from event_sink.errors import ServiceError
from event_sink.processor import EventProcessor
from event_sink.service_config import HttpConfig
from event_sink.writer import PostgresWriter

logger = logging.getLogger(__name__)

basic_scheme = HTTPBasic(auto_error=False)
bearer_scheme = HTTPBearer(auto_error=False)

router = APIRouter()
health_router = APIRouter()


def _matches(expected: str | None, given: str | None) -> bool:
    if expected is None or given is None:
        return False
    return secrets.compare_digest(expected.encode("utf-8"), given.encode("utf-8"))


def build_authenticator(config: HttpConfig):
    """
    Basic credentials are checked when a username is configured, a bearer
    token when a token is configured. With both configured either one passes.
    """
    has_basic = config.username is not None
    has_bearer = config.token is not None

    async def authenticate(
        basic: HTTPBasicCredentials | None = Depends(basic_scheme),
        bearer: HTTPAuthorizationCredentials | None = Depends(bearer_scheme),
    ) -> None:
        if not has_basic and not has_bearer:
            return

        if has_basic and basic is not None:
            if _matches(config.username, basic.username) and _matches(config.password or "", basic.password):
                return

        if has_bearer and bearer is not None:
            if _matches(config.token, bearer.credentials):
                return

        raise HTTPException(
            status_code=401,
            detail="Unauthorized",
            headers={"WWW-Authenticate": "Bearer" if has_bearer and not has_basic else "Basic"},
        )

    return authenticate


async def _read_body(request: Request, max_size: int) -> bytes | None:
    """Body of the request, or None as soon as more than max_size bytes have arrived."""
    body = bytearray()
    async for chunk in request.stream():
        body.extend(chunk)
        if len(body) > max_size:
            return None
    return bytes(body)


@router.post("/")
async def forward(request: Request) -> Response:
    max_size: int = request.app.state.http_config.max_json_payload_size

    declared_length = request.headers.get("content-length")
    if declared_length is not None and declared_length.isdigit() and int(declared_length) > max_size:
        return _error_response(413, "PayloadTooLarge", f"Payload exceeds {max_size} bytes")

    body = await _read_body(request, max_size)
    if body is None:
        return _error_response(413, "PayloadTooLarge", f"Payload exceeds {max_size} bytes")

    event = from_http(request.headers, body)
    logger.debug("Received event: %s", event)

    processor: EventProcessor = request.app.state.processor
    rows_written = await processor.extract_and_persist(event)

    return Response(status_code=202 if rows_written else 204)


@health_router.get("/health")
async def health_check():
    return {"status": "healthy"}


@health_router.get("/health/ready")
async def readiness_check(request: Request):
    processor: EventProcessor = request.app.state.processor
    try:
        reachable = await processor.writer.ping()
    except RuntimeError:
        reachable = False
    if not reachable:
        return JSONResponse(status_code=503, content={"status": "not_ready", "database": "unreachable"})
    return {"status": "ready", "database": "connected"}


def _error_response(status_code: int, error: str, message: str) -> JSONResponse:
    return JSONResponse(status_code=status_code, content={"error": error, "message": message})


async def service_error_handler(request: Request, exc: ServiceError) -> JSONResponse:
    if exc.client_error:
        logger.info("Rejected event: %s", exc)
        return _error_response(406, exc.error_name, str(exc))
    logger.warning("Upstream failure: %s", exc)
    return _error_response(502, exc.error_name, str(exc))


async def cloudevent_error_handler(request: Request, exc: CloudEventFormatError) -> JSONResponse:
    logger.info("Malformed CloudEvent: %s", exc)
    return _error_response(400, "CloudEventError", str(exc))


def writer_lifespan(writer: PostgresWriter):
    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncIterator[None]:
        logger.info("event_sink starting")
        async with writer:
            yield
        logger.info("event_sink stopped")

    return lifespan


def create_app(processor: EventProcessor, config: HttpConfig, *, lifespan=None) -> FastAPI:
    app = FastAPI(
        title="Event Sink",
        description="Persists selected values of incoming CloudEvents as table rows",
        lifespan=lifespan,
    )
    app.state.processor = processor
    app.state.http_config = config

    app.add_exception_handler(ServiceError, service_error_handler)
    app.add_exception_handler(CloudEventFormatError, cloudevent_error_handler)

    app.include_router(router, dependencies=[Depends(build_authenticator(config))])
    app.include_router(health_router, tags=["Health"])
    return app
