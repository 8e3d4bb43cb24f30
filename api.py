"""
api.py

WHAT THIS FILE IS FOR
---------------------
This module defines the FastAPI application entrypoint for the GitHub REST
plugin: a small proxy in front of the GitHub API that gives the
reconciliation controller consistent bodies and status codes.

It is responsible for:
- Creating the FastAPI app instance (title/version/description)
- Registering middleware for correlation ID propagation (X-Correlation-Id)
- Defining standard error responses using a consistent schema:
    {code, message, subErrors, timestamp, correlationId}
- Registering exception handlers for:
    - PluginError (validation 400, upstream transport 500, ...)
    - RequestValidationError (400 VALIDATION_FAILED)
    - HTTPException passthrough (with standardized envelope)
- Exposing HTTP endpoints:
    - GET /healthz (alias /health) and GET /readyz
    - /repository/{owner}/{repo}/collaborators/{username}[/permission]
    - /teamrepository/orgs/{org}/teams/{team_slug}/repos/{owner}/{repo}

ROUTE TABLE
-----------
Each (method, path) pair maps to exactly one orchestrator coroutine:

    GET    .../collaborators/{username}/permission -> CollaboratorService.get_permission
    POST   .../collaborators/{username}            -> CollaboratorService.add
    PATCH  .../collaborators/{username}            -> CollaboratorService.update
    DELETE .../collaborators/{username}            -> CollaboratorService.remove
    GET    /teamrepository/...                     -> TeamRepoService.get_permission

The caller's Authorization header is forwarded untouched.

DESIGN INTENT
-------------
This file contains ONLY the HTTP layer:
- routing
- middleware
- exception handling
- turning ProxyResponse objects into Starlette responses

It must NOT contain GitHub protocol logic. That lives in:
- functions/orchestrator/*
"""

from __future__ import annotations

import time
import uuid
from contextlib import asynccontextmanager
from typing import Any, Optional

import structlog
import uvicorn
from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse, Response
from starlette.exceptions import HTTPException as StarletteHTTPException

from functions.orchestrator.collaborator_service import CollaboratorService
from functions.orchestrator.proxy_response import ProxyResponse
from functions.orchestrator.service_state import ServiceState
from functions.orchestrator.team_repo_service import TeamRepoService
from functions.utils.errors import InboundValidationError, PluginError
from functions.utils.http_client import HttpClient
from functions.utils.logging_config import configure_logging
from functions.utils.settings import get_settings
from schemas.input_schema import PermissionRequest
from schemas.output_schema import (
    ErrorResponse,
    MessageResponse,
    RepoPermissionResponse,
    TeamRepoPermissionResponse,
)

settings = get_settings()
configure_logging(settings)

logger = structlog.get_logger(__name__)

collaborators = CollaboratorService(settings)
team_repos = TeamRepoService(settings)
readiness_client = HttpClient(timeout_seconds=settings.readiness_timeout_seconds)
service_state = ServiceState()


@asynccontextmanager
async def lifespan(app: FastAPI):
    service_state.mark_started()
    logger.info("server_ready", service=settings.service_name, port=settings.port)
    yield
    service_state.mark_draining()
    logger.info("server_shutting_down")
    service_state.mark_stopped()
    logger.info("server_stopped")


app = FastAPI(
    title="GitHub Plugin API for Krateo Operator Generator (KOG)",
    version="1.0.0",
    description=(
        "Simple wrapper around the GitHub API that provides consistent API "
        "responses for the Krateo Operator Generator (KOG)."
    ),
    lifespan=lifespan,
)
app.state.service_state = service_state

CORRELATION_HEADER = "X-Correlation-Id"

_PERMISSION_BODY = {
    "requestBody": {
        "required": True,
        "content": {"application/json": {"schema": PermissionRequest.model_json_schema()}},
    }
}


# -------------------------------------------------------------------
# Helpers
# -------------------------------------------------------------------
def _get_or_create_correlation_id(request: Request) -> str:
    incoming = request.headers.get(CORRELATION_HEADER)
    return incoming.strip() if incoming and incoming.strip() else f"corr_{uuid.uuid4().hex}"


def _correlation_id(request: Request) -> str:
    return getattr(request.state, "correlation_id", None) or f"corr_{uuid.uuid4().hex}"


def _std_error(
    *,
    code: str,
    message: str,
    correlation_id: str,
    http_status: int,
    sub_errors: Optional[list[dict[str, Any]]] = None,
) -> JSONResponse:
    payload = {
        "code": code,
        "message": message,
        "subErrors": sub_errors or [],
        "timestamp": int(time.time()),
        "correlationId": correlation_id,
    }
    return JSONResponse(
        status_code=http_status,
        content=payload,
        headers={CORRELATION_HEADER: correlation_id},
    )


def _to_response(result: ProxyResponse) -> Response:
    return Response(
        content=result.body or b"",
        status_code=result.status_code,
        media_type=result.media_type,
        headers=result.headers,
    )


def _authorization(request: Request) -> Optional[str]:
    return request.headers.get("Authorization")


# -------------------------------------------------------------------
# Middleware
# -------------------------------------------------------------------
@app.middleware("http")
async def correlation_id_middleware(request: Request, call_next):
    correlation_id = _get_or_create_correlation_id(request)
    request.state.correlation_id = correlation_id

    structlog.contextvars.clear_contextvars()
    structlog.contextvars.bind_contextvars(correlation_id=correlation_id)
    try:
        response = await call_next(request)
    finally:
        structlog.contextvars.clear_contextvars()

    response.headers[CORRELATION_HEADER] = correlation_id
    return response


# -------------------------------------------------------------------
# Exception handlers
# -------------------------------------------------------------------
@app.exception_handler(PluginError)
async def plugin_error_handler(request: Request, exc: PluginError):
    correlation_id = _correlation_id(request)

    logger.warning(
        "request_failed",
        correlation_id=correlation_id,
        code=exc.code,
        status_code=exc.http_status,
        error=exc.message,
    )

    sub_errors: list[dict[str, Any]] = []
    if isinstance(exc, InboundValidationError) and exc.field:
        sub_errors.append(
            {
                "field": exc.field,
                "errors": [{"code": "missing", "message": exc.message}],
            }
        )

    return _std_error(
        code=exc.code,
        message=exc.message,
        correlation_id=correlation_id,
        http_status=exc.http_status,
        sub_errors=sub_errors,
    )


@app.exception_handler(RequestValidationError)
async def request_validation_handler(request: Request, exc: RequestValidationError):
    correlation_id = _correlation_id(request)

    sub_errors: list[dict[str, Any]] = []
    for err in exc.errors():
        field = ".".join(str(x) for x in err.get("loc", []) if x != "body") or "body"
        sub_errors.append(
            {
                "field": field,
                "errors": [{"code": err.get("type"), "message": err.get("msg")}],
            }
        )

    logger.info(
        "request_validation_failed",
        correlation_id=correlation_id,
        error_count=len(sub_errors),
    )

    return _std_error(
        code="VALIDATION_FAILED",
        message="Validation failed",
        correlation_id=correlation_id,
        http_status=400,
        sub_errors=sub_errors,
    )


@app.exception_handler(StarletteHTTPException)
async def http_exception_handler(request: Request, exc: StarletteHTTPException):
    correlation_id = _correlation_id(request)

    logger.warning(
        "http_exception",
        correlation_id=correlation_id,
        status_code=exc.status_code,
        detail=str(exc.detail),
    )

    return _std_error(
        code="INTERNAL_ERROR" if exc.status_code >= 500 else "HTTP_ERROR",
        message=str(exc.detail),
        correlation_id=correlation_id,
        http_status=exc.status_code,
    )


# -------------------------------------------------------------------
# Health probes
# -------------------------------------------------------------------
@app.get("/healthz")
@app.get("/health")
async def liveness(request: Request):
    state: ServiceState = request.app.state.service_state
    body = {
        "status": "ok" if state.healthy else "unavailable",
        "service": settings.service_name,
        "environment": settings.environment,
    }
    return JSONResponse(status_code=200 if state.healthy else 503, content=body)


@app.get("/readyz")
def readiness(request: Request):
    state: ServiceState = request.app.state.service_state
    if not state.ready:
        return JSONResponse(status_code=503, content={"status": "not ready"})

    result = readiness_client.probe(settings.github_base_url)
    if result.ready:
        return JSONResponse(status_code=200, content={"status": "ready"})

    if not result.reachable:
        logger.warning("readiness_github_unreachable", error=result.error)
        return JSONResponse(status_code=503, content={"status": "github api unreachable"})

    logger.warning("readiness_github_error", status_code=result.status_code)
    return JSONResponse(status_code=503, content={"status": "github api error"})


# -------------------------------------------------------------------
# Collaborators
# -------------------------------------------------------------------
@app.get(
    "/repository/{owner}/{repo}/collaborators/{username}/permission",
    summary="Get the permission of a user in a repository",
    response_model=RepoPermissionResponse,
    responses={404: {"model": MessageResponse}, 500: {"model": ErrorResponse}},
)
async def get_collaborator_permission(owner: str, repo: str, username: str, request: Request) -> Response:
    result = await collaborators.get_permission(owner, repo, username, _authorization(request))
    return _to_response(result)


@app.post(
    "/repository/{owner}/{repo}/collaborators/{username}",
    summary="Add a repository collaborator or invite a user",
    status_code=202,
    response_model=MessageResponse,
    responses={
        204: {"description": "User already collaborator"},
        400: {"model": ErrorResponse},
        500: {"model": ErrorResponse},
    },
    openapi_extra=_PERMISSION_BODY,
)
async def add_collaborator(owner: str, repo: str, username: str, request: Request) -> Response:
    body = await request.body()
    result = await collaborators.add(owner, repo, username, _authorization(request), body)
    return _to_response(result)


@app.patch(
    "/repository/{owner}/{repo}/collaborators/{username}",
    summary="Update the permission of a collaborator or of a pending invitation",
    response_model=MessageResponse,
    responses={
        202: {"model": MessageResponse, "description": "Invitation permission updated"},
        404: {"model": MessageResponse},
        400: {"model": ErrorResponse},
        500: {"model": ErrorResponse},
    },
    openapi_extra=_PERMISSION_BODY,
)
async def update_collaborator(owner: str, repo: str, username: str, request: Request) -> Response:
    body = await request.body()
    result = await collaborators.update(owner, repo, username, _authorization(request), body)
    return _to_response(result)


@app.delete(
    "/repository/{owner}/{repo}/collaborators/{username}",
    summary="Remove a collaborator or cancel a pending invitation",
    response_model=MessageResponse,
    responses={
        202: {"model": MessageResponse, "description": "Invitation cancelled"},
        404: {"model": MessageResponse},
        500: {"model": ErrorResponse},
    },
)
async def remove_collaborator(owner: str, repo: str, username: str, request: Request) -> Response:
    result = await collaborators.remove(owner, repo, username, _authorization(request))
    return _to_response(result)


# -------------------------------------------------------------------
# Team repositories
# -------------------------------------------------------------------
@app.get(
    "/teamrepository/orgs/{org}/teams/{team_slug}/repos/{owner}/{repo}",
    summary="Get the permission of a team in a repository",
    response_model=TeamRepoPermissionResponse,
    responses={500: {"model": ErrorResponse}},
)
async def get_team_repo_permission(
    org: str, team_slug: str, owner: str, repo: str, request: Request
) -> Response:
    result = await team_repos.get_permission(org, team_slug, owner, repo, _authorization(request))
    return _to_response(result)


if __name__ == "__main__":
    uvicorn.run("api:app", host="0.0.0.0", port=settings.port)
