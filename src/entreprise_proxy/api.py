"""FastAPI application factory for the entreprise proxy.

This module exposes the lookup and mail pipelines over HTTP:

- ``GET /api/entreprise/{identifier}``: canonical company record
- ``POST /api/send-email`` (alias ``POST /send-email``): relay an email
- ``GET /health`` and ``GET /info``: liveness and version
- ``OPTIONS`` on any path: CORS preflight

Errors raised by the core are :class:`entreprise_proxy.errors.ProxyError`
subclasses; a single exception handler maps them to their HTTP status and a
caller-safe JSON body, and logs the internal detail.

Example:
    Creating and running the API application::

        from entreprise_proxy.config_loader import load_settings
        from entreprise_proxy.core import EntrepriseProxy
        from entreprise_proxy.api import create_app

        config = load_settings()
        app = create_app(EntrepriseProxy(config), config)

        # Run with uvicorn
        uvicorn.run(app, host="0.0.0.0", port=8091)
"""

from __future__ import annotations

import json
import logging
from typing import Any, AsyncContextManager, Callable

from fastapi import Depends, FastAPI, HTTPException, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse, Response

from . import __version__
from .config_loader import ProxyConfig
from .errors import ProxyError, ValidationError
from .models import CanonicalEntity, HealthResponse, InfoResponse, SendEmailPayload, StatusResponse
from .validators import ensure_post

logger = logging.getLogger(__name__)

SEND_EMAIL_PATHS = ("/api/send-email", "/send-email")
SEND_EMAIL_METHODS = ["GET", "POST", "PUT", "PATCH", "DELETE"]


def get_service(request: Request) -> Any:
    service = getattr(request.app.state, "service", None)
    if service is None:
        raise HTTPException(500, "Service not initialized")
    return service


async def _read_json_body(request: Request) -> dict[str, Any]:
    raw = await request.body()
    try:
        data = json.loads(raw or b"null")
    except ValueError as exc:
        raise ValidationError("Invalid JSON body") from exc
    if not isinstance(data, dict):
        raise ValidationError("Request body must be a JSON object")
    return data


def create_app(
    svc: Any,
    config: ProxyConfig | None = None,
    lifespan: Callable[[FastAPI], AsyncContextManager] | None = None,
) -> FastAPI:
    """Create and configure the FastAPI application.

    Parameters
    ----------
    svc:
        Object implementing ``lookup(identifier)`` and ``send_email(payload)``,
        normally :class:`entreprise_proxy.core.EntrepriseProxy`.
    config:
        Configuration holding the CORS allow-list. Defaults to
        ``svc.config`` when available, else built-in defaults.
    lifespan:
        Optional lifespan context manager for startup/shutdown events.

    Returns
    -------
    FastAPI
        A configured application ready to be served by Uvicorn.
    """
    config = config or getattr(svc, "config", None) or ProxyConfig()
    cors = config.cors
    api = FastAPI(title="Entreprise Proxy", version=__version__, lifespan=lifespan)
    api.state.service = svc
    api.state.config = config

    @api.middleware("http")
    async def cors_middleware(request: Request, call_next):
        """Echo allowed origins and answer preflight requests directly."""
        if request.method == "OPTIONS":
            response = Response(status_code=200)
        else:
            try:
                response = await call_next(request)
            except Exception:
                # unhandled errors would otherwise bypass this middleware
                logger.exception("Unhandled error on %s %s", request.method, request.url.path)
                response = JSONResponse(status_code=500, content=ProxyError().to_response())
        origin = request.headers.get("origin")
        if origin and origin in cors.allowed_origins:
            response.headers["Access-Control-Allow-Origin"] = origin
            response.headers["Vary"] = "Origin"
        response.headers["Access-Control-Allow-Methods"] = cors.allowed_methods
        response.headers["Access-Control-Allow-Headers"] = cors.allowed_headers
        return response

    @api.exception_handler(ProxyError)
    async def proxy_error_handler(request: Request, exc: ProxyError):
        """Log the internal detail, answer with the public message only."""
        if exc.status_code >= 500:
            logger.error(
                "%s %s failed [%s]: %s (cause: %r)",
                request.method,
                request.url.path,
                exc.code,
                exc,
                getattr(exc, "cause", None) or getattr(exc, "body", None),
            )
        else:
            logger.warning("%s %s rejected [%s]: %s", request.method, request.url.path, exc.code, exc)
        return JSONResponse(status_code=exc.status_code, content=exc.to_response())

    @api.exception_handler(RequestValidationError)
    async def validation_exception_handler(request: Request, exc: RequestValidationError):
        """Log validation errors with full details."""
        body = await request.body()
        logger.warning(f"Validation error on {request.method} {request.url.path}")
        logger.warning(f"Request body: {body.decode('utf-8', errors='replace')}")
        logger.warning(f"Validation errors: {exc.errors()}")
        return JSONResponse(status_code=400, content=ValidationError().to_response())

    @api.get("/health", response_model=HealthResponse)
    async def health():
        """Health check endpoint for container monitoring."""
        return HealthResponse()

    @api.get("/info", response_model=InfoResponse)
    async def info():
        return InfoResponse(data={"version": __version__})

    @api.get("/api/entreprise/{identifier}", response_model=CanonicalEntity)
    async def get_entreprise(identifier: str, service: Any = Depends(get_service)):
        """Look up a company by SIREN or SIRET."""
        return await service.lookup(identifier)

    async def send_email(request: Request, service: Any = Depends(get_service)):
        """Compose and relay one email."""
        ensure_post(request.method)
        data = await _read_json_body(request)
        await service.send_email(SendEmailPayload.model_validate(data))
        return StatusResponse(status="success", message="Email sent")

    for path in SEND_EMAIL_PATHS:
        api.add_api_route(
            path,
            send_email,
            methods=SEND_EMAIL_METHODS,
            response_model=StatusResponse,
            response_model_exclude_none=True,
        )

    return api
