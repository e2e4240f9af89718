"""
FastAPI backend server for gate access.

Sets up:
- CORS middleware for the browser client (origins from ``config.security``)
- Error handlers mapping access errors to ``{"error": <message>}`` responses
- The gate access orchestrator and gate provisioner shared by all requests
- All API route endpoints
"""

import logging

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from gate_repo import __version__
from gate_repo.access.errors import AccessError
from gate_repo.access.orchestrator import GateAccessOrchestrator, build_orchestrator
from gate_repo.api.routes import register_routes
from gate_repo.config import config
from gate_repo.db.errors import DatabaseError
from gate_repo.services.gate_provisioning import GateProvisioner, build_provisioner

logger = logging.getLogger(__name__)


async def access_error_handler(request: Request, exc: AccessError) -> JSONResponse:
    return JSONResponse(status_code=exc.status_code, content={"error": exc.message})


async def database_error_handler(request: Request, exc: DatabaseError) -> JSONResponse:
    logger.error("Database failure on %s %s: %s", request.method, request.url.path, exc)
    message = str(exc) if config.features.verbose_errors else "Internal server error."
    return JSONResponse(status_code=500, content={"error": message})


def create_app(
    orchestrator: GateAccessOrchestrator | None = None,
    provisioner: GateProvisioner | None = None,
) -> FastAPI:
    """Build the application; collaborators default to ones wired from ``config``."""
    docs = config.docs_should_be_enabled
    app = FastAPI(
        title="Gate Repo",
        version=__version__,
        docs_url="/docs" if docs else None,
        redoc_url="/redoc" if docs else None,
        openapi_url="/openapi.json" if docs else None,
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=config.security.cors_origins,
        allow_credentials=config.security.cors_allow_credentials,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.add_exception_handler(AccessError, access_error_handler)
    app.add_exception_handler(DatabaseError, database_error_handler)

    register_routes(app, orchestrator or build_orchestrator(), provisioner or build_provisioner())
    return app


app = create_app()


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(app, host=config.server.host, port=config.server.port)
