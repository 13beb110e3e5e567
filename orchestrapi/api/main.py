"""OrchestrAPI - natural-language answers over a third-party REST API.

Each chat turn runs retrieval, planning, plan execution and synthesis,
streaming progress to the client as NDJSON.

### Key Endpoints

- `POST /v1/chat` - Answer a message (NDJSON stream)
- `GET /v1/threads` - List conversation threads
- `GET /v1/threads/{thread_id}` - Get a thread with its messages
- `GET /v1/tools` - List available API tools
"""

import logging
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI, Request
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from orchestrapi import __version__
from orchestrapi.api.routes import chat, threads, tools
from orchestrapi.api.services import AppServices, build_services
from orchestrapi.config import load_config
from orchestrapi.errors import AgentError, ValidationError, error_body

# Configure logging
logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan handler."""
    if getattr(app.state, "services", None) is None:
        logger.info("Loading configuration...")
        app.state.services = build_services(load_config())
    logger.info("OrchestrAPI ready")
    yield
    logger.info("Shutting down OrchestrAPI")
    app.state.services.close()


async def agent_error_handler(request: Request, exc: AgentError) -> JSONResponse:
    logger.warning(f"{request.method} {request.url.path} failed: {exc.code} {exc.message}")
    return JSONResponse(status_code=exc.status_code, content=jsonable_encoder(error_body(exc)))


async def request_validation_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    error = ValidationError("Invalid request body", details={"errors": jsonable_encoder(exc.errors())})
    return await agent_error_handler(request, error)


def create_app(services: Optional[AppServices] = None) -> FastAPI:
    """Create the FastAPI app. Services are built at startup unless given."""
    app = FastAPI(
        title="OrchestrAPI",
        description=__doc__,
        version=__version__,
        lifespan=lifespan,
    )
    app.state.services = services

    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
        expose_headers=["X-Thread-Id"],
    )

    app.add_exception_handler(AgentError, agent_error_handler)
    app.add_exception_handler(RequestValidationError, request_validation_handler)

    # Include routers with /v1 prefix
    app.include_router(chat.router, prefix="/v1")
    app.include_router(threads.router, prefix="/v1")
    app.include_router(tools.router, prefix="/v1")

    @app.get("/health")
    async def health(request: Request):
        """Health check endpoint."""
        services: Optional[AppServices] = request.app.state.services
        return {
            "status": "healthy" if services is not None else "starting",
            "tools_loaded": services.registry.count() if services is not None else 0,
        }

    return app


app = create_app()


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "orchestrapi.api.main:app",
        host="0.0.0.0",
        port=8001,
        reload=True,
    )
