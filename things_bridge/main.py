"""FastAPI entrypoint for the Things bridge."""

from __future__ import annotations

import logging
import os
import sys
from contextlib import asynccontextmanager

import uvicorn
from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from things_bridge.config import load_config
from things_bridge.context import AUTH_EXEMPT_PATHS, SERVICE_TOKEN_HEADER
from things_bridge.errors import ErrorResponse, McpError, error_response
from things_bridge.mcp import register_mcp_handlers

LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"
DEFAULT_HOST = "127.0.0.1"
DEFAULT_PORT = 18180

logger = logging.getLogger(__name__)


def configure_logging(level: str) -> None:
    # stdout belongs to the tool-calling host.
    logging.basicConfig(level=level, format=LOG_FORMAT, stream=sys.stderr)


def create_app() -> FastAPI:
    @asynccontextmanager
    async def lifespan(app: FastAPI):
        config = load_config()
        configure_logging(config.log_level)
        app.state.config = config
        logger.info(
            "Things bridge ready (auth token %s)",
            "configured" if config.auth_token else "missing",
        )
        yield

    app = FastAPI(lifespan=lifespan)

    @app.middleware("http")
    async def enforce_service_token(request: Request, call_next):
        if request.url.path in AUTH_EXEMPT_PATHS:
            return await call_next(request)

        config = getattr(request.app.state, "config", None)
        service_token = getattr(config, "service_token", None)
        if service_token:
            supplied_token = request.headers.get(SERVICE_TOKEN_HEADER)
            if supplied_token != service_token:
                error = ErrorResponse(
                    code="AUTH_FORBIDDEN",
                    message="Invalid service token.",
                    details={"header": SERVICE_TOKEN_HEADER},
                )
                return JSONResponse(status_code=403, content=error_response(error))

        return await call_next(request)

    @app.exception_handler(McpError)
    def handle_mcp_error(request: Request, exc: McpError) -> JSONResponse:
        logger.info("Tool error %s: %s", exc.error.code, exc.error.message)
        return JSONResponse(status_code=400, content=error_response(exc.error))

    @app.get("/health", status_code=200)
    def health() -> dict[str, str]:
        return {"status": "ok"}

    register_mcp_handlers(app)
    return app


app = create_app()


def run() -> None:
    """Serve the bridge with uvicorn; host and port come from the environment."""
    uvicorn.run(
        "things_bridge.main:app",
        host=os.environ.get("THINGS_BRIDGE_HOST", DEFAULT_HOST),
        port=int(os.environ.get("THINGS_BRIDGE_PORT", DEFAULT_PORT)),
        log_config=None,
    )


if __name__ == "__main__":
    run()
