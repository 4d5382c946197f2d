import logging
import os
from typing import Dict

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse, Response
from dotenv import load_dotenv

from .config import Settings, load_settings
from .errors import SarkError
from .routes.generate import router as generate_router
from .routes.health import router as health_router

logger = logging.getLogger(__name__)


def cors_headers(settings: Settings, origin: str = "") -> Dict[str, str]:
    headers = {
        "Access-Control-Allow-Methods": "POST, OPTIONS",
        "Access-Control-Allow-Headers": "Content-Type, Authorization",
    }
    if settings.cors_allow_origins == ["*"]:
        headers["Access-Control-Allow-Origin"] = "*"
    elif origin in settings.cors_allow_origins:
        headers["Access-Control-Allow-Origin"] = origin
        headers["Vary"] = "Origin"
    return headers


def create_app() -> FastAPI:
    # Load environment variables from .env if present
    if os.getenv("DOTENV_DISABLED", "false").lower() not in {"1", "true", "yes"}:
        load_dotenv()

    settings = load_settings()
    logging.basicConfig(level=settings.log_level)

    app = FastAPI(title="Sark Website Generator Relay", version="0.1.0")

    # CORS: every response, preflight answered here with an empty body
    @app.middleware("http")
    async def apply_cors(request: Request, call_next):
        headers = cors_headers(settings, request.headers.get("origin", ""))
        if request.method == "OPTIONS":
            return Response(status_code=200, headers=headers)
        response = await call_next(request)
        response.headers.update(headers)
        return response

    @app.exception_handler(SarkError)
    async def sark_error_handler(request: Request, exc: SarkError):
        if exc.status_code >= 500:
            logger.warning("%s: %s", exc.kind, exc.message)
        return JSONResponse(status_code=exc.status_code, content=exc.to_payload())

    # Routers
    app.include_router(health_router)
    app.include_router(generate_router)

    return app
