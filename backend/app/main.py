from typing import Optional

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from sqlalchemy.engine import Engine

from app.api.routes import router as api_router
from app.config import Settings, load_settings
from app.errors import PayloadTooLargeError, api_error_handler, register_error_handlers
from app.logging import configure_logging, get_logger
from app.services.llm.gateway import ModelGateway
from app.storage.db import build_engine, create_db_and_tables

logger = get_logger(__name__)


def create_app(settings: Optional[Settings] = None, engine: Optional[Engine] = None) -> FastAPI:
    """
    Build the API. Settings and the pooled engine are created once here and
    handed to handlers through app.state; nothing reads the environment later.
    """
    settings = settings or load_settings()
    configure_logging(settings.log_level)
    engine = engine or build_engine(settings)

    app = FastAPI(title="Food Sorted API")
    app.state.settings = settings
    app.state.engine = engine
    app.state.gateway = ModelGateway(settings)

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.allowed_origins,
        allow_credentials=settings.allowed_origins != ["*"],
        allow_methods=["*"],
        allow_headers=["*"],
    )

    @app.middleware("http")
    async def log_requests(request: Request, call_next):
        client = request.client.host if request.client else "-"
        logger.info("http.request method=%s path=%s client=%s", request.method, request.url.path, client)
        return await call_next(request)

    @app.middleware("http")
    async def limit_body_size(request: Request, call_next):
        # Chunked bodies without Content-Length are not counted here.
        length = request.headers.get("content-length")
        if length and length.isdecimal() and int(length) > settings.json_body_limit_bytes:
            return await api_error_handler(
                request,
                PayloadTooLargeError(detail={"limit_bytes": settings.json_body_limit_bytes}),
            )
        return await call_next(request)

    @app.on_event("startup")
    def on_startup() -> None:
        logger.info(
            "startup: env=%s model=%s llm_configured=%s",
            settings.env,
            settings.llm_model,
            bool(settings.llm_api_key),
        )
        create_db_and_tables(engine)

    @app.on_event("shutdown")
    def on_shutdown() -> None:
        engine.dispose()
        logger.info("shutdown: connection pool disposed")

    register_error_handlers(app)
    app.include_router(api_router)
    return app


def run() -> None:
    import uvicorn

    settings = load_settings()
    uvicorn.run("app.main:create_app", factory=True, host="0.0.0.0", port=settings.port)
