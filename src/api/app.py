"""FastAPI application factory"""

import logging
from contextlib import asynccontextmanager
from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from src.api.error import ClientError
from src.api.routes import accounts, jobs, payments

logger = logging.getLogger(__name__)


def create_app(config, context=None) -> FastAPI:
    """
    Build the API

    Args:
        config: ApplicationConfig
        context: Prebuilt ApplicationContext; when omitted one is created on
            startup (and background workers started if WORKERS_ENABLED)
    """
    logging.basicConfig(
        level=config.LOG_LEVEL,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        owned = getattr(app.state, "context", None) is None
        if owned:
            from src.worker.context import ApplicationContext

            app.state.context = ApplicationContext(config)
        if config.WORKERS_ENABLED:
            await app.state.context.start()
        try:
            yield
        finally:
            if owned:
                await app.state.context.stop()

    app = FastAPI(title="Image Generation Billing Engine", lifespan=lifespan)
    if context is not None:
        app.state.context = context

    if config.CORS_ORIGINS:
        app.add_middleware(
            CORSMiddleware,
            allow_origins=config.CORS_ORIGINS,
            allow_credentials=config.CORS_ALLOW_CREDENTIALS,
            allow_methods=["*"],
            allow_headers=["*"],
        )

    @app.exception_handler(ClientError)
    async def client_error_handler(request: Request, exc: ClientError):
        return JSONResponse(
            status_code=exc.status_code,
            content={"error": {"code": exc.error.code, "message": exc.error.message}},
        )

    @app.exception_handler(RequestValidationError)
    async def validation_error_handler(request: Request, exc: RequestValidationError):
        return JSONResponse(
            status_code=status.HTTP_400_BAD_REQUEST,
            content={
                "error": {
                    "code": "VALIDATION_ERROR",
                    "message": "Invalid request parameters",
                    "details": jsonable_errors(exc),
                }
            },
        )

    app.include_router(accounts.router, prefix=config.API_PREFIX)
    app.include_router(jobs.router, prefix=config.API_PREFIX)
    app.include_router(payments.router, prefix=config.API_PREFIX)

    @app.get("/health")
    async def health():
        return {"status": "ok"}

    return app


def jsonable_errors(exc: RequestValidationError) -> list[dict]:
    return [
        {"loc": list(error.get("loc", ())), "msg": error.get("msg", "")}
        for error in exc.errors()
    ]
