import logging

import uvicorn
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from sitecms.config import settings
from sitecms.database import Base, engine
from sitecms.exception_handlers import register_exception_handlers
from sitecms.i18n.languages import get_language_info
from sitecms.middleware.logging import AccessLogMiddleware, setup_logging
from sitecms.routes import categories, guestbook, publications

setup_logging(settings.log_level, json_format=settings.log_json)
logger = logging.getLogger(__name__)


def create_app() -> FastAPI:
    """Create the FastAPI application."""
    app = FastAPI(
        title=settings.app_name,
        description="Multilingual publication backend powered by FastAPI",
        debug=settings.debug,
        version=settings.app_version,
    )

    app.add_middleware(AccessLogMiddleware)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.allowed_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    register_exception_handlers(app)

    # Admin surface
    app.include_router(publications.router, prefix="/api/publications", tags=["Publications"])
    app.include_router(categories.router, prefix="/api/categories", tags=["Categories"])
    app.include_router(guestbook.router, prefix="/api/guestbooks", tags=["Guestbook"])

    # Public surface
    app.include_router(publications.public_router, prefix="/api/public/publications", tags=["Public"])
    app.include_router(categories.public_router, prefix="/api/public/categories", tags=["Public"])
    app.include_router(guestbook.public_router, prefix="/api/public/guestbooks", tags=["Public"])

    @app.get("/health", tags=["Root"])
    async def health():
        return {"status": "ok", "version": settings.app_version}

    @app.get("/api/languages", tags=["Root"])
    async def languages():
        return {"data": [get_language_info(code) for code in settings.supported_languages]}

    if settings.debug:
        logger.info(f"Running in {settings.environment} mode")
        logging.getLogger("sqlalchemy.engine").setLevel(logging.INFO)

    return app


app = create_app()


@app.on_event("startup")
async def startup_event():
    """Tasks to run at application startup."""
    logger.info("Starting up the application...")
    if settings.debug:
        async with engine.begin() as conn:
            await conn.run_sync(Base.metadata.create_all)
        logger.info("Database tables created (if not existing).")
    if not settings.gemini_api_key:
        logger.warning("GEMINI_API_KEY is not set; publication writes will fail at the translation step")


@app.on_event("shutdown")
async def shutdown_event():
    logger.info("Shutting down the application...")
    await engine.dispose()


if __name__ == "__main__":
    uvicorn.run("main:app", host="0.0.0.0", port=8000, reload=settings.debug)
