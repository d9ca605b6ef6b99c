import logging
from typing import Optional

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from app.core.config import Settings, settings as default_settings
from app.core.context import build_service_context
from app.core.database import DatabaseManager
from app.core.global_error_handler import register_global_exception_handlers
from app.modules.payment.api import router as payment_router
from app.modules.plans.api import router as plans_router
from app.modules.scripts.api import router as scripts_router
from app.modules.speech.api import router as speech_router
from app.modules.user.api import router as user_router

logger = logging.getLogger(__name__)


def create_app(settings: Optional[Settings] = None) -> FastAPI:
    settings = settings or default_settings
    app = FastAPI(
        title=settings.APP_NAME,
        description="Usage-metered text-to-speech across generative and managed speech providers.",
        version="1.0.0",
    )

    # Register global exception handlers
    register_global_exception_handlers(app)

    @app.on_event("startup")
    async def startup_event():
        """Build the service context unless one was installed beforehand (tests do)."""
        if getattr(app.state, "services", None) is not None:
            return
        db_manager = DatabaseManager(settings.DATABASE_URL)
        if settings.DB_AUTO_CREATE:
            await db_manager.create_all()
        app.state.db_manager = db_manager
        app.state.services = build_service_context(settings, db_manager.async_session_maker)
        status = app.state.services.broker.provider_status()
        logger.info(f"Speech providers configured: {status}")

    @app.on_event("shutdown")
    async def shutdown_event():
        """Close database connections on shutdown."""
        db_manager = getattr(app.state, "db_manager", None)
        if db_manager is not None:
            await db_manager.close()
            logger.info("Database engine closed.")

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.CORS_ORIGINS,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    # Include routers
    app.include_router(speech_router, prefix="/api")
    app.include_router(plans_router, prefix="/api")
    app.include_router(user_router, prefix="/api")
    app.include_router(payment_router, prefix="/api")
    app.include_router(scripts_router, prefix="/api")

    @app.get("/api/")
    async def root():
        return {"message": f"{settings.APP_NAME} is running"}

    @app.get("/api/health")
    async def health_check():
        services = getattr(app.state, "services", None)
        providers = services.broker.provider_status() if services is not None else {}
        return {
            "status": "OK",
            "services": {
                "gemini": providers.get("gemini", False),
                "googleTTS": providers.get("google", False),
                "razorpay": bool(services and services.payments.gateway.enabled),
            },
        }

    return app


app = create_app()
