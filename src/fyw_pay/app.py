"""
Application factory for the FYW Pay API
"""
import logging
from typing import Callable, Mapping, Optional

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from fastapi.staticfiles import StaticFiles
from sqlalchemy import text
from sqlalchemy.orm import Session

from . import __version__
from .admin_routes import router as admin_router
from .config import Config, get_config
from .db.engine import build_engine, build_session_factory, init_db
from .exceptions import register_exception_handlers
from .logging_config import RequestIDMiddleware, setup_logging
from .payment_routes import router as payment_router
from .services.email_provider import get_email_provider
from .services.invite_service import InviteService
from .services.notification_service import PaymentNotifier
from .services.payment_gateway import PaymentGateway, build_gateways
from .services.storage_provider import get_storage_provider
from .student_routes import router as student_router
from .webhook_routes import router as webhook_router

logger = logging.getLogger(__name__)


def create_app(
    config: Optional[Config] = None,
    gateways: Optional[Mapping[str, PaymentGateway]] = None,
    invite_generator=None,
    notifier: Optional[PaymentNotifier] = None,
    session_factory: Optional[Callable[[], Session]] = None,
) -> FastAPI:
    """
    Build the FastAPI application

    Every collaborator can be passed in; anything left out is built from
    the configuration.
    """
    config = config or get_config()
    setup_logging(env=config.ENV, log_level=config.LOG_LEVEL)

    if session_factory is None:
        engine = build_engine(config)
        if config.is_dev or config.is_sqlite:
            init_db(engine)
        session_factory = build_session_factory(engine)

    if gateways is None:
        gateways = build_gateways(config)
    if config.PAYMENT_PROVIDER not in gateways:
        logger.warning(f"Default payment provider {config.PAYMENT_PROVIDER} is not configured")

    if invite_generator is None:
        invite_generator = InviteService(get_storage_provider(config), signing_secret=config.JWT_SECRET)
    if notifier is None:
        notifier = PaymentNotifier(get_email_provider(config), from_address=config.EMAIL_FROM)

    app = FastAPI(title="FYW Pay API", version=__version__)
    app.state.config = config
    app.state.session_factory = session_factory
    app.state.gateways = dict(gateways)
    app.state.invite_generator = invite_generator
    app.state.notifier = notifier

    app.add_middleware(
        CORSMiddleware,
        allow_origins=config.CORS_ORIGINS,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    app.add_middleware(RequestIDMiddleware)

    register_exception_handlers(app, expose_details=config.is_dev)

    app.include_router(student_router)
    app.include_router(payment_router)
    app.include_router(webhook_router)
    app.include_router(admin_router)

    if config.STORAGE_PROVIDER == "local":
        # Serves locally stored invites at PUBLIC_BASE_URL/storage/...
        app.mount("/storage", StaticFiles(directory=config.STORAGE_PATH, check_dir=False), name="storage")

    @app.get("/health")
    def health(request: Request):
        """Health check for the load balancer and monitoring"""
        try:
            with request.app.state.session_factory() as db:
                db.execute(text("SELECT 1"))
        except Exception as e:
            logger.error(f"Health check database probe failed: {e}")
            return JSONResponse(
                status_code=503,
                content={"status": "unhealthy", "service": "fyw-pay", "database": "unavailable"},
            )
        return {"status": "healthy", "service": "fyw-pay", "database": "ok"}

    logger.info(
        f"FYW Pay API ready (env={config.ENV}, provider={config.PAYMENT_PROVIDER}, "
        f"gateways={sorted(app.state.gateways)})"
    )
    return app
