"""
Configuration centralisée de l'application Rentverse
Organisation des routes, middleware et configuration
"""
from typing import Optional
from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
import logging

from settings import Settings
from database import Base, build_engine, build_session_factory
from email_service import EmailService
import models  # noqa: F401  (enregistre les tables sur Base.metadata)

# Import des middlewares
from middleware import RequestLoggingMiddleware
from error_handlers import register_exception_handlers

# Import des contrôleurs et routes
from controllers.auth_controller import router as auth_router
import lease_routes
import user_routes

# Import des constantes
from constants import APP_NAME, APP_VERSION, APP_DESCRIPTION

logger = logging.getLogger(__name__)

# Configuration des en-têtes de sécurité
SECURITY_HEADERS = {
    "X-Content-Type-Options": "nosniff",
    "X-Frame-Options": "DENY",
    "X-XSS-Protection": "1; mode=block",
    "Referrer-Policy": "strict-origin-when-cross-origin",
    "Permissions-Policy": "geolocation=(), microphone=(), camera=()",
}


class AppConfigurator:
    """
    Configurateur centralisé pour l'application FastAPI
    """

    @staticmethod
    def create_app(settings: Optional[Settings] = None) -> FastAPI:
        """
        Crée et configure l'application FastAPI
        Le moteur et la fabrique de sessions sont construits ici à partir de la configuration
        """
        settings = settings or Settings.from_env()
        AppConfigurator.configure_logging(settings.log_level)

        app = FastAPI(
            title=APP_NAME,
            version=APP_VERSION,
            description=APP_DESCRIPTION
        )

        AppConfigurator._configure_state(app, settings)

        # Configurer les middlewares
        AppConfigurator._configure_middlewares(app, settings)

        # Configurer les gestionnaires d'exceptions
        register_exception_handlers(app)

        # Configurer les routes
        AppConfigurator._configure_routes(app)

        logger.info("Application %s démarrée (environnement: %s)", APP_NAME, settings.environment)
        return app

    @staticmethod
    def configure_logging(level: str = "INFO"):
        logging.basicConfig(
            level=getattr(logging, level.upper(), logging.INFO),
            format="%(asctime)s %(levelname)s [%(name)s] %(message)s"
        )

    @staticmethod
    def _configure_state(app: FastAPI, settings: Settings):
        engine = build_engine(settings.database_url)
        if settings.create_tables:
            Base.metadata.create_all(bind=engine)

        app.state.settings = settings
        app.state.engine = engine
        app.state.session_factory = build_session_factory(engine)
        app.state.email_service = EmailService(settings)

    @staticmethod
    def _configure_middlewares(app: FastAPI, settings: Settings):
        """
        Configure tous les middlewares
        """
        app.add_middleware(
            CORSMiddleware,
            allow_origins=settings.cors_origins,
            allow_credentials=True,
            allow_methods=["GET", "POST", "PUT", "PATCH", "DELETE", "OPTIONS"],
            allow_headers=["*"],
        )

        @app.middleware("http")
        async def security_headers(request: Request, call_next):
            response = await call_next(request)
            for header, value in SECURITY_HEADERS.items():
                response.headers[header] = value
            return response

        # Journal des requêtes (ajouté en dernier : enveloppe tous les autres)
        app.add_middleware(RequestLoggingMiddleware)

    @staticmethod
    def _configure_routes(app: FastAPI):
        """
        Configure toutes les routes de l'application
        """
        app.include_router(auth_router)
        app.include_router(lease_routes.router)
        app.include_router(user_routes.router)
