"""FastAPI application entry point."""

from fastapi import FastAPI

from atlas_api.api.router import api_router
from atlas_api.core.config import Settings, get_settings
from atlas_api.core.logging import setup_logging
from atlas_api.core.startup import AppServices, StartupReport, check_startup
from atlas_api.exceptions import register_exception_handlers
from atlas_api.middlewares import register_middlewares

__all__ = ["AppServices", "StartupReport", "app", "check_startup", "create_app"]


def create_app(settings: Settings | None = None, services: AppServices | None = None) -> FastAPI:
    """Create and configure the FastAPI application."""
    settings = settings or get_settings()
    setup_logging(settings.log_level)

    app = FastAPI(
        title=settings.app_name,
        version="1.0.0",
        debug=settings.app_debug,
        description=(
            "Account and onboarding API.\n\n"
            "Every route answers `{request_id, data, meta}` on success and "
            "`{request_id, error}` on failure.\n"
            "Authenticated routes take a bearer session token from login or email verification."
        ),
        openapi_tags=[
            {"name": "health", "description": "Liveness and readiness probes."},
            {"name": "auth", "description": "Registration, email verification, login and password reset."},
            {"name": "profile", "description": "Onboarding profile and payments-account linking."},
        ],
    )
    app.state.services = services or AppServices.from_settings(settings)
    app.state.startup = check_startup(settings)

    register_middlewares(app)
    register_exception_handlers(app)
    app.include_router(api_router, prefix=settings.api_prefix)
    return app


app = create_app()
