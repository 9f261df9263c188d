"""
FastAPI application factory.

DESIGN DECISION: Routes stay thin. Each one resolves the caller from the
bearer token, delegates to one service call and returns the model; the
status code for a failure is chosen by familybudget.api.errors.
"""

from typing import Optional

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

import familybudget
from familybudget.api.errors import register_error_handlers
from familybudget.api.routers import budget, family, invites, users
from familybudget.audit import configure_logging
from familybudget.config import validate_all_settings
from familybudget.orchestrator import AppComponents, create_app_components


def create_app(components: Optional[AppComponents] = None) -> FastAPI:
    """
    Build the API.

    Args:
        components: Pre-wired components (tests pass in-memory ones);
                    built from settings when omitted
    """
    components = components or create_app_components()
    configure_logging(components.settings.log_level)

    app = FastAPI(
        title="Family Budget API",
        version=familybudget.__version__,
        debug=components.settings.debug_mode,
    )
    app.state.components = components

    app.add_middleware(
        CORSMiddleware,
        allow_origins=components.settings.cors_origins_list,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    register_error_handlers(app)

    @app.get("/api/health", tags=["health"])
    async def health():
        return {
            "status": "ok",
            "environment": components.settings.app_environment,
            "settings": validate_all_settings(),
        }

    for module in (budget, family, invites, users):
        app.include_router(module.router)

    return app
