from __future__ import annotations

from typing import Optional

from fastapi import FastAPI

from oidc_cli.app.exceptions import register_exception_handlers
from oidc_cli.callbacks import CallbackChannel, TokenCell
from oidc_cli.middleware.callback_guard import CallbackGuardMiddleware
from oidc_cli.routes import build_callback_router, token_router
from oidc_cli.settings import get_settings


def create_callback_app(
    callback_path: str,
    channel: CallbackChannel,
    token_cell: Optional[TokenCell] = None,
) -> FastAPI:
    """
    Create the single-flow callback application.

    Only ``callback_path`` is served, plus ``/token`` when a token cell is
    given. Interactive docs and trailing-slash redirects are disabled so
    no other path answers.
    """
    settings = get_settings()

    app = FastAPI(
        title=settings.app_name,
        version=settings.app_version,
        docs_url=None,
        redoc_url=None,
        openapi_url=None,
        redirect_slashes=False,
    )
    app.state.channel = channel
    app.state.token_cell = token_cell

    # Routers; the callback path wins if it collides with /token
    app.include_router(build_callback_router(callback_path))
    if token_cell is not None:
        app.include_router(token_router)

    # Middleware
    app.add_middleware(CallbackGuardMiddleware)

    # Exceptions
    register_exception_handlers(app)

    return app
