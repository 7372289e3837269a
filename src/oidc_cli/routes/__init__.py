from oidc_cli.routes.callback import build_callback_router
from oidc_cli.routes.token import TOKEN_PATH, router as token_router

__all__ = ["TOKEN_PATH", "build_callback_router", "token_router"]
