from oidc_cli.middleware.callback_guard import CallbackGuardMiddleware

__all__ = ["CallbackGuardMiddleware"]
