from __future__ import annotations

import logging

from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request
from starlette.responses import Response

from oidc_cli.app.pages import NO_CACHE, status_page


class CallbackGuardMiddleware(BaseHTTPMiddleware):
    """Rejects non-GET requests and marks every response as uncacheable."""

    def __init__(self, app, logger_name: str = "oidc_cli.server"):
        super().__init__(app)
        self.logger = logging.getLogger(logger_name)

    async def dispatch(self, request: Request, call_next) -> Response:
        if request.method != "GET":
            response: Response = status_page(request, 405, "Method Not Allowed", headers={"Allow": "GET"})
        else:
            response = await call_next(request)
        response.headers["Cache-Control"] = NO_CACHE
        # Query strings carry the authorization code; only the path is logged
        self.logger.info(
            "request",
            extra={
                "method": request.method,
                "path": request.url.path,
                "status": response.status_code,
            },
        )
        return response
