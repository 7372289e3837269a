from __future__ import annotations

import logging

from fastapi import APIRouter, HTTPException, Request
from fastapi.responses import HTMLResponse

from oidc_cli.app.pages import failure_page, success_page
from oidc_cli.callbacks import CallbackChannel, CallbackProviderError, CallbackSuccess
from oidc_cli.routes.token import TOKEN_PATH
from oidc_cli.urls import parse_query_params

logger = logging.getLogger("oidc_cli.server")


async def handle_callback(request: Request) -> HTMLResponse:
    channel: CallbackChannel = request.app.state.channel
    params = parse_query_params(request.url.query)

    # Provider sign-in error is still a delivered outcome
    if "error" in params:
        outcome = CallbackProviderError(
            error=params["error"],
            error_description=params.get("error_description") or None,
            state=params.get("state") or None,
        )
        if not channel.offer(outcome):
            logger.info("callback already delivered; ignoring provider error")
        return failure_page(request, error=outcome.error, error_description=outcome.error_description)

    code = params.get("code")
    state = params.get("state")
    if code and state:
        if not channel.offer(CallbackSuccess(code=code, state=state)):
            logger.info("callback already delivered; ignoring repeated code")
        return success_page(
            request,
            poll_token=request.app.state.token_cell is not None,
            token_path=TOKEN_PATH,
        )

    raise HTTPException(status_code=400, detail="Missing required parameters")


def build_callback_router(callback_path: str) -> APIRouter:
    router = APIRouter(tags=["callback"])
    router.add_api_route(
        callback_path,
        handle_callback,
        methods=["GET"],
        response_class=HTMLResponse,
        include_in_schema=False,
    )
    return router
