from __future__ import annotations

from fastapi import APIRouter, Request
from fastapi.responses import JSONResponse, Response

from oidc_cli.callbacks import TokenCell

TOKEN_PATH = "/token"

router = APIRouter(tags=["token"])


@router.get(TOKEN_PATH, include_in_schema=False)
async def published_token(request: Request) -> Response:
    cell: TokenCell = request.app.state.token_cell
    token = cell.get()
    if token is None:
        # Exchange still in flight
        return Response(status_code=204)
    return JSONResponse(
        {
            "access_token": token.access_token,
            "token_type": token.token_type,
            "expires_in": token.expires_in,
        }
    )
