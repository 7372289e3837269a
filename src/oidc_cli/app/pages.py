from __future__ import annotations

from pathlib import Path
from typing import Any, Dict, Optional

from fastapi import Request
from fastapi.responses import HTMLResponse
from fastapi.templating import Jinja2Templates

NO_CACHE = "no-cache, no-store, must-revalidate"

# Resolve templates directory relative to package root
BASE_DIR = Path(__file__).resolve().parents[1]
templates = Jinja2Templates(directory=str(BASE_DIR / "templates"))


def _render(
    request: Request,
    name: str,
    context: Dict[str, Any],
    status_code: int,
    headers: Optional[Dict[str, str]] = None,
) -> HTMLResponse:
    response = templates.TemplateResponse(request, name, context, status_code=status_code, headers=headers)
    response.headers["Cache-Control"] = NO_CACHE
    return response


def success_page(request: Request, *, poll_token: bool, token_path: str) -> HTMLResponse:
    return _render(request, "success.html", {"poll_token": poll_token, "token_path": token_path}, 200)


def failure_page(request: Request, *, error: str, error_description: Optional[str]) -> HTMLResponse:
    return _render(
        request,
        "failure.html",
        {
            "error": error,
            "error_description": error_description or "An authentication error occurred",
        },
        400,
    )


def status_page(
    request: Request, status_code: int, message: str, headers: Optional[Dict[str, str]] = None
) -> HTMLResponse:
    return _render(request, "status.html", {"status_code": status_code, "message": message}, status_code, headers)
