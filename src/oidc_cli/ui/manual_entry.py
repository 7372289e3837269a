from __future__ import annotations

from typing import Optional
from urllib.parse import urlsplit

from oidc_cli.ui.types import UserInterface
from oidc_cli.urls import parse_query_params


def extract_authorization_code(text: str) -> Optional[str]:
    """Return the code from a bare code or a pasted callback URL, else None."""
    value = text.strip()
    if not value:
        return None
    if "://" in value:
        try:
            query = urlsplit(value).query
        except ValueError:
            return None
        return parse_query_params(query).get("code") or None
    return value


def prompt_for_authorization_code(ui: UserInterface) -> str:
    ui.display(
        "Since your redirect URI is not localhost, you'll need to manually enter the authorization code."
    )
    ui.display("After authorizing in your browser, copy the full callback URL or just the 'code' parameter.")
    while True:
        raw = ui.prompt("Enter the authorization code or full callback URL")
        if not raw.strip():
            ui.display("Authorization code cannot be empty. Please try again.")
            continue
        code = extract_authorization_code(raw)
        if code:
            return code
        ui.display("Could not extract authorization code from the input. Please try again.")
