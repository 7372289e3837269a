from __future__ import annotations

from typing import List

from oidc_cli.clients.types import TokenResult


def format_tokens(token: TokenResult) -> str:
    lines: List[str] = ["Authentication successful!", "", "=== TOKENS ===", ""]

    lines += ["Access Token:", token.access_token, f"Type: {token.token_type}"]
    if token.expires_in is not None:
        lines.append(f"Expires In: {token.expires_in} seconds")
    else:
        lines.append("Expires In: Not specified")
    lines.append("")

    if token.id_token:
        lines += ["ID Token:", token.id_token]
        if token.expires_in is not None:
            lines.append(f"Expires In: {token.expires_in} seconds (same as access token)")
        else:
            lines.append("Expires In: Check token 'exp' claim for exact expiration")
        lines.append("")

    if token.refresh_token:
        lines += ["Refresh Token:", token.refresh_token, ""]

    if token.scope:
        lines += [f"Scope: {token.scope}", ""]

    return "\n".join(lines)


def format_tokens_json(token: TokenResult) -> str:
    return token.model_dump_json(exclude_none=True, indent=2)
