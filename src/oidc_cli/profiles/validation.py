from __future__ import annotations

import re
from urllib.parse import urlsplit

from oidc_cli.errors import ConfigError
from oidc_cli.profiles.models import Profile

_SCOPE_VALUE = re.compile(r"^[A-Za-z0-9_.:\-]+$")
MAX_CLIENT_ID_LENGTH = 255


def validate_client_id(client_id: str) -> None:
    if not client_id:
        raise ConfigError("Client ID cannot be empty", error="missing_field")
    if client_id.strip() != client_id:
        raise ConfigError("Client ID cannot have leading or trailing whitespace")
    if len(client_id) > MAX_CLIENT_ID_LENGTH:
        raise ConfigError(f"Client ID cannot exceed {MAX_CLIENT_ID_LENGTH} characters")


def validate_redirect_uri(redirect_uri: str) -> None:
    if not redirect_uri:
        raise ConfigError("Redirect URI cannot be empty", error="missing_field")
    try:
        parsed = urlsplit(redirect_uri)
    except ValueError as exc:
        raise ConfigError(f"Invalid redirect URI: {redirect_uri}", error="invalid_redirect_uri") from exc
    if parsed.scheme not in ("http", "https"):
        raise ConfigError(
            f"Invalid redirect URI: {redirect_uri} (must use http or https scheme)",
            error="invalid_redirect_uri",
        )
    if not parsed.hostname:
        raise ConfigError(f"Invalid redirect URI: {redirect_uri} (must have a valid host)", error="invalid_redirect_uri")


def validate_scope(scope: str) -> None:
    values = scope.split()
    if not values:
        raise ConfigError("Scope must contain at least one valid scope value", error="missing_field")
    for value in values:
        if not _SCOPE_VALUE.match(value):
            raise ConfigError(
                f"Invalid scope value '{value}': must contain only alphanumeric characters, "
                "underscores, hyphens, dots, or colons"
            )


def validate_https_url(url: str, label: str) -> None:
    if not url:
        raise ConfigError(f"{label} cannot be empty")
    try:
        parsed = urlsplit(url)
    except ValueError as exc:
        raise ConfigError(f"Invalid {label}: {url}") from exc
    if parsed.scheme != "https":
        raise ConfigError(f"{label} must use HTTPS")
    if not parsed.hostname:
        raise ConfigError(f"{label} must have a valid host")


def validate_endpoint_configuration(profile: Profile) -> None:
    if profile.discovery_uri is None and not profile.has_static_endpoints():
        raise ConfigError(
            "Either discovery URI or both authorization and token endpoints must be provided"
        )


def validate_profile(profile: Profile) -> None:
    """Check a profile before it is stored."""
    validate_client_id(profile.client_id)
    validate_redirect_uri(profile.redirect_uri)
    validate_scope(profile.scope)
    if profile.discovery_uri is not None:
        validate_https_url(profile.discovery_uri, "Discovery URI")
    if profile.authorization_endpoint is not None:
        validate_https_url(profile.authorization_endpoint, "Authorization endpoint")
    if profile.token_endpoint is not None:
        validate_https_url(profile.token_endpoint, "Token endpoint")
    validate_endpoint_configuration(profile)
