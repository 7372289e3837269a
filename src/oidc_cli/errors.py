from __future__ import annotations

from typing import Any, Mapping


class OidcError(Exception):
    """Base class for every failure surfaced by the login flow."""

    def __init__(
        self,
        message: str,
        *,
        error: str | None = None,
        description: str | None = None,
        status_code: int | None = None,
        details: Mapping[str, Any] | None = None,
    ) -> None:
        super().__init__(message)
        self.error = error
        self.description = description
        self.status_code = status_code
        self.details = dict(details or {})


class ConfigError(OidcError):
    """Raised when profile fields are missing or contradictory."""


class DiscoveryError(OidcError):
    """Raised when the provider metadata document cannot be fetched or validated."""


class StateMismatch(OidcError):
    """Raised when the callback state does not match the state sent to the provider."""

    def __init__(self, message: str = "State parameter mismatch", **kwargs: Any) -> None:
        kwargs.setdefault("error", "state_mismatch")
        super().__init__(message, **kwargs)


class AuthError(OidcError):
    """Raised when the provider refuses the authorization or the token exchange."""


class InvalidTokenResponse(OidcError):
    """Raised when the token endpoint answers 2xx with an unusable body."""


class AuthTimeout(OidcError):
    """Raised when no callback arrives before the deadline."""


class FlowCancelled(OidcError):
    """Raised when the user aborts the flow. Reported as a clean exit."""

    def __init__(self, message: str = "Operation cancelled by user", **kwargs: Any) -> None:
        super().__init__(message, **kwargs)


class BrowserFailed(OidcError):
    """Raised when the system browser could not be launched."""


class CallbackServerError(OidcError):
    """Raised when the loopback callback server cannot be started."""


class ProfileError(OidcError):
    """Raised for profile store failures."""


class ProfileNotFound(ProfileError):
    def __init__(self, name: str) -> None:
        super().__init__(f"Profile not found: {name}", error="profile_not_found")
        self.name = name


class ProfileExists(ProfileError):
    def __init__(self, name: str) -> None:
        super().__init__(f"Profile already exists: {name}", error="profile_exists")
        self.name = name
