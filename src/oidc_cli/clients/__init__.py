from oidc_cli.clients.discovery import DiscoveryResolver
from oidc_cli.clients.oauth import (
    AuthorizationRequest,
    FlowState,
    TokenExchanger,
    build_authorization_request,
    resolve_endpoints,
)
from oidc_cli.clients.types import DiscoveryDocument, ProviderEndpoints, TokenResult

__all__ = [
    "AuthorizationRequest",
    "DiscoveryDocument",
    "DiscoveryResolver",
    "FlowState",
    "ProviderEndpoints",
    "TokenExchanger",
    "TokenResult",
    "build_authorization_request",
    "resolve_endpoints",
]
