from __future__ import annotations

from dataclasses import dataclass
from typing import List, Optional

from pydantic import BaseModel, ConfigDict


@dataclass(frozen=True)
class ProviderEndpoints:
    authorization_endpoint: str
    token_endpoint: str


class DiscoveryDocument(BaseModel):
    """Subset of the OIDC provider metadata used by the login flow."""

    model_config = ConfigDict(extra="ignore", frozen=True)

    issuer: str
    authorization_endpoint: str
    token_endpoint: str
    userinfo_endpoint: Optional[str] = None
    jwks_uri: Optional[str] = None
    response_types_supported: Optional[List[str]] = None
    subject_types_supported: Optional[List[str]] = None
    id_token_signing_alg_values_supported: Optional[List[str]] = None
    scopes_supported: Optional[List[str]] = None
    token_endpoint_auth_methods_supported: Optional[List[str]] = None
    code_challenge_methods_supported: Optional[List[str]] = None

    def supports_pkce(self) -> bool:
        return "S256" in (self.code_challenge_methods_supported or [])

    def supports_authorization_code(self) -> bool:
        if self.response_types_supported is None:
            return True
        return "code" in self.response_types_supported

    def endpoints(self) -> ProviderEndpoints:
        return ProviderEndpoints(
            authorization_endpoint=self.authorization_endpoint,
            token_endpoint=self.token_endpoint,
        )


class TokenResult(BaseModel):
    model_config = ConfigDict(extra="ignore", frozen=True)

    access_token: str
    token_type: str
    expires_in: Optional[int] = None
    refresh_token: Optional[str] = None
    id_token: Optional[str] = None
    scope: Optional[str] = None
