from __future__ import annotations

from typing import Dict, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator


class Profile(BaseModel):
    """Client registration for one identity provider."""

    model_config = ConfigDict(extra="ignore")

    client_id: str
    client_secret: Optional[str] = None
    redirect_uri: str
    scope: str
    discovery_uri: Optional[str] = None

    # Manual endpoints if discovery is unavailable
    authorization_endpoint: Optional[str] = None
    token_endpoint: Optional[str] = None

    @field_validator("client_secret", "discovery_uri", "authorization_endpoint", "token_endpoint", mode="before")
    @classmethod
    def _blank_to_none(cls, value: object) -> object:
        if isinstance(value, str) and not value.strip():
            return None
        return value

    def has_static_endpoints(self) -> bool:
        return bool(self.authorization_endpoint and self.token_endpoint)

    def is_confidential(self) -> bool:
        return bool(self.client_secret)


class ProfileConfig(BaseModel):
    """On-disk layout of the profile file."""

    profiles: Dict[str, Profile] = Field(default_factory=dict)
