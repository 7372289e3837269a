from __future__ import annotations

import base64
import hashlib
import os
import secrets
from dataclasses import dataclass


def _b64url(data: bytes) -> str:
    return base64.urlsafe_b64encode(data).rstrip(b"=").decode("ascii")


def generate_state() -> str:
    # 16 bytes -> 22 chars; CSRF correlation only
    return _b64url(secrets.token_bytes(16))


def generate_code_verifier() -> str:
    # 32 bytes -> 43 chars base64url; valid PKCE range is 43-128
    return _b64url(os.urandom(32))


def code_challenge_s256(verifier: str) -> str:
    digest = hashlib.sha256(verifier.encode("utf-8")).digest()
    return _b64url(digest)


@dataclass(frozen=True)
class PkceMaterial:
    verifier: str
    challenge: str
    method: str = "S256"

    @classmethod
    def generate(cls) -> "PkceMaterial":
        verifier = generate_code_verifier()
        return cls(verifier=verifier, challenge=code_challenge_s256(verifier))
