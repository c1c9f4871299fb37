"""Credentials presented to the identity provider on cross-service lookups.

Exactly one mode is active per deployment:

``forward``
    Re-send the caller's own bearer token. The provider sees the end user.
``api-key``
    Send a static ``X-Internal-API-Key``. The provider sees this service.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Callable, Protocol

from .config import ServiceConfig

INTERNAL_API_KEY_HEADER = "X-Internal-API-Key"


class Credential(Protocol):
    def headers(self) -> dict[str, str]: ...


@dataclass(frozen=True)
class ForwardedBearer:
    token: str = field(repr=False)

    def headers(self) -> dict[str, str]:
        return {"Authorization": f"Bearer {self.token}"}


@dataclass(frozen=True)
class InternalApiKey:
    key: str = field(repr=False)

    def headers(self) -> dict[str, str]:
        return {INTERNAL_API_KEY_HEADER: self.key}


def credential_policy(config: ServiceConfig) -> Callable[[str], Credential]:
    """Return the per-request credential factory for ``config.credential_mode``."""
    if config.credential_mode == "forward":
        return ForwardedBearer
    if config.credential_mode == "api-key":
        api_key = InternalApiKey(config.internal_api_key or "")
        return lambda _token: api_key
    raise ValueError(f"unknown credential mode: {config.credential_mode}")
