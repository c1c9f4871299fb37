"""Identity provider discovery: fetch .well-known/oauth-authorization-server."""

from __future__ import annotations

from dataclasses import dataclass

import requests

from .config import is_trusted_url
from .logging import log_debug, log_info

DISCOVERY_PATH = "/.well-known/oauth-authorization-server"
DISCOVERY_TIMEOUT = 10


class DiscoveryError(Exception):
    pass


@dataclass(frozen=True)
class ProviderMetadata:
    supported_algorithms: frozenset[str]
    jwks_uri: str


def discover(
    provider_base_url: str,
    timeout: float = DISCOVERY_TIMEOUT,
    session: requests.Session | None = None,
) -> ProviderMetadata:
    """Fetch the provider's metadata document and return the fields we rely on.

    Requires ``id_token_signing_alg_values_supported`` (a list of strings)
    and a ``jwks_uri`` served over HTTPS (plain http is tolerated for
    loopback development hosts only).
    """
    discovery_url = provider_base_url.rstrip("/") + DISCOVERY_PATH
    log_info(f"discovering identity provider configuration from {discovery_url}")

    http = session or requests
    try:
        resp = http.get(discovery_url, timeout=timeout)
        resp.raise_for_status()
    except requests.RequestException as exc:
        raise DiscoveryError(f"failed to fetch discovery document: {exc}") from exc

    try:
        doc = resp.json()
    except ValueError as exc:
        raise DiscoveryError(f"discovery document is not valid JSON: {exc}") from exc
    if not isinstance(doc, dict):
        raise DiscoveryError("discovery document is not a JSON object")

    algs = doc.get("id_token_signing_alg_values_supported")
    if algs is None:
        raise DiscoveryError(
            "discovery document missing 'id_token_signing_alg_values_supported' field"
        )
    if not isinstance(algs, list) or not all(isinstance(a, str) for a in algs):
        raise DiscoveryError(
            "'id_token_signing_alg_values_supported' must be a list of strings"
        )

    jwks_uri = doc.get("jwks_uri")
    if not jwks_uri:
        raise DiscoveryError("discovery document missing 'jwks_uri' field")
    if not isinstance(jwks_uri, str) or not is_trusted_url(jwks_uri):
        raise DiscoveryError(f"jwks_uri must use HTTPS: {jwks_uri}")

    log_debug(f"provider advertises algorithms {algs}, jwks_uri={jwks_uri}")
    return ProviderMetadata(
        supported_algorithms=frozenset(algs),
        jwks_uri=jwks_uri,
    )
