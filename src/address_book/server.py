"""Process bootstrap: discover the provider, check policy, wire the app, serve."""

from __future__ import annotations

import os
import sys
from typing import Callable, Mapping

import requests
from flask import Flask

from .app import create_app
from .auth_gate import AuthGate
from .config import ConfigError, load_config
from .credentials import credential_policy
from .discovery import DiscoveryError, discover
from .jwks_cache import KeySetCache, KeySetError
from .logging import configure, log_error, log_info
from .policy import PolicyError, enforce
from .resolver import ContactResolver
from .store import ContactStore, PersistenceError
from .token_validator import TokenVerifier

STARTUP_ERRORS = (ConfigError, DiscoveryError, PolicyError, PersistenceError, KeySetError)

StoreFactory = Callable[[str, str], ContactStore]


def bootstrap(
    environ: Mapping[str, str],
    store_factory: StoreFactory = ContactStore.connect,
    session: requests.Session | None = None,
) -> tuple[Flask, int]:
    """Run the startup sequence and return the wired app and its port.

    Raises one of STARTUP_ERRORS; the caller must not serve in that case.
    """
    config = load_config(environ)
    configure(config.log_level)
    log_info("initializing address book service")

    http = session or requests.Session()

    metadata = discover(config.identity_service_url, timeout=config.http_timeout, session=http)
    enforce(metadata, config.algorithm)

    store = store_factory(config.gcp_project_id, config.firestore_database)
    store.check_connection()
    log_info(f"Firestore ready for project {config.gcp_project_id!r}")

    key_cache = KeySetCache(
        metadata.jwks_uri,
        session=http,
        timeout=config.http_timeout,
        min_refresh_interval=config.jwks_refresh_cooldown,
    )
    key_cache.refresh()

    verifier = TokenVerifier(
        key_cache,
        algorithm=config.algorithm,
        audience=config.token_audience,
        issuer=config.token_issuer,
        leeway=config.clock_skew,
    )
    gate = AuthGate(verifier, credential_policy(config))
    resolver = ContactResolver(
        store, config.identity_service_url, session=http, timeout=config.http_timeout,
    )
    log_info(f"cross-service credential mode: {config.credential_mode}")
    return create_app(gate, resolver), config.port


def main() -> int:
    configure()
    try:
        app, port = bootstrap(os.environ)
    except STARTUP_ERRORS as exc:
        log_error("FATAL: address book service failed to start")
        log_error(f"{type(exc).__name__}: {exc}")
        return 1

    log_info(f"address book service listening on port {port}")
    app.run(host="0.0.0.0", port=port, threaded=True)
    return 0


if __name__ == "__main__":
    sys.exit(main())
