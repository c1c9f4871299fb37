"""Flask view decorator that admits only callers with a verified bearer token.

Usage::

    gate = AuthGate(verifier, credential_policy(config))

    @app.get("/api/address-book")
    @gate.protect
    def list_contacts(identity, credential):
        ...

The verified Identity and the cross-service credential are passed to the
view as keyword arguments; nothing is stashed on the shared request object.
"""

from __future__ import annotations

from functools import wraps
from typing import Any, Callable

from flask import jsonify, request

from .credentials import Credential
from .jwks_cache import KeySetError
from .logging import log_debug, log_warning
from .token_validator import TokenValidationError, TokenVerifier

BEARER_PREFIX = "Bearer "

NO_TOKEN = {"error": "Unauthorized: No token provided."}
INVALID_TOKEN = {"error": "Unauthorized: Invalid or expired token."}


def bearer_token(header: str | None) -> str | None:
    """Return the token from an ``Authorization`` header, or None if absent or malformed."""
    if not header or not header.startswith(BEARER_PREFIX):
        return None
    token = header[len(BEARER_PREFIX):].strip()
    return token or None


class AuthGate:
    def __init__(self, verifier: TokenVerifier, credential_policy: Callable[[str], Credential]):
        self.verifier = verifier
        self.credential_policy = credential_policy

    def protect(self, view: Callable) -> Callable:
        @wraps(view)
        def wrapper(*args: Any, **kwargs: Any) -> Any:
            token = bearer_token(request.headers.get("Authorization"))
            if token is None:
                log_debug(f"{request.method} {request.path}: no bearer token")
                return jsonify(NO_TOKEN), 401

            try:
                identity = self.verifier.verify(token)
            except (TokenValidationError, KeySetError) as exc:
                # Reason stays in the log; the caller only sees a generic 401.
                log_warning(
                    f"{request.method} {request.path}: token rejected "
                    f"({type(exc).__name__}: {exc})"
                )
                return jsonify(INVALID_TOKEN), 401

            kwargs["identity"] = identity
            kwargs["credential"] = self.credential_policy(token)
            return view(*args, **kwargs)

        return wrapper
