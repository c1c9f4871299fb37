"""Parse environment variables into a validated service configuration."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Mapping
from urllib.parse import urlparse

SAFE_ALGORITHMS = frozenset({
    "RS256", "RS384", "RS512", "ES256", "ES384", "ES512", "PS256", "PS384", "PS512",
})
BLOCKED_ALGORITHMS = frozenset({"HS256", "HS384", "HS512", "none"})
LOG_LEVELS = frozenset({"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"})

CREDENTIAL_MODES = frozenset({"forward", "api-key"})
LOOPBACK_HOSTS = frozenset({"localhost", "127.0.0.1", "::1"})

REQUIRED = ("GCP_PROJECT_ID", "IDENTITY_SERVICE_URL")

_DEFAULTS = {
    "FIRESTORE_DATABASE": "(default)",
    "PORT": "3001",
    "JWT_ALGORITHM": "RS256",
    "CREDENTIAL_MODE": "forward",
    "CLOCK_SKEW_SECONDS": "0",
    "HTTP_TIMEOUT_SECONDS": "10",
    "JWKS_REFRESH_COOLDOWN_SECONDS": "30",
    "LOG_LEVEL": "INFO",
}


class ConfigError(Exception):
    pass


@dataclass(frozen=True)
class ServiceConfig:
    gcp_project_id: str
    identity_service_url: str
    firestore_database: str
    port: int
    algorithm: str
    credential_mode: str
    internal_api_key: str | None
    token_audience: str | None
    token_issuer: str | None
    clock_skew: int
    http_timeout: int
    jwks_refresh_cooldown: int
    log_level: str


def is_trusted_url(url: str) -> bool:
    """True for https URLs, or plain http pointing at a loopback host."""
    parsed = urlparse(url)
    if not parsed.hostname:
        return False
    if parsed.scheme == "https":
        return True
    return parsed.scheme == "http" and parsed.hostname in LOOPBACK_HOSTS


def _int(raw: Mapping[str, str], key: str) -> int:
    try:
        value = int(raw[key])
    except ValueError:
        raise ConfigError(f"{key} must be an integer: {raw[key]}")
    if value < 0:
        raise ConfigError(f"{key} must be non-negative: {value}")
    return value


def load_config(environ: Mapping[str, str]) -> ServiceConfig:
    """Build a ServiceConfig from an environment mapping.

    Empty values count as unset. Raises ConfigError naming the first
    offending variable.
    """
    raw: dict[str, str] = dict(_DEFAULTS)
    raw.update({k: v for k, v in environ.items() if v != ""})

    for key in REQUIRED:
        if key not in raw:
            raise ConfigError(f"missing required environment variable: {key}")

    identity_service_url = raw["IDENTITY_SERVICE_URL"].rstrip("/")
    if not is_trusted_url(identity_service_url):
        raise ConfigError(
            f"IDENTITY_SERVICE_URL must use HTTPS (or http on loopback): {identity_service_url}"
        )

    algorithm = raw["JWT_ALGORITHM"]
    if algorithm in BLOCKED_ALGORITHMS:
        raise ConfigError(f"algorithm not allowed (symmetric/none): {algorithm}")
    if algorithm not in SAFE_ALGORITHMS:
        raise ConfigError(f"unsupported algorithm: {algorithm}")

    credential_mode = raw["CREDENTIAL_MODE"]
    if credential_mode not in CREDENTIAL_MODES:
        raise ConfigError(
            f"CREDENTIAL_MODE must be one of {sorted(CREDENTIAL_MODES)}: {credential_mode}"
        )
    internal_api_key = raw.get("INTERNAL_API_KEY")
    if credential_mode == "api-key" and not internal_api_key:
        raise ConfigError("missing required environment variable: INTERNAL_API_KEY")

    log_level = raw["LOG_LEVEL"].upper()
    if log_level not in LOG_LEVELS:
        raise ConfigError(f"LOG_LEVEL must be one of {sorted(LOG_LEVELS)}: {raw['LOG_LEVEL']}")

    port = _int(raw, "PORT")
    if not 0 < port < 65536:
        raise ConfigError(f"PORT out of range: {port}")

    http_timeout = _int(raw, "HTTP_TIMEOUT_SECONDS")
    if http_timeout == 0:
        raise ConfigError("HTTP_TIMEOUT_SECONDS must be positive")

    return ServiceConfig(
        gcp_project_id=raw["GCP_PROJECT_ID"],
        identity_service_url=identity_service_url,
        firestore_database=raw["FIRESTORE_DATABASE"],
        port=port,
        algorithm=algorithm,
        credential_mode=credential_mode,
        internal_api_key=internal_api_key,
        token_audience=raw.get("TOKEN_AUDIENCE"),
        token_issuer=raw.get("TOKEN_ISSUER"),
        clock_skew=_int(raw, "CLOCK_SKEW_SECONDS"),
        http_timeout=http_timeout,
        jwks_refresh_cooldown=_int(raw, "JWKS_REFRESH_COOLDOWN_SECONDS"),
        log_level=log_level,
    )
