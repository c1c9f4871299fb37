"""In-memory JWKS cache with refresh-on-miss and single-flight fetching."""

from __future__ import annotations

import threading
import time
from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Any, Mapping

import requests
from jwt.algorithms import ECAlgorithm, RSAAlgorithm
from jwt.exceptions import InvalidKeyError

from .logging import log_debug, log_info, log_warning

JWKS_FETCH_TIMEOUT = 10
JWKS_REFRESH_COOLDOWN = 30

_KEY_PARSERS = {
    "RSA": RSAAlgorithm.from_jwk,
    "EC": ECAlgorithm.from_jwk,
}


class KeySetError(Exception):
    pass


class KeySetFetchError(KeySetError):
    pass


class KeyNotFoundError(KeySetError):
    pass


@dataclass(frozen=True)
class _Snapshot:
    keys: Mapping[str, Any] = field(default_factory=lambda: MappingProxyType({}))
    fetched_at: float | None = None


def parse_jwks(jwks: Any) -> dict[str, Any]:
    """Turn a JWKS document into ``{kid: public_key}``.

    Keys without a kid, with an unsupported ``kty``, or with unusable
    material are skipped.
    """
    if not isinstance(jwks, dict) or not isinstance(jwks.get("keys"), list):
        raise KeySetFetchError("JWKS document has no 'keys' list")

    keys: dict[str, Any] = {}
    for key_data in jwks["keys"]:
        if not isinstance(key_data, dict):
            continue
        kid = key_data.get("kid")
        if not isinstance(kid, str) or not kid:
            log_debug("skipping JWKS entry without 'kid'")
            continue
        parser = _KEY_PARSERS.get(key_data.get("kty"))
        if parser is None:
            log_debug(f"skipping key '{kid}' with unsupported kty {key_data.get('kty')!r}")
            continue
        try:
            keys[kid] = parser(key_data)
        except (InvalidKeyError, ValueError, KeyError, TypeError) as exc:
            log_warning(f"skipping unusable key '{kid}': {exc}")
    return keys


class KeySetCache:
    """Public signing keys from the provider, indexed by key id.

    Readers use the current snapshot without locking. A miss takes the
    refresh lock; a thread that waited on it checks whether another fetch
    attempt finished meanwhile and reuses that outcome, success or failure,
    so concurrent misses collapse into one fetch.

    Misses within ``min_refresh_interval`` seconds of the last attempt are
    answered from the cache without fetching. ``refresh()`` always fetches.
    """

    def __init__(
        self,
        jwks_uri: str,
        session: requests.Session | None = None,
        timeout: float = JWKS_FETCH_TIMEOUT,
        min_refresh_interval: float = JWKS_REFRESH_COOLDOWN,
    ):
        self.jwks_uri = jwks_uri
        self.timeout = timeout
        self.min_refresh_interval = min_refresh_interval
        self._http = session or requests.Session()
        self._lock = threading.Lock()
        self._snapshot = _Snapshot()
        self._attempts = 0
        self._last_attempt: float | None = None
        self._last_error: KeySetFetchError | None = None

    def get_key(self, kid: str) -> Any:
        attempts_seen = self._attempts
        key = self._snapshot.keys.get(kid)
        if key is not None:
            return key

        with self._lock:
            if self._attempts == attempts_seen and not self._cooling_down():
                log_debug(
                    f"kid '{kid}' not in JWKS fetched at {self._snapshot.fetched_at}, re-fetching"
                )
                self._refresh_locked()
            elif self._last_error is not None:
                raise KeySetFetchError(f"JWKS unavailable: {self._last_error}")
            key = self._snapshot.keys.get(kid)

        if key is None:
            raise KeyNotFoundError(f"no matching key found for kid '{kid}'")
        return key

    def refresh(self) -> None:
        with self._lock:
            self._refresh_locked()

    def _cooling_down(self) -> bool:
        if self._last_attempt is None:
            return False
        return time.monotonic() - self._last_attempt < self.min_refresh_interval

    def _refresh_locked(self) -> None:
        self._last_error = None
        try:
            self._snapshot = self._fetch()
        except KeySetFetchError as exc:
            self._last_error = exc
            raise
        finally:
            self._attempts += 1
            self._last_attempt = time.monotonic()
        log_info(
            f"JWKS refreshed from {self.jwks_uri}: "
            f"{len(self._snapshot.keys)} key(s) {sorted(self._snapshot.keys)}"
        )

    def _fetch(self) -> _Snapshot:
        try:
            resp = self._http.get(self.jwks_uri, timeout=self.timeout)
            resp.raise_for_status()
        except requests.RequestException as exc:
            raise KeySetFetchError(f"failed to fetch JWKS: {exc}") from exc
        try:
            jwks = resp.json()
        except ValueError as exc:
            raise KeySetFetchError(f"JWKS is not valid JSON: {exc}") from exc

        return _Snapshot(
            keys=MappingProxyType(parse_jwks(jwks)),
            fetched_at=time.time(),
        )
