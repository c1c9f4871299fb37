"""Shared test fixtures: RSA keys, JWT factory, in-memory Firestore."""

from __future__ import annotations

import time
from dataclasses import dataclass, field

import jwt
import pytest
from cryptography.hazmat.primitives.asymmetric import ec, rsa

PROVIDER = "https://identity.example.com"
DISCOVERY_URL = "https://identity.example.com/.well-known/oauth-authorization-server"
JWKS_URI = "https://identity.example.com/.well-known/jwks.json"
LOOKUP_URL = "https://identity.example.com/api/users/by-email/"

# ---------------------------------------------------------------------------
# RSA key fixtures
# ---------------------------------------------------------------------------

@pytest.fixture(scope="session")
def rsa_private_key():
    return rsa.generate_private_key(public_exponent=65537, key_size=2048)


@pytest.fixture(scope="session")
def rsa_public_key(rsa_private_key):
    return rsa_private_key.public_key()


@pytest.fixture(scope="session")
def other_private_key():
    """A key the provider never publishes."""
    return rsa.generate_private_key(public_exponent=65537, key_size=2048)


@pytest.fixture(scope="session")
def jwk_dict(rsa_public_key):
    """Return a JWK dict for the test RSA key with kid='test-key-1'."""
    from jwt.algorithms import RSAAlgorithm
    jwk = RSAAlgorithm.to_jwk(rsa_public_key, as_dict=True)
    jwk["kid"] = "test-key-1"
    jwk["use"] = "sig"
    jwk["alg"] = "RS256"
    return jwk


@pytest.fixture(scope="session")
def jwks_response(jwk_dict):
    """Return a JWKS dict with a single key."""
    return {"keys": [jwk_dict]}


@pytest.fixture(scope="session")
def ec_jwk_dict():
    """An ES256 JWK published next to the RSA key, with kid='ec-key'."""
    from jwt.algorithms import ECAlgorithm
    public_key = ec.generate_private_key(ec.SECP256R1()).public_key()
    jwk = ECAlgorithm.to_jwk(public_key, as_dict=True)
    jwk["kid"] = "ec-key"
    jwk["use"] = "sig"
    jwk["alg"] = "ES256"
    return jwk


@pytest.fixture(scope="session")
def mixed_jwks_response(jwk_dict, ec_jwk_dict):
    return {"keys": [jwk_dict, ec_jwk_dict]}


@pytest.fixture
def metadata_response():
    return {
        "issuer": PROVIDER,
        "jwks_uri": JWKS_URI,
        "id_token_signing_alg_values_supported": ["RS256"],
    }


# ---------------------------------------------------------------------------
# JWT factory
# ---------------------------------------------------------------------------

_UNSET = object()


@pytest.fixture(scope="session")
def make_jwt(rsa_private_key):
    """Factory to create signed JWTs with customizable claims.

    Pass a claim as None to leave it out of the payload.
    """
    def _make(
        sub: str | None = "user-1",
        email: str | None = "owner@example.com",
        alias: str | None = "Owner",
        exp: float | None | object = _UNSET,
        kid: str = "test-key-1",
        algorithm: str = "RS256",
        key=None,
        extra_claims: dict | None = None,
    ) -> str:
        now = time.time()
        payload = {
            "iat": now,
            "exp": now + 3600 if exp is _UNSET else exp,
            "sub": sub,
            "email": email,
            "alias": alias,
        }
        payload = {k: v for k, v in payload.items() if v is not None}
        if extra_claims:
            payload.update(extra_claims)
        return jwt.encode(
            payload,
            key if key is not None else rsa_private_key,
            algorithm=algorithm,
            headers={"kid": kid},
        )
    return _make


# ---------------------------------------------------------------------------
# In-memory Firestore
# ---------------------------------------------------------------------------

@dataclass
class FakeSnapshot:
    id: str
    _data: dict

    def to_dict(self):
        return dict(self._data)


@dataclass
class FakeDocument:
    db: FakeFirestore
    path: tuple

    @property
    def id(self):
        return self.path[-1]

    def collection(self, name):
        return FakeCollection(self.db, self.path + (name,))

    def set(self, data):
        self.db.check()
        self.db.writes.append((self.path, dict(data)))
        self.db.docs[self.path] = dict(data)


@dataclass
class FakeCollection:
    db: FakeFirestore
    path: tuple

    def document(self, doc_id):
        return FakeDocument(self.db, self.path + (doc_id,))

    def stream(self):
        self.db.check()
        depth = len(self.path) + 1
        for path, data in list(self.db.docs.items()):
            if len(path) == depth and path[:-1] == self.path:
                yield FakeSnapshot(path[-1], data)


@dataclass
class FakeFirestore:
    """Minimal stand-in for google.cloud.firestore.Client."""
    docs: dict = field(default_factory=dict)
    writes: list = field(default_factory=list)
    error: Exception | None = None

    def check(self):
        if self.error is not None:
            raise self.error

    def collection(self, name):
        return FakeCollection(self, (name,))

    def collections(self):
        self.check()
        return [FakeCollection(self, (name,)) for name in sorted({p[0] for p in self.docs})]


@pytest.fixture
def fake_db():
    return FakeFirestore()
