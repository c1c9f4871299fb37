"""Bearer token verification against the provider's JWKS."""

from __future__ import annotations

import jwt
from cryptography.hazmat.primitives.asymmetric.ec import EllipticCurvePublicKey
from cryptography.hazmat.primitives.asymmetric.rsa import RSAPublicKey
from jwt.exceptions import InvalidKeyError

from .jwks_cache import KeySetCache
from .models import Identity

REQUIRED_STRING_CLAIMS = ("sub", "email", "alias")
NON_EMPTY_CLAIMS = ("sub", "email")

# Algorithm family prefix -> public key type it verifies with.
KEY_TYPES = {"RS": RSAPublicKey, "PS": RSAPublicKey, "ES": EllipticCurvePublicKey}


class TokenValidationError(Exception):
    pass


class MalformedToken(TokenValidationError):
    pass


class SignatureInvalid(TokenValidationError):
    pass


class Expired(TokenValidationError):
    pass


class ClaimsInvalid(TokenValidationError):
    pass


class TokenVerifier:
    """Turns a raw bearer token into an Identity, or raises.

    This is the only place an Identity is built from token claims.
    """

    def __init__(
        self,
        key_cache: KeySetCache,
        algorithm: str = "RS256",
        audience: str | None = None,
        issuer: str | None = None,
        leeway: int = 0,
    ):
        self.key_cache = key_cache
        self.algorithm = algorithm
        self.audience = audience
        self.issuer = issuer
        self.leeway = leeway

    def verify(self, token: str) -> Identity:
        """Validate ``token`` and return the caller's Identity.

        Steps:
        1. Decode the JWT header to get the kid and alg
        2. Resolve the kid through the key cache (refetches on miss) and
           check the key type fits the algorithm
        3. Verify signature, expiry/not-before and optional aud/iss
        4. Check that sub, email and alias are present strings

        Raises a TokenValidationError subclass, or KeyNotFoundError /
        KeySetFetchError from the key cache.
        """
        try:
            header = jwt.get_unverified_header(token)
        except jwt.InvalidTokenError as exc:
            raise MalformedToken(f"invalid token header: {exc}") from exc

        kid = header.get("kid")
        if not isinstance(kid, str) or not kid:
            raise MalformedToken("token header missing 'kid'")

        token_alg = header.get("alg", "")
        if token_alg != self.algorithm:
            raise SignatureInvalid(
                f"token algorithm mismatch: token={token_alg}, required={self.algorithm}"
            )

        public_key = self.key_cache.get_key(kid)
        key_type = KEY_TYPES.get(self.algorithm[:2])
        if key_type is None or not isinstance(public_key, key_type):
            raise SignatureInvalid(
                f"key '{kid}' is a {type(public_key).__name__}, unusable for {self.algorithm}"
            )

        try:
            claims = jwt.decode(
                token,
                public_key,
                algorithms=[self.algorithm],
                audience=self.audience,
                issuer=self.issuer,
                leeway=self.leeway,
                options={
                    "require": ["exp"],
                    "verify_exp": True,
                    "verify_nbf": True,
                    "verify_aud": self.audience is not None,
                    "verify_iss": self.issuer is not None,
                },
            )
        except jwt.ExpiredSignatureError as exc:
            raise Expired("token has expired") from exc
        except jwt.ImmatureSignatureError as exc:
            raise Expired("token is not yet valid") from exc
        except (jwt.InvalidSignatureError, jwt.InvalidAlgorithmError, InvalidKeyError) as exc:
            raise SignatureInvalid(f"signature verification failed: {exc}") from exc
        except jwt.DecodeError as exc:
            raise MalformedToken(f"token could not be decoded: {exc}") from exc
        except jwt.InvalidTokenError as exc:
            raise ClaimsInvalid(f"token claims rejected: {exc}") from exc

        for name in REQUIRED_STRING_CLAIMS:
            value = claims.get(name)
            if not isinstance(value, str):
                raise ClaimsInvalid(f"token missing or has an invalid '{name}' claim")
            if name in NON_EMPTY_CLAIMS and not value:
                raise ClaimsInvalid(f"token has an empty '{name}' claim")

        return Identity(id=claims["sub"], email=claims["email"], alias=claims["alias"])
