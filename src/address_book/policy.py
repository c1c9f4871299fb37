"""Refuse to start when the provider stops advertising our signing algorithm."""

from __future__ import annotations

from .discovery import ProviderMetadata
from .logging import log_info


class PolicyError(Exception):
    pass


def enforce(metadata: ProviderMetadata, required_algorithm: str) -> None:
    if required_algorithm not in metadata.supported_algorithms:
        advertised = ", ".join(sorted(metadata.supported_algorithms))
        raise PolicyError(
            f"identity provider no longer supports the required JWT algorithm "
            f"'{required_algorithm}' (supported: [{advertised}])"
        )
    log_info(f"JWT algorithm policy satisfied: {required_algorithm}")
