"""Resolve an email address through the identity provider and store the contact."""

from __future__ import annotations

from urllib.parse import quote

import requests

from .credentials import Credential
from .logging import log_info
from .models import Contact, Identity
from .store import ContactStore

LOOKUP_PATH = "/api/users/by-email/"
LOOKUP_TIMEOUT = 10


class ValidationError(Exception):
    pass


class LookupNotFound(Exception):
    pass


class UpstreamError(Exception):
    pass


class ContactResolver:
    def __init__(
        self,
        store: ContactStore,
        identity_service_url: str,
        session: requests.Session | None = None,
        timeout: float = LOOKUP_TIMEOUT,
    ):
        self.store = store
        self.identity_service_url = identity_service_url.rstrip("/")
        self.timeout = timeout
        self._http = session or requests.Session()

    def list_contacts(self, owner: Identity) -> list[Contact]:
        return self.store.list_contacts(owner.id)

    def lookup(self, email: str, credential: Credential) -> Contact:
        """Fetch the provider's record for ``email``.

        404 raises LookupNotFound; every other failure, including a body
        that is not contact-shaped, raises UpstreamError. Nothing is retried.
        """
        url = self.identity_service_url + LOOKUP_PATH + quote(email, safe="@")
        try:
            resp = self._http.get(url, headers=credential.headers(), timeout=self.timeout)
        except requests.RequestException as exc:
            raise UpstreamError(f"identity service lookup failed: {exc}") from exc

        if resp.status_code == 404:
            raise LookupNotFound(f"no user with email {email}")
        if not resp.ok:
            raise UpstreamError(f"identity service returned HTTP {resp.status_code}")

        try:
            return Contact.from_dict(resp.json())
        except ValueError as exc:
            raise UpstreamError(f"identity service returned an invalid contact: {exc}") from exc

    def resolve_and_store(self, owner: Identity, email: object, credential: Credential) -> Contact:
        """Look up ``email`` and save the result into ``owner``'s address book.

        Raises ValidationError, LookupNotFound, UpstreamError or
        PersistenceError.
        """
        if not isinstance(email, str) or not email.strip():
            raise ValidationError("Email is required.")
        email = email.strip()

        contact = self.lookup(email, credential)

        self.store.put_contact(owner.id, contact)
        log_info(f"user {owner.id} added contact {contact.id}")
        return contact
