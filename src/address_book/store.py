"""Firestore persistence for address books."""

from __future__ import annotations

from typing import Any

from google.api_core.exceptions import GoogleAPIError
from google.auth.exceptions import GoogleAuthError
from google.cloud import firestore

from .logging import log_debug, log_info
from .models import Contact

OWNERS_COLLECTION = "authorized_users"
CONTACTS_COLLECTION = "address_book"

_STORE_ERRORS = (GoogleAPIError, GoogleAuthError)


class PersistenceError(Exception):
    pass


class ContactStore:
    """Contacts live at ``authorized_users/{ownerId}/address_book/{contactId}``.

    Each document holds ``alias``, ``email`` and ``userId``; the document id
    is the contact's own id, so re-adding a contact overwrites it.
    """

    def __init__(
        self,
        client: Any,
        owners_collection: str = OWNERS_COLLECTION,
        contacts_collection: str = CONTACTS_COLLECTION,
    ):
        self.client = client
        self.owners_collection = owners_collection
        self.contacts_collection = contacts_collection

    @classmethod
    def connect(cls, project: str, database: str = "(default)") -> ContactStore:
        try:
            client = firestore.Client(project=project, database=database)
        except _STORE_ERRORS as exc:
            raise PersistenceError(f"failed to create Firestore client: {exc}") from exc
        return cls(client)

    def _contacts(self, owner_id: str):
        return (
            self.client.collection(self.owners_collection)
            .document(owner_id)
            .collection(self.contacts_collection)
        )

    def check_connection(self) -> None:
        try:
            list(self.client.collections())
        except _STORE_ERRORS as exc:
            raise PersistenceError(f"Firestore connection check failed: {exc}") from exc
        log_info("Firestore connection verified")

    def list_contacts(self, owner_id: str) -> list[Contact]:
        log_debug(f"reading address book for user {owner_id}")
        try:
            docs = list(self._contacts(owner_id).stream())
        except _STORE_ERRORS as exc:
            raise PersistenceError(f"failed to read address book: {exc}") from exc

        contacts = []
        for doc in docs:
            data = doc.to_dict() or {}
            contacts.append(Contact(
                id=data.get("userId", doc.id),
                email=data.get("email", ""),
                alias=data.get("alias", ""),
            ))
        return contacts

    def put_contact(self, owner_id: str, contact: Contact) -> None:
        try:
            self._contacts(owner_id).document(contact.id).set({
                "alias": contact.alias,
                "email": contact.email,
                "userId": contact.id,
            })
        except _STORE_ERRORS as exc:
            raise PersistenceError(f"failed to write contact {contact.id}: {exc}") from exc
        log_debug(f"stored contact {contact.id} for user {owner_id}")
