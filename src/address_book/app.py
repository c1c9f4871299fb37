"""Flask application exposing the address book API."""

from __future__ import annotations

from flask import Flask, jsonify, request

from .auth_gate import AuthGate
from .logging import log_error
from .resolver import ContactResolver, LookupNotFound, UpstreamError, ValidationError
from .store import PersistenceError


def create_app(gate: AuthGate, resolver: ContactResolver) -> Flask:
    app = Flask("address_book")

    @app.errorhandler(ValidationError)
    def _bad_request(exc):
        return jsonify({"error": str(exc)}), 400

    @app.errorhandler(LookupNotFound)
    def _not_found(exc):
        return jsonify({"error": "User with that email not found."}), 404

    @app.errorhandler(UpstreamError)
    @app.errorhandler(PersistenceError)
    def _internal_error(exc):
        log_error(f"{request.method} {request.path} failed: {exc}")
        return jsonify({"error": "An internal error occurred."}), 500

    @app.get("/api/address-book")
    @gate.protect
    def get_address_book(identity, credential):
        contacts = resolver.list_contacts(identity)
        return jsonify([c.to_dict() for c in contacts])

    @app.post("/api/address-book/contacts")
    @app.post("/api/address-book")
    @gate.protect
    def add_contact(identity, credential):
        body = request.get_json(silent=True)
        if not isinstance(body, dict):
            raise ValidationError("Request body must be a JSON object.")
        contact = resolver.resolve_and_store(identity, body.get("email"), credential)
        return jsonify(contact.to_dict()), 201

    return app
