"""Address book service: verified callers extend a contact list resolved by an identity provider."""
