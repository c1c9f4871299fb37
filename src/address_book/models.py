"""Identity and contact records."""

from __future__ import annotations

from dataclasses import asdict, dataclass
from typing import Any

_FIELDS = ("id", "email", "alias")
_NON_EMPTY = ("id", "email")
_RESERVED_IDS = (".", "..")


@dataclass(frozen=True)
class Identity:
    """A caller whose token passed full verification."""
    id: str
    email: str
    alias: str


@dataclass(frozen=True)
class Contact:
    id: str
    email: str
    alias: str

    @classmethod
    def from_dict(cls, data: Any) -> Contact:
        """Build a Contact from a JSON object, raising ValueError if it is not contact-shaped."""
        if not isinstance(data, dict):
            raise ValueError("contact must be a JSON object")
        for name in _FIELDS:
            value = data.get(name)
            if not isinstance(value, str):
                raise ValueError(f"contact field '{name}' missing or not a string")
            if name in _NON_EMPTY and not value:
                raise ValueError(f"contact field '{name}' is empty")
        contact_id = data["id"]
        if "/" in contact_id or contact_id in _RESERVED_IDS or (
            contact_id.startswith("__") and contact_id.endswith("__")
        ):
            raise ValueError(f"contact id is not a valid document id: {contact_id!r}")
        return cls(id=data["id"], email=data["email"], alias=data["alias"])

    def to_dict(self) -> dict[str, str]:
        return asdict(self)
