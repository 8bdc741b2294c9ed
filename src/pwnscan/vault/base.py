"""
Abstract base classes and models for password vaults.

Copyright (c) 2025 DNS Science.io, an After Dark Systems, LLC company.
All rights reserved.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from enum import Enum
from typing import Any


class ItemType(str, Enum):
    """Type of vault item.

    PASSWORD items store a structured password record; every other type
    stores a list of form fields.
    """
    PASSWORD = "password"
    LOGIN = "login"
    WIRELESS = "wireless"
    SERVER = "server"
    NOTE = "note"
    GENERIC = "generic"


class FieldType(str, Enum):
    """Type of a form field."""
    TEXT = "text"
    EMAIL = "email"
    PASSWORD = "password"
    URL = "url"


@dataclass
class UrlPassword:
    """A password scoped to one URL."""
    url: str = ""
    password: str = ""


@dataclass
class PasswordRecord:
    """Decrypted content of a PASSWORD item."""
    password: str = ""
    urls: list[UrlPassword] = field(default_factory=list)

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "PasswordRecord":
        """Create a record from decrypted item content."""
        return cls(
            password=data.get("password") or "",
            urls=[
                UrlPassword(url=u.get("url") or "", password=u.get("password") or "")
                for u in data.get("urls") or []
            ],
        )

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary."""
        return {
            "password": self.password,
            "urls": [{"url": u.url, "password": u.password} for u in self.urls],
        }


@dataclass
class FormField:
    """A single field of a form-style item."""
    name: str = ""
    type: str = FieldType.TEXT.value
    value: str = ""


@dataclass
class ItemContent:
    """Decrypted content of a form-style item."""
    fields: list[FormField] = field(default_factory=list)

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "ItemContent":
        """Create content from decrypted item content."""
        return cls(
            fields=[
                FormField(
                    name=f.get("name") or "",
                    type=f.get("type") or FieldType.TEXT.value,
                    value=f.get("value") or "",
                )
                for f in data.get("fields") or []
            ],
        )

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary."""
        return {
            "fields": [{"name": f.name, "type": f.type, "value": f.value} for f in self.fields],
        }


class VaultItem(ABC):
    """An entry in a vault.

    Listing metadata is readable without decryption; content is decrypted
    on demand and raises VaultError if that fails.
    """

    id: str
    title: str
    type_name: str
    trashed: bool

    @abstractmethod
    def password_record(self) -> PasswordRecord:
        """Decrypt the item as a structured password record."""
        pass

    @abstractmethod
    def content(self) -> ItemContent:
        """Decrypt the item as a list of form fields."""
        pass


class Vault(ABC):
    """Abstract base class for password vaults."""

    @property
    @abstractmethod
    def path(self) -> str:
        """Location of the vault."""
        pass

    @abstractmethod
    def unlock(self, master_password: str) -> None:
        """Unlock the vault. Raises VaultError on a wrong password."""
        pass

    @abstractmethod
    def list_items(self) -> list[VaultItem]:
        """List every item in the vault, trashed ones included."""
        pass
