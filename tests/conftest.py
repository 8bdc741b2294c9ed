"""Shared fixtures: a fake Pwned Passwords range API and in-memory vaults."""

import hashlib

import httpx
import pytest

from pwnscan.exceptions import VaultError
from pwnscan.hibp.client import BreachChecker
from pwnscan.vault.base import (
    ItemContent,
    ItemType,
    PasswordRecord,
    Vault,
    VaultItem,
)


class FakeRangeAPI:
    """Serves canned range responses and records every request."""

    def __init__(self):
        self.ranges: dict[str, str] = {}
        self.requests: list[httpx.Request] = []
        self.status_code = 200
        self.error: Exception | None = None

    def add(self, password: str, count: int) -> str:
        """List a password in the corpus. Returns its SHA-1 hex."""
        sha = hashlib.sha1(password.encode("utf-8")).hexdigest().upper()
        self.ranges[sha[:5]] = self.ranges.get(sha[:5], "") + f"{sha[5:]}:{count}\r\n"
        return sha

    def handler(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        if self.error is not None:
            raise self.error
        prefix = request.url.path.rsplit("/", 1)[-1]
        return httpx.Response(self.status_code, text=self.ranges.get(prefix, ""))

    def client(self) -> httpx.Client:
        return httpx.Client(transport=httpx.MockTransport(self.handler))

    @property
    def prefixes_requested(self) -> list[str]:
        return [r.url.path.rsplit("/", 1)[-1] for r in self.requests]


class FakeItem(VaultItem):
    """Vault item with canned content."""

    def __init__(
        self,
        title: str,
        type_name: str = ItemType.LOGIN.value,
        trashed: bool = False,
        record: PasswordRecord | None = None,
        content: ItemContent | None = None,
        error: Exception | None = None,
    ):
        self.id = title.lower()
        self.title = title
        self.type_name = type_name
        self.trashed = trashed
        self._record = record or PasswordRecord()
        self._content = content or ItemContent()
        self._error = error

    def password_record(self) -> PasswordRecord:
        if self._error:
            raise self._error
        return self._record

    def content(self) -> ItemContent:
        if self._error:
            raise self._error
        return self._content


class FakeVault(Vault):
    """In-memory vault."""

    def __init__(self, items: list[VaultItem], list_error: Exception | None = None):
        self.items = items
        self.list_error = list_error

    @property
    def path(self) -> str:
        return "memory://vault"

    def unlock(self, master_password: str) -> None:
        if master_password != "master":
            raise VaultError("incorrect master password")

    def list_items(self) -> list[VaultItem]:
        if self.list_error:
            raise self.list_error
        return self.items


@pytest.fixture(autouse=True)
def clean_env(monkeypatch):
    """Keep PWNSCAN_* variables from the calling shell out of tests."""
    for name in (
        "PWNSCAN_API_URL",
        "PWNSCAN_TIMEOUT",
        "PWNSCAN_USER_AGENT",
        "PWNSCAN_ADD_PADDING",
        "PWNSCAN_MASTER_PASSWORD",
    ):
        monkeypatch.delenv(name, raising=False)


@pytest.fixture
def range_api():
    return FakeRangeAPI()


@pytest.fixture
def checker(range_api):
    with range_api.client() as client:
        yield BreachChecker(http_client=client)


@pytest.fixture
def make_item():
    return FakeItem


@pytest.fixture
def make_vault():
    return FakeVault


@pytest.fixture
def patch_http(monkeypatch, range_api):
    """Route every httpx.Client the code creates to the fake range API."""
    real_client = httpx.Client

    def client_factory(*args, **kwargs):
        return real_client(transport=httpx.MockTransport(range_api.handler))

    monkeypatch.setattr(httpx, "Client", client_factory)
    return range_api
