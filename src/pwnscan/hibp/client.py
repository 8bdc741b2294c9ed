"""
Pwned Passwords range API client.

Implements the k-anonymity password check against api.pwnedpasswords.com:
- Only the first 5 hex characters of a password's SHA-1 are ever sent
- Every suffix returned for a prefix is cached, so later passwords sharing
  the prefix are answered without another request
- Transport and parse failures are raised, never swallowed

Copyright (c) 2025 DNS Science.io, an After Dark Systems, LLC company.
All rights reserved.
"""

import hashlib
import logging
import re
import string

import httpx

from pwnscan.config import DEFAULT_API_URL, DEFAULT_TIMEOUT, ScanConfig
from pwnscan.exceptions import ProtocolError, TransportError

logger = logging.getLogger(__name__)

PREFIX_LENGTH = 5
DIGEST_SIZE = hashlib.sha1().digest_size
MAX_COUNT = 2**63 - 1

_ALPHANUMERIC = frozenset(string.ascii_letters + string.digits)
_DECIMAL = re.compile(r"[0-9]+")


def scrub(value: str) -> str:
    """Drop every character that is not an ASCII letter or digit.

    Some range responses start with a UTF-8 byte order mark, which would
    otherwise end up in front of the first suffix.
    """
    return "".join(c for c in value if c in _ALPHANUMERIC)


def password_digest(plaintext: str) -> bytes:
    """SHA-1 of a password's UTF-8 bytes.

    Undecodable bytes smuggled in as lone surrogates (as os.environ and
    sys.argv produce them) are hashed as the original raw bytes.
    """
    return hashlib.sha1(plaintext.encode("utf-8", "surrogateescape")).digest()


def parse_range_response(prefix: str, body: str) -> dict[bytes, int]:
    """Parse a range response body into a digest -> count mapping.

    Args:
        prefix: Upper-case 5 character hash prefix the body was fetched for
        body: Response text, one ``SUFFIX:COUNT`` entry per line

    Returns:
        Mapping of full 20 byte SHA-1 digests to occurrence counts

    Raises:
        ProtocolError: If any line is malformed. Nothing is returned for
            the prefix in that case.
    """
    entries: dict[bytes, int] = {}

    for line_number, line in enumerate(body.splitlines(), start=1):
        if not line.strip():
            continue

        parts = line.split(":")
        if len(parts) != 2:
            raise ProtocolError(prefix, f"expected 2 fields, got {len(parts)}", line_number)

        suffix, count_str = parts

        try:
            digest = bytes.fromhex(prefix + scrub(suffix))
        except ValueError:
            raise ProtocolError(prefix, f"suffix is not hexadecimal: {suffix!r}", line_number) from None

        if len(digest) != DIGEST_SIZE:
            raise ProtocolError(
                prefix, f"digest is {len(digest)} bytes, expected {DIGEST_SIZE}", line_number
            )

        count_str = count_str.strip()
        if not _DECIMAL.fullmatch(count_str):
            raise ProtocolError(prefix, f"count is not a decimal integer: {count_str!r}", line_number)

        count = int(count_str)
        if count > MAX_COUNT:
            raise ProtocolError(prefix, f"count out of range: {count_str}", line_number)

        entries[digest] = count

    return entries


class BreachChecker:
    """Looks up how often a password appears in the Pwned Passwords corpus.

    A checker caches every prefix it fetches for its whole lifetime, so it
    should be shared across all passwords of one scan. It is not safe for
    concurrent use.
    """

    def __init__(
        self,
        http_client: httpx.Client | None = None,
        base_url: str = DEFAULT_API_URL,
        timeout: float = DEFAULT_TIMEOUT,
        user_agent: str | None = None,
        add_padding: bool = False,
    ):
        """Initialize the checker.

        Args:
            http_client: Client used for range requests (created on first use)
            base_url: Pwned Passwords API base URL
            timeout: Seconds to wait for each range request
            user_agent: User-Agent header for requests
            add_padding: Ask the service to pad responses with zero-count entries
        """
        self.http_client = http_client
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self.user_agent = user_agent or ScanConfig().user_agent
        self.add_padding = add_padding

        self._owns_client = False
        self._prefix_seen: set[str] | None = None
        self._count_by_hash: dict[bytes, int] | None = None
        self._requests_made = 0

    @classmethod
    def from_config(
        cls,
        config: ScanConfig,
        http_client: httpx.Client | None = None,
    ) -> "BreachChecker":
        """Create a checker from a ScanConfig."""
        return cls(
            http_client=http_client,
            base_url=config.api_url,
            timeout=config.timeout,
            user_agent=config.user_agent,
            add_padding=config.add_padding,
        )

    def _ensure_client(self) -> httpx.Client:
        """Ensure HTTP client exists."""
        if self.http_client is None:
            self.http_client = httpx.Client()
            self._owns_client = True
        return self.http_client

    def close(self) -> None:
        """Close the HTTP client if this checker created it."""
        if self._owns_client and self.http_client is not None:
            self.http_client.close()
            self.http_client = None
            self._owns_client = False

    def __enter__(self) -> "BreachChecker":
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        self.close()

    def check_occurrences(self, plaintext: str) -> int:
        """Count how often a password appears in the breach corpus.

        Args:
            plaintext: Password to check (never sent, stored or logged)

        Returns:
            Occurrence count, 0 if the password is not in the corpus

        Raises:
            TransportError: If the range request fails
            ProtocolError: If the range response is malformed
        """
        digest = password_digest(plaintext)
        return self._lookup(digest)

    def check_hash(self, sha1_hash: str) -> int:
        """Count occurrences for a precomputed SHA-1 hash.

        Args:
            sha1_hash: 40 character hexadecimal SHA-1 hash

        Returns:
            Occurrence count, 0 if the hash is not in the corpus
        """
        try:
            digest = bytes.fromhex(sha1_hash.strip())
        except ValueError:
            raise ValueError(f"Not a hexadecimal SHA-1 hash: {sha1_hash!r}") from None

        if len(digest) != DIGEST_SIZE:
            raise ValueError(f"SHA-1 hash must be {DIGEST_SIZE * 2} hex characters")

        return self._lookup(digest)

    def _lookup(self, digest: bytes) -> int:
        self._ensure_cached(digest)
        return self._count_by_hash.get(digest, 0)

    def _ensure_cached(self, digest: bytes) -> None:
        """Populate the cache for the prefix of a digest.

        Due to the nature of the range API this caches the counts of every
        other hash sharing the prefix too, in case those are checked later.
        """
        if self._prefix_seen is None:
            self._prefix_seen = set()
        if self._count_by_hash is None:
            self._count_by_hash = {}

        prefix = digest.hex().upper()[:PREFIX_LENGTH]

        if prefix in self._prefix_seen:
            logger.debug(f"Range {prefix} already cached")
            return

        body = self._fetch_range(prefix)
        entries = parse_range_response(prefix, body)

        # Only a fully parsed response marks the prefix as seen
        self._count_by_hash.update(entries)
        self._prefix_seen.add(prefix)

        logger.debug(f"Cached {len(entries)} hashes for range {prefix}")

    def _fetch_range(self, prefix: str) -> str:
        """Fetch the raw range response for a prefix."""
        client = self._ensure_client()
        url = f"{self.base_url}/range/{prefix}"

        headers = {"User-Agent": self.user_agent}
        if self.add_padding:
            headers["Add-Padding"] = "true"

        self._requests_made += 1

        try:
            response = client.get(url, headers=headers, timeout=self.timeout)
        except httpx.TimeoutException as e:
            raise TransportError(url, "request timed out") from e
        except httpx.HTTPError as e:
            raise TransportError(url, str(e) or type(e).__name__) from e

        if response.status_code != 200:
            raise TransportError(url, "unexpected response status", status=response.status_code)

        return response.text

    def is_cached(self, plaintext: str) -> bool:
        """Check whether a password's prefix has already been fetched."""
        if not self._prefix_seen:
            return False
        prefix = password_digest(plaintext).hex().upper()[:PREFIX_LENGTH]
        return prefix in self._prefix_seen

    def stats(self) -> dict[str, int]:
        """Get cache and request counters."""
        return {
            "prefixes_cached": len(self._prefix_seen or ()),
            "hashes_cached": len(self._count_by_hash or {}),
            "requests_made": self._requests_made,
        }
