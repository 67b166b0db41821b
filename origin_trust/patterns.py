from __future__ import annotations

import re
from typing import ClassVar, NamedTuple
from urllib.parse import urlsplit

DEFAULT_PORTS = {"http": 80, "https": 443, "ws": 80, "wss": 443}
LOOPBACK_HOSTS = frozenset({"localhost", "127.0.0.1", "::1"})

SCHEME_RE = re.compile(r"[a-z][a-z0-9+.\-]*")
HOSTNAME_RE = re.compile(r"[a-z0-9_](?:[a-z0-9_\-]*[a-z0-9_])?(?:\.[a-z0-9_](?:[a-z0-9_\-]*[a-z0-9_])?)*")
IPV6_RE = re.compile(r"[0-9a-f:.]+")


class InvalidOriginPattern(ValueError):
    pass


class CandidateOrigin(NamedTuple):
    scheme: str
    host: str
    port: int | None

    @property
    def base_host(self) -> str:
        return strip_www(self.host)

    @property
    def effective_port(self) -> int | None:
        if self.port is not None:
            return self.port
        return DEFAULT_PORTS.get(self.scheme)


def strip_www(host: str) -> str:
    if host.startswith("www.") and len(host) > 4:
        return host[4:]
    return host


def _valid_host(host: str) -> bool:
    if ":" in host:
        return IPV6_RE.fullmatch(host) is not None
    return HOSTNAME_RE.fullmatch(host) is not None


def _split_origin(value: str) -> tuple[str, str, int | None]:
    """
    Split a serialized origin into its scheme, host and port.

    Raises `ValueError` for anything that isn't `scheme://host[:port]` with
    an optional trailing slash.
    """
    if not value.isascii() or any(c.isspace() for c in value):
        raise ValueError("Origin must be ASCII without whitespace")
    parts = urlsplit(value)
    if not SCHEME_RE.fullmatch(parts.scheme) or not value.lower().startswith(parts.scheme + "://"):
        raise ValueError("Origin must have a scheme")
    if parts.path.strip("/") or parts.query or parts.fragment or "?" in value or "#" in value:
        raise ValueError("Origin must not contain a path, query or fragment")
    if parts.username is not None or "@" in parts.netloc:
        raise ValueError("Origin must not contain credentials")
    host = (parts.hostname or "").rstrip(".")
    if not host or not _valid_host(host):
        raise ValueError("Origin has no valid host")
    # Accessing .port raises ValueError for non-numeric or out of range ports.
    port = parts.port
    if parts.netloc.endswith(":"):
        raise ValueError("Origin has an empty port")
    return parts.scheme, host, port


def parse_origin(value: str | None) -> CandidateOrigin | None:
    """
    Parse an `Origin` header value, returning `None` when it is absent,
    opaque ("null") or malformed.
    """
    if not value or value == "null":
        return None
    try:
        scheme, host, port = _split_origin(value.strip())
    except ValueError:
        return None
    return CandidateOrigin(scheme, host, port)


class OriginPattern:
    kind: ClassVar[str] = ""

    def __init__(self, raw: str, host: str = "", scheme: str | None = None, port: int | None = None) -> None:
        self.raw = raw
        self.host = host
        self.scheme = scheme
        self.port = port

    def matches(self, candidate: CandidateOrigin) -> bool:
        if self.scheme is not None and candidate.scheme != self.scheme:
            return False
        if self.port is not None and candidate.effective_port != self.port:
            return False
        return self.matches_host(candidate)

    def matches_host(self, candidate: CandidateOrigin) -> bool:
        raise NotImplementedError()  # pragma: no cover

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, OriginPattern):
            return NotImplemented
        return (self.kind, self.host, self.scheme, self.port) == (other.kind, other.host, other.scheme, other.port)

    def __hash__(self) -> int:
        return hash((self.kind, self.host, self.scheme, self.port))

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}({self.raw!r})"


class AnyOrigin(OriginPattern):
    kind = "any"

    def matches_host(self, candidate: CandidateOrigin) -> bool:
        return True


def _matches_named_host(candidate: CandidateOrigin, host: str) -> bool:
    # `localhost` stands for every loopback address.
    if host == "localhost":
        return candidate.host in LOOPBACK_HOSTS
    return candidate.base_host == host


class ExactOrigin(OriginPattern):
    kind = "exact"

    def matches_host(self, candidate: CandidateOrigin) -> bool:
        return _matches_named_host(candidate, self.host)


class BareHost(OriginPattern):
    kind = "bare"

    def matches_host(self, candidate: CandidateOrigin) -> bool:
        return _matches_named_host(candidate, self.host)


class WildcardSubdomain(OriginPattern):
    kind = "wildcard"

    def matches_host(self, candidate: CandidateOrigin) -> bool:
        # The bare root is admitted along with every subdomain.
        base_host = candidate.base_host
        return base_host == self.host or base_host.endswith("." + self.host)


def parse_pattern(raw: str) -> OriginPattern:
    """
    Parse a trusted-origin pattern into one of the pattern variants.

    Host names are lower-cased and stored with any leading `www.` removed,
    so `example.com` and `www.example.com` are interchangeable on both sides.
    Ports are only compared when the pattern names one.
    """
    value = raw.strip().lower() if isinstance(raw, str) else ""
    if not value:
        raise InvalidOriginPattern("Trusted origin pattern must not be empty")
    if value == "*":
        return AnyOrigin(raw)

    scheme: str | None = None
    authority = value
    if "://" in value:
        scheme, authority = value.split("://", 1)
        if authority.rstrip("/") == "*":
            if not SCHEME_RE.fullmatch(scheme):
                raise InvalidOriginPattern(f"Invalid trusted origin pattern {raw!r}: invalid scheme")
            return AnyOrigin(raw, scheme=scheme)

    wildcard = authority.startswith("*.")
    if wildcard:
        authority = authority[2:]
    if "*" in authority:
        raise InvalidOriginPattern(f"Invalid trusted origin pattern {raw!r}: wildcard must lead the host")

    try:
        _, host, port = _split_origin(f"{'pattern' if scheme is None else scheme}://{authority}")
    except ValueError as exc:
        raise InvalidOriginPattern(f"Invalid trusted origin pattern {raw!r}: {exc}") from None

    if wildcard:
        return WildcardSubdomain(raw, host, scheme, port)
    if scheme is not None:
        return ExactOrigin(raw, strip_www(host), scheme, port)
    return BareHost(raw, strip_www(host), None, port)
