from __future__ import annotations

import dataclasses
from collections.abc import Collection, Iterable, Mapping

from origin_trust.matching import TrustedOrigins

DEFAULT_ALLOW_METHODS = ("GET", "HEAD", "PUT", "POST", "DELETE", "PATCH")
DEFAULT_ALLOW_HEADERS = ("Content-Type", "Authorization", "x-request-id")
DEFAULT_MAX_AGE = 600

PREFLIGHT_VARY = ("Origin", "Access-Control-Request-Method", "Access-Control-Request-Headers")


def _split_header_list(value: str) -> tuple[str, ...]:
    return tuple(item.strip() for item in value.split(",") if item.strip())


@dataclasses.dataclass(frozen=True)
class CORSDecision:
    """
    The outcome of CORS processing for a single request.

    A decision with `is_applicable=False` describes a request without an
    `Origin` header: it is not a cross-origin request and gets no CORS
    headers at all. That is distinct from an untrusted origin, where
    `allow_origin` is `None` and the caller is expected to reject.
    """

    origin: str | None
    is_applicable: bool
    is_trusted: bool
    allow_origin: str | None = None
    allow_credentials: bool = False
    allow_methods: tuple[str, ...] = ()
    allow_headers: tuple[str, ...] = ()
    is_preflight: bool = False
    max_age: int = DEFAULT_MAX_AGE
    expose_headers: tuple[str, ...] = ()

    @property
    def vary(self) -> tuple[str, ...]:
        if not self.is_applicable:
            return ()
        return PREFLIGHT_VARY if self.is_preflight else ("Origin",)

    def headers(self) -> dict[str, str]:
        if not self.is_applicable:
            return {}

        headers: dict[str, str] = {}
        if self.allow_origin is not None:
            headers["Access-Control-Allow-Origin"] = self.allow_origin
            if self.allow_credentials:
                headers["Access-Control-Allow-Credentials"] = "true"
            if self.is_preflight:
                headers["Access-Control-Allow-Methods"] = ", ".join(self.allow_methods)
                if self.allow_headers:
                    headers["Access-Control-Allow-Headers"] = ", ".join(self.allow_headers)
                headers["Access-Control-Max-Age"] = str(self.max_age)
            elif self.expose_headers:
                headers["Access-Control-Expose-Headers"] = ", ".join(self.expose_headers)
        headers["Vary"] = ", ".join(self.vary)
        return headers


def build_decision(
    origin: str | None,
    trusted_origins: TrustedOrigins | Iterable[str],
    requested_method: str | None = None,
    requested_headers: str | None = None,
    allow_credentials: bool = False,
    *,
    allow_methods: Collection[str] = DEFAULT_ALLOW_METHODS,
    allow_headers: Collection[str] = DEFAULT_ALLOW_HEADERS,
    max_age: int = DEFAULT_MAX_AGE,
    expose_headers: Collection[str] = (),
    is_preflight: bool = False,
) -> CORSDecision:
    if not origin:
        return CORSDecision(origin=None, is_applicable=False, is_trusted=True)

    if not isinstance(trusted_origins, TrustedOrigins):
        trusted_origins = TrustedOrigins(trusted_origins)

    if not trusted_origins.is_trusted(origin):
        return CORSDecision(origin=origin, is_applicable=True, is_trusted=False, is_preflight=is_preflight)

    methods = (requested_method.strip(),) if requested_method and requested_method.strip() else tuple(allow_methods)
    headers = _split_header_list(requested_headers) if requested_headers else ()

    return CORSDecision(
        origin=origin,
        is_applicable=True,
        is_trusted=True,
        # Always the literal origin, so credentialed responses are never "*".
        allow_origin=origin,
        allow_credentials=allow_credentials,
        allow_methods=methods,
        allow_headers=headers or tuple(allow_headers),
        is_preflight=is_preflight,
        max_age=max_age,
        expose_headers=tuple(expose_headers),
    )


@dataclasses.dataclass(frozen=True)
class CORSPolicy:
    """
    Configured CORS behaviour, shared read-only by every request.
    """

    trusted_origins: TrustedOrigins = dataclasses.field(default_factory=TrustedOrigins)
    allow_credentials: bool = False
    allow_methods: tuple[str, ...] = DEFAULT_ALLOW_METHODS
    allow_headers: tuple[str, ...] = DEFAULT_ALLOW_HEADERS
    expose_headers: tuple[str, ...] = ()
    max_age: int = DEFAULT_MAX_AGE

    def __post_init__(self) -> None:
        if not isinstance(self.trusted_origins, TrustedOrigins):
            object.__setattr__(self, "trusted_origins", TrustedOrigins(self.trusted_origins))
        for name in ("allow_methods", "allow_headers", "expose_headers"):
            object.__setattr__(self, name, tuple(getattr(self, name)))

    def decide(self, headers: Mapping[str, str], method: str = "GET") -> CORSDecision:
        """
        Build the decision for a request, given its (case-insensitive) headers.
        """
        requested_method = headers.get("access-control-request-method")
        is_preflight = method == "OPTIONS" and requested_method is not None
        return build_decision(
            headers.get("origin"),
            self.trusted_origins,
            requested_method if is_preflight else None,
            headers.get("access-control-request-headers") if is_preflight else None,
            self.allow_credentials,
            allow_methods=self.allow_methods,
            allow_headers=self.allow_headers,
            max_age=self.max_age,
            expose_headers=self.expose_headers,
            is_preflight=is_preflight,
        )
