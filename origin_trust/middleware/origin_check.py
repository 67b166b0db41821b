from __future__ import annotations

import logging
from collections.abc import Collection, Iterable

from starlette.datastructures import Headers
from starlette.responses import PlainTextResponse
from starlette.types import ASGIApp, Receive, Scope, Send

from origin_trust.context import get_decision, get_policy
from origin_trust.matching import TrustedOrigins
from origin_trust.patterns import parse_origin

logger = logging.getLogger(__name__)

UNSAFE_METHODS = ("POST", "PUT", "PATCH", "DELETE")


def origin_of(url: str) -> str | None:
    """
    Reduce a `Referer` style URL to its serialized origin.
    """
    scheme, sep, rest = url.partition("://")
    if not sep:
        return None
    authority = rest.split("/", 1)[0].split("?", 1)[0].split("#", 1)[0]
    candidate = f"{scheme}://{authority}"
    return candidate if parse_origin(candidate) is not None else None


class OriginCheckMiddleware:
    """
    Reject cookie-bearing, state-changing requests sent from untrusted origins.

    The request's `Origin` header is checked, falling back to the origin of
    its `Referer`. Requests carrying neither are let through.

    Without `trusted_origins` of its own, the decision and policy attached to
    the request by `CORSMiddleware` are used instead, failing closed when
    there are none.
    """

    def __init__(
        self,
        app: ASGIApp,
        trusted_origins: TrustedOrigins | Iterable[str] | None = None,
        methods: Collection[str] = UNSAFE_METHODS,
        require_cookies: bool = True,
    ) -> None:
        self.app = app
        if trusted_origins is not None and not isinstance(trusted_origins, TrustedOrigins):
            trusted_origins = TrustedOrigins(trusted_origins)
        self.trusted_origins = trusted_origins
        self.methods = {method.upper() for method in methods}
        self.require_cookies = require_cookies

    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
        if scope["type"] != "http" or scope["method"] not in self.methods:
            await self.app(scope, receive, send)
            return

        headers = Headers(scope=scope)
        if self.require_cookies and "cookie" not in headers:
            await self.app(scope, receive, send)
            return

        source = headers.get("origin") or origin_of(headers.get("referer", ""))
        if not source or self.is_trusted(scope, source):
            await self.app(scope, receive, send)
            return

        logger.warning("Rejected %s request from untrusted origin %r", scope["method"], source)
        if self.trusted_origins is not None:
            logger.info(
                "If %r is a valid origin, add it to the trusted origins. Current trusted origins: %r",
                source,
                [pattern.raw for pattern in self.trusted_origins],
            )
        response = PlainTextResponse("Untrusted origin", status_code=403)
        await response(scope, receive, send)

    def is_trusted(self, scope: Scope, origin: str) -> bool:
        if self.trusted_origins is not None:
            return self.trusted_origins.is_trusted(origin)
        decision = get_decision(scope)
        if decision is not None and decision.is_applicable and decision.origin == origin:
            return decision.is_trusted
        # A Referer derived origin is not covered by the decision.
        policy = get_policy(scope)
        return policy is not None and policy.trusted_origins.is_trusted(origin)
