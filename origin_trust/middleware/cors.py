from __future__ import annotations

import functools
from collections.abc import Collection, Iterable

from starlette.datastructures import Headers, MutableHeaders
from starlette.responses import PlainTextResponse, Response
from starlette.types import ASGIApp, Message, Receive, Scope, Send

from origin_trust.context import attach_decision
from origin_trust.decision import (
    DEFAULT_ALLOW_HEADERS,
    DEFAULT_ALLOW_METHODS,
    DEFAULT_MAX_AGE,
    CORSDecision,
    CORSPolicy,
)
from origin_trust.matching import TrustedOrigins


class CORSMiddleware:
    def __init__(
        self,
        app: ASGIApp,
        trusted_origins: TrustedOrigins | Iterable[str] = (),
        allow_credentials: bool = False,
        allow_methods: Collection[str] = DEFAULT_ALLOW_METHODS,
        allow_headers: Collection[str] = DEFAULT_ALLOW_HEADERS,
        expose_headers: Collection[str] = (),
        max_age: int = DEFAULT_MAX_AGE,
    ) -> None:
        self.app = app
        self.policy = CORSPolicy(
            trusted_origins=trusted_origins,
            allow_credentials=allow_credentials,
            allow_methods=allow_methods,
            allow_headers=allow_headers,
            expose_headers=expose_headers,
            max_age=max_age,
        )

    @classmethod
    def from_policy(cls, app: ASGIApp, policy: CORSPolicy) -> CORSMiddleware:
        return cls(
            app,
            trusted_origins=policy.trusted_origins,
            allow_credentials=policy.allow_credentials,
            allow_methods=policy.allow_methods,
            allow_headers=policy.allow_headers,
            expose_headers=policy.expose_headers,
            max_age=policy.max_age,
        )

    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
        if scope["type"] != "http":  # pragma: no cover
            await self.app(scope, receive, send)
            return

        headers = Headers(scope=scope)
        decision = self.policy.decide(headers, scope["method"])
        attach_decision(scope, decision, self.policy)

        if not decision.is_applicable:
            await self.app(scope, receive, send)
            return

        if decision.is_preflight:
            response = self.preflight_response(decision)
            await response(scope, receive, send)
            return

        await self.simple_response(scope, receive, send, decision=decision)

    def preflight_response(self, decision: CORSDecision) -> Response:
        # Enforcement is up to the browser, but a 400 is more informative.
        if not decision.is_trusted:
            return PlainTextResponse("Disallowed CORS origin", status_code=400, headers=decision.headers())
        return PlainTextResponse("OK", status_code=200, headers=decision.headers())

    async def simple_response(self, scope: Scope, receive: Receive, send: Send, decision: CORSDecision) -> None:
        send = functools.partial(self.send, send=send, decision=decision)
        await self.app(scope, receive, send)

    async def send(self, message: Message, send: Send, decision: CORSDecision) -> None:
        if message["type"] != "http.response.start":
            await send(message)
            return

        message.setdefault("headers", [])
        headers = MutableHeaders(scope=message)
        for name, value in decision.headers().items():
            if name == "Vary":
                headers.add_vary_header(value)
            else:
                headers[name] = value

        await send(message)
