from __future__ import annotations

from typing import Any

from starlette.requests import HTTPConnection
from starlette.types import Scope

from origin_trust.decision import CORSDecision, CORSPolicy

STATE_KEY = "cors"
POLICY_STATE_KEY = "cors_policy"


def _state(conn: Scope | HTTPConnection) -> dict[str, Any]:
    scope = conn.scope if isinstance(conn, HTTPConnection) else conn
    return scope.get("state", {})


def attach_decision(scope: Scope, decision: CORSDecision, policy: CORSPolicy | None = None) -> None:
    """
    Store `decision` on the request's state, replacing any earlier one.

    Later stages read it back as `request.state.cors`. When given, the policy
    that produced it is stored alongside as `request.state.cors_policy`.
    """
    state: dict[str, Any] = scope.setdefault("state", {})
    state[STATE_KEY] = decision
    if policy is not None:
        state[POLICY_STATE_KEY] = policy


def get_decision(conn: Scope | HTTPConnection) -> CORSDecision | None:
    decision = _state(conn).get(STATE_KEY)
    return decision if isinstance(decision, CORSDecision) else None


def get_policy(conn: Scope | HTTPConnection) -> CORSPolicy | None:
    policy = _state(conn).get(POLICY_STATE_KEY)
    return policy if isinstance(policy, CORSPolicy) else None
