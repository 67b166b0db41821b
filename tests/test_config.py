from __future__ import annotations

from pathlib import Path

import pytest

from starlette.config import Config, Environ

from origin_trust.config import load_policy
from origin_trust.decision import DEFAULT_ALLOW_HEADERS, DEFAULT_ALLOW_METHODS, DEFAULT_MAX_AGE


def test_load_policy_defaults() -> None:
    policy = load_policy(Config(environ=Environ({})))
    assert len(policy.trusted_origins) == 0
    assert not policy.allow_credentials
    assert policy.allow_methods == DEFAULT_ALLOW_METHODS
    assert policy.allow_headers == DEFAULT_ALLOW_HEADERS
    assert policy.expose_headers == ()
    assert policy.max_age == DEFAULT_MAX_AGE


def test_load_policy_from_environ() -> None:
    environ = Environ(
        {
            "TRUSTED_ORIGINS": "https://partner.com, *.example.com",
            "CORS_ALLOW_CREDENTIALS": "true",
            "CORS_ALLOW_METHODS": "GET,POST",
            "CORS_ALLOW_HEADERS": "X-Token",
            "CORS_EXPOSE_HEADERS": "X-Status",
            "CORS_MAX_AGE": "120",
        }
    )
    policy = load_policy(Config(environ=environ))
    assert [pattern.raw for pattern in policy.trusted_origins] == ["https://partner.com", "*.example.com"]
    assert policy.trusted_origins.is_trusted("https://api.example.com")
    assert policy.allow_credentials
    assert policy.allow_methods == ("GET", "POST")
    assert policy.allow_headers == ("X-Token",)
    assert policy.expose_headers == ("X-Status",)
    assert policy.max_age == 120


def test_load_policy_from_env_file(tmp_path: Path) -> None:
    path = tmp_path / ".env"
    path.write_text("TRUSTED_ORIGINS=localhost\nCORS_ALLOW_CREDENTIALS=1\n")
    policy = load_policy(Config(path, environ=Environ({})))
    assert policy.trusted_origins.is_trusted("http://127.0.0.1:8000")
    assert policy.allow_credentials


def test_load_policy_invalid_value() -> None:
    with pytest.raises(ValueError):
        load_policy(Config(environ=Environ({"CORS_MAX_AGE": "ten minutes"})))
