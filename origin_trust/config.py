from __future__ import annotations

from starlette.config import Config
from starlette.datastructures import CommaSeparatedStrings

from origin_trust.decision import DEFAULT_ALLOW_HEADERS, DEFAULT_ALLOW_METHODS, DEFAULT_MAX_AGE, CORSPolicy
from origin_trust.matching import TrustedOrigins


def load_policy(config: Config | None = None) -> CORSPolicy:
    """
    Build a `CORSPolicy` from environment variables, or from `config` when given.

    TRUSTED_ORIGINS=https://example.com,*.example.org
    CORS_ALLOW_CREDENTIALS=true
    CORS_ALLOW_METHODS=GET,POST
    CORS_ALLOW_HEADERS=Content-Type,Authorization
    CORS_EXPOSE_HEADERS=X-Request-Id
    CORS_MAX_AGE=600
    """
    if config is None:
        config = Config()

    return CORSPolicy(
        trusted_origins=TrustedOrigins(config("TRUSTED_ORIGINS", cast=CommaSeparatedStrings, default="")),
        allow_credentials=config("CORS_ALLOW_CREDENTIALS", cast=bool, default=False),
        allow_methods=tuple(
            config("CORS_ALLOW_METHODS", cast=CommaSeparatedStrings, default=",".join(DEFAULT_ALLOW_METHODS))
        ),
        allow_headers=tuple(
            config("CORS_ALLOW_HEADERS", cast=CommaSeparatedStrings, default=",".join(DEFAULT_ALLOW_HEADERS))
        ),
        expose_headers=tuple(config("CORS_EXPOSE_HEADERS", cast=CommaSeparatedStrings, default="")),
        max_age=config("CORS_MAX_AGE", cast=int, default=DEFAULT_MAX_AGE),
    )
