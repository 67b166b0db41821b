from __future__ import annotations

import logging
from collections.abc import Iterable, Iterator

from origin_trust.patterns import AnyOrigin, InvalidOriginPattern, OriginPattern, parse_origin, parse_pattern

logger = logging.getLogger(__name__)


class TrustedOrigins:
    """
    An immutable, pre-parsed set of trusted-origin patterns.

    Patterns are parsed once, when the set is built. Malformed patterns are
    logged and dropped, so they can never admit an origin.
    """

    __slots__ = ("_patterns",)

    def __init__(self, patterns: Iterable[str | OriginPattern] | None = ()) -> None:
        if patterns is None:
            patterns = ()
        elif isinstance(patterns, str):
            patterns = [patterns]
        parsed: list[OriginPattern] = []
        for pattern in patterns:
            if isinstance(pattern, OriginPattern):
                parsed.append(pattern)
                continue
            try:
                parsed.append(parse_pattern(pattern))
            except InvalidOriginPattern as exc:
                logger.warning("Ignoring trusted origin: %s", exc)
        object.__setattr__(self, "_patterns", tuple(parsed))

    def __setattr__(self, name: str, value: object) -> None:
        raise AttributeError(f"{self.__class__.__name__} is immutable")

    @property
    def patterns(self) -> tuple[OriginPattern, ...]:
        return self._patterns

    @property
    def allows_any(self) -> bool:
        return any(isinstance(pattern, AnyOrigin) and pattern.scheme is None for pattern in self._patterns)

    def is_trusted(self, origin: str | None) -> bool:
        candidate = parse_origin(origin)
        if candidate is None:
            logger.debug("Origin %r is missing or malformed", origin)
            return False

        for pattern in self._patterns:
            if pattern.matches(candidate):
                logger.debug("Origin %r matched trusted origin %r", origin, pattern.raw)
                return True

        logger.debug("Origin %r matched none of %d trusted origins", origin, len(self._patterns))
        return False

    def __iter__(self) -> Iterator[OriginPattern]:
        return iter(self._patterns)

    def __len__(self) -> int:
        return len(self._patterns)

    def __bool__(self) -> bool:
        return bool(self._patterns)

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}({[pattern.raw for pattern in self._patterns]!r})"


def is_origin_trusted(origin: str | None, patterns: TrustedOrigins | Iterable[str]) -> bool:
    """
    Return `True` if `origin` matches any of the trusted-origin `patterns`.

    Never raises: missing, opaque and malformed origins are untrusted, and
    malformed patterns never match.

    >>> is_origin_trusted("https://api.example.com", ["*.example.com"])
    True
    >>> is_origin_trusted("https://www.example.com", ["example.com"])
    True
    >>> is_origin_trusted("https://evilexample.com", ["*.example.com"])
    False
    """
    if not isinstance(patterns, TrustedOrigins):
        patterns = TrustedOrigins(patterns)
    return patterns.is_trusted(origin)
