"""Scope parameter handling (RFC 6749 Section 3.3).

    scope       = scope-token *( SP scope-token )
    scope-token = 1*( %x21 / %x23-5B / %x5D-7E )

Scopes are kept as insertion-ordered, de-duplicated tuples so the encoded
parameter is byte-stable across runs.
"""

from __future__ import annotations

from collections.abc import Iterable

from oauthio.models.errors import InvalidScopeToken


def is_valid_scope_token(token: str) -> bool:
    if not token:
        return False
    return all(
        ch == "\x21" or "\x23" <= ch <= "\x5b" or "\x5d" <= ch <= "\x7e"
        for ch in token
    )


def normalize_scope(tokens: Iterable[str] | str | None) -> tuple[str, ...]:
    """Validate scope tokens and drop duplicates, keeping first-seen order.

    A plain string is split on whitespace first.

    Raises:
        InvalidScopeToken: If a token is empty or outside the scope-token grammar
    """
    if tokens is None:
        return ()
    if isinstance(tokens, str):
        tokens = tokens.split()

    normalized = tuple(dict.fromkeys(tokens))
    for token in normalized:
        if not is_valid_scope_token(token):
            raise InvalidScopeToken(token)
    return normalized


def join_scope(tokens: Iterable[str]) -> str:
    return " ".join(tokens)


def split_scope(scope: str | None) -> tuple[str, ...]:
    """Split a space-delimited scope string as returned by the token endpoint."""
    if not scope:
        return ()
    return tuple(dict.fromkeys(scope.split()))
