"""Extraction of API keys from request headers."""

from collections.abc import Mapping


class AuthError(Exception):
    """Raised when a request does not carry a usable API key."""


def _lookup(headers: Mapping, name: str) -> str:
    value = headers.get(name)
    if value is None:
        lowered = name.lower()
        value = next(
            (v for k, v in headers.items() if k.lower() == lowered),
            None,
        )
    return value or ""


def get_api_key(headers: Mapping) -> str:
    """Return the key from an ``Authorization: ApiKey <key>`` header."""
    value = _lookup(headers, "Authorization")
    if not value:
        raise AuthError("missing Authorization header")
    parts = value.split(" ")
    if len(parts) != 2:
        raise AuthError("invalid Authorization header format")
    scheme, key = parts
    if scheme != "ApiKey":
        raise AuthError("invalid Authorization header type, expected 'ApiKey'")
    return key