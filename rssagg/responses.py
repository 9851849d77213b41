"""Uniform JSON responses for the HTTP API."""

import json
import logging

from flask import Response

logger = logging.getLogger(__name__)


def respond_with_json(status: int, data) -> Response:
    """Serialise ``data`` compactly and return it with the given status."""
    try:
        body = json.dumps(data, separators=(",", ":"))
    except (TypeError, ValueError) as exc:
        logger.error("Error marshalling JSON: %s", exc)
        return Response(b"", status=500)
    return Response(body, status=status, content_type="application/json")


def respond_with_error(status: int, msg: str) -> Response:
    """Return ``{"error": msg}``; server errors are also logged."""
    if status > 499:
        logger.error("Server error: %s", msg)
    return respond_with_json(status, {"error": msg})