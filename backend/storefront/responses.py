# Overview: Uniform JSON envelope for every API response.

from __future__ import annotations

from typing import Any

from flask import jsonify

from .errors import ApiError


def success(message: str, data: Any = None, status: int = 200):
    body: dict[str, Any] = {"success": True, "message": message}
    if data is not None:
        body["data"] = data
    return jsonify(body), status


def failure(message: str, status: int, errors: list[dict] | None = None, **extra):
    body: dict[str, Any] = {"success": False, "message": message}
    if errors:
        body["errors"] = errors
    body.update(extra)
    return jsonify(body), status


def from_error(exc: ApiError):
    """Convert a domain error into the envelope, keeping field errors and details."""
    return failure(exc.message, exc.status_code, exc.errors or None, **exc.details)
