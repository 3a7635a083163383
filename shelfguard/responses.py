# Overview: JSON envelope helpers shared by every route.

"""
Every API response uses one of two shapes:

    {"success": true, "data": {...}}            (or "message" instead of data)
    {"success": false, "message": "...", "errors": [...]}

errors is only present for validation failures.
"""

from __future__ import annotations


def ok(data=None, message: str | None = None, status: int = 200):
    body: dict = {"success": True}
    if message is not None:
        body["message"] = message
    if data is not None:
        body["data"] = data
    return body, status


def fail(message: str, status: int, errors: list | None = None):
    body: dict = {"success": False, "message": message}
    if errors:
        body["errors"] = errors
    return body, status
