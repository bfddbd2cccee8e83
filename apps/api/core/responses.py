"""
Error responses for the Storefront API.

Every error body has the shape ``{"error": message, "code": CODE, "details": {...}}``.
"""

from typing import Any

from rest_framework import status
from rest_framework.response import Response


def error_response(http_status: int, code: str, message: str, details: Any = None) -> Response:
    return Response({"error": message, "code": code, "details": details or {}}, status=http_status)


def invalid_input_response(details: Any) -> Response:
    return error_response(status.HTTP_400_BAD_REQUEST, "INVALID_INPUT", "Invalid input", details)


def service_error_response(code: str, status_map: dict[str, int], messages: dict[str, str] | None = None) -> Response:
    """Map a service error code to its HTTP status; unknown codes are server errors."""
    http_status = status_map.get(code, status.HTTP_500_INTERNAL_SERVER_ERROR)
    message = (messages or {}).get(code) or code.replace("_", " ").capitalize()
    return error_response(http_status, code, message)
