"""
api/errors.py -- Error view: ModelError -> HTTP status and JSON body.

Every error response of the resource routes has the same envelope:

    {"error": "<public code>"}
    {"error": "validation_error", "fields": {"email": "is_duplicate"}}

A public error answers 400 unless its code has an entry in STATUS_BY_CODE.
For a ValidationError the field codes are looked at too, in field-name order,
and the first one with an entry decides the status: a duplicate email is a
409 even though it arrives wrapped in a validation error.

The token endpoint speaks OAuth 2.0 instead (RFC 6749 section 5.2); see
oauth_error().
"""

from __future__ import annotations

from types import MappingProxyType

from fastapi.responses import JSONResponse

from core.errors import ModelError, ValidationError

DEFAULT_STATUS = 400

STATUS_BY_CODE = MappingProxyType(
    {
        "not_found": 404,
        "reference_not_found": 404,
        "is_duplicate": 409,
        "read_only": 409,
        "in_use": 409,
        "unauthorized": 401,
        "forbidden": 403,
        "not_acceptable": 406,
    }
)


def error_status(exc: ModelError) -> int:
    if exc.code in STATUS_BY_CODE:
        return STATUS_BY_CODE[exc.code]
    if isinstance(exc, ValidationError):
        for name in sorted(exc.fields):
            code = exc.fields[name].code
            if code in STATUS_BY_CODE:
                return STATUS_BY_CODE[code]
    return DEFAULT_STATUS


def error_body(exc: ModelError) -> dict:
    body: dict = {"error": exc.public}
    if isinstance(exc, ValidationError):
        body["fields"] = exc.public_fields()
    return body


def error_response(exc: ModelError) -> JSONResponse:
    response = JSONResponse(status_code=error_status(exc), content=error_body(exc))
    if response.status_code == 401:
        response.headers["WWW-Authenticate"] = "Bearer"
    return response


def oauth_error(status_code: int, error: str, description: str = "") -> JSONResponse:
    """Build an OAuth 2.0 error response. Never cached, like the token responses."""
    content = {"error": error}
    if description:
        content["error_description"] = description
    response = JSONResponse(status_code=status_code, content=content)
    response.headers["Cache-Control"] = "no-store"
    return response
