"""
api/deps.py -- Request parsing and content negotiation dependencies.

require_json is attached to every resource router, before authentication:
  - an Accept header that rules out application/json -> 406 not_acceptable
  - POST/PUT/PATCH without Content-Type application/json -> 406 not_acceptable

id_list and target_query parse the list filters. A malformed or out-of-range
value is a validation error on that parameter, not a server error. RecordId
bounds path ids the same way.
"""

from __future__ import annotations

from typing import Annotated

from fastapi import Path, Query, Request

from core.db import MAX_ID
from core.errors import Invalid, NotAcceptable, ValidationError

JSON_MIME = "application/json"

_BODY_METHODS = frozenset({"POST", "PUT", "PATCH"})

# Path ids outside the column range name no record; FastAPI rejects them
# before the handler runs and api/main.py answers 404 not_found.
RecordId = Annotated[int, Path(ge=1, le=MAX_ID)]


def require_json(request: Request) -> None:
    accept = request.headers.get("Accept", "")
    if accept and "*/*" not in accept and "application/*" not in accept and JSON_MIME not in accept:
        raise NotAcceptable(f"Accept {accept!r} excludes {JSON_MIME}")
    if request.method in _BODY_METHODS and JSON_MIME not in request.headers.get("Content-Type", ""):
        raise NotAcceptable(f"{request.method} without a {JSON_MIME} body")


def _parse_id(value: str) -> int:
    """int(value) within 1..MAX_ID; ValueError otherwise."""
    parsed = int(value)
    if not 1 <= parsed <= MAX_ID:
        raise ValueError(f"id out of range: {value}")
    return parsed


def id_list(ids: str = Query(default="", alias="id", description="Comma-separated ids, e.g. 1,2,3")) -> list[int]:
    """Parse ?id=1,2,3. An absent or empty value means "all"."""
    if not ids:
        return []
    try:
        return [_parse_id(part) for part in ids.split(",")]
    except ValueError:
        raise ValidationError({"id": Invalid()}) from None


def target_query(target: str = Query(default="", description="Id of the rated target")) -> int:
    try:
        return _parse_id(target)
    except ValueError:
        raise ValidationError({"target": Invalid()}) from None
