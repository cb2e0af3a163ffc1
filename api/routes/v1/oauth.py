"""
api/routes/v1/oauth.py -- OAuth 2.0 token endpoint.

Routes:
  POST /api/v1/oauth/token/  -- form-encoded; issues an access/refresh token pair

Grants (RFC 6749):
  grant_type=password       email + password
  grant_type=refresh_token  refresh_token

Errors use the OAuth envelope, not the {"error": code, "fields": ...} one
used by the resource routes:
  400 {"error": "invalid_request", "error_description": "<code>"}
  401 {"error": "invalid_client"}                -- any authentication failure
  400 {"error": "unsupported_grant_type"}
  500 {"error": "server_error"}                  -- via the catch-all handler

Security:
  Rate-limited per client IP (TOKEN_RATE_LIMIT, default 10/minute).
  UserService.authenticate() provides timing equalization -- use it, never inline.
  Cache-Control: no-store on every response.
  The handler is a plain def so the failed-login delay blocks a threadpool
  worker, not the event loop.
"""

from __future__ import annotations

from fastapi import APIRouter, Form, Request
from fastapi.responses import JSONResponse

from api.errors import oauth_error
from api.limiter import TOKEN_LIMIT, limiter
from api.models import TokenResponse
from auth.models import User
from auth.users import UserService
from core.errors import ModelError, Unauthorized

FORM_MIME = "application/x-www-form-urlencoded"

router = APIRouter()


@limiter.limit(TOKEN_LIMIT)  # above @router: FastAPI registers the undecorated signature
@router.post("/oauth/token/", response_model=TokenResponse)
def token(
    request: Request,
    grant_type: str = Form(default=""),
    email: str = Form(default=""),
    password: str = Form(default=""),
    refresh_token: str = Form(default=""),
) -> JSONResponse:
    """Exchange credentials or a refresh token for a new token pair."""
    if FORM_MIME not in request.headers.get("Content-Type", ""):
        return oauth_error(400, "invalid_request", "content_type_not_accepted")
    if not grant_type:
        return oauth_error(400, "invalid_request", "invalid_form")

    users: UserService = request.app.state.user_service
    try:
        user: User
        if grant_type == "password":
            user = users.authenticate(email, password)
        elif grant_type == "refresh_token":
            user = users.refresh(refresh_token)
        else:
            return oauth_error(400, "unsupported_grant_type")
        pair = users.token(user)
    except Unauthorized:
        return oauth_error(401, "invalid_client")
    except ModelError as exc:
        return oauth_error(400, "invalid_request", exc.public)

    resp = JSONResponse(
        status_code=200,
        content=TokenResponse(
            access_token=pair.access_token,
            refresh_token=pair.refresh_token,
            expires_in=pair.expires_in,
            token_type=pair.token_type,
        ).model_dump(),
    )
    resp.headers["Cache-Control"] = "no-store"
    return resp
