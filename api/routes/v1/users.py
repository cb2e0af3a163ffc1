"""
api/routes/v1/users.py -- Principal management REST endpoints.

Routes:
  GET    /api/v1/users/          -- list, optionally ?id=1,2,3   (readUsers)
  GET    /api/v1/users/{id}      -- one principal                (readUsers)
  POST   /api/v1/users/          -- create; 201                  (writeUsers)
  PUT    /api/v1/users/{id}      -- replace; empty password keeps the old one (writeUsers)
  DELETE /api/v1/users/{id}      -- delete; 204                  (writeUsers)

Principal 1, the super-admin, answers 409 read_only to PUT and DELETE
whatever the caller's permissions.
"""

from __future__ import annotations

from fastapi import APIRouter, Depends, Request, Response

from api.deps import RecordId, id_list
from api.models import UserList, UserRequest, UserResponse
from auth.dependencies import require
from auth.models import User
from auth.permissions import Permission
from auth.users import UserService

router = APIRouter()

_can_read = require(Permission.READ_USERS)
_can_write = require(Permission.WRITE_USERS)


def _service(request: Request) -> UserService:
    return request.app.state.user_service


@router.get("/users/", response_model=UserList)
def list_users(
    request: Request,
    _user: User = Depends(_can_read),
    ids: list[int] = Depends(id_list),
) -> UserList:
    """Unknown ids are skipped; this route never answers 404."""
    users = _service(request).by_ids(*ids)
    return UserList(items=[UserResponse.from_domain(u) for u in users])


@router.get("/users/{user_id}", response_model=UserResponse)
def get_user(request: Request, user_id: RecordId, _user: User = Depends(_can_read)) -> UserResponse:
    return UserResponse.from_domain(_service(request).by_id(user_id))


@router.post("/users/", response_model=UserResponse, status_code=201)
def create_user(request: Request, body: UserRequest, _user: User = Depends(_can_write)) -> UserResponse:
    user = body.to_domain()
    _service(request).create(user)
    return UserResponse.from_domain(user)


@router.put("/users/{user_id}", response_model=UserResponse)
def update_user(
    request: Request,
    user_id: RecordId,
    body: UserRequest,
    _user: User = Depends(_can_write),
) -> UserResponse:
    user = body.to_domain(user_id)
    _service(request).update(user)
    return UserResponse.from_domain(user)


@router.delete("/users/{user_id}", status_code=204)
def delete_user(request: Request, user_id: RecordId, _user: User = Depends(_can_write)) -> Response:
    _service(request).delete(user_id)
    return Response(status_code=204)
