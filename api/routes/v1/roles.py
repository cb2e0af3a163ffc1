"""
api/routes/v1/roles.py -- Role management REST endpoints.

Routes:
  GET    /api/v1/roles/          -- list, optionally ?id=1,2     (readUsers)
  GET    /api/v1/roles/{id}      -- one role                     (readUsers)
  POST   /api/v1/roles/          -- create; 201                  (writeUsers)
  PUT    /api/v1/roles/{id}      -- replace label and permissions (writeUsers)
  DELETE /api/v1/roles/{id}      -- delete; 204, 409 in_use while assigned (writeUsers)

Roles are part of user management, so they share the user permissions.
The system roles 1 ("admin") and 2 ("user") answer 409 read_only to PUT and
DELETE.
"""

from __future__ import annotations

from fastapi import APIRouter, Depends, Request, Response

from api.deps import RecordId, id_list
from api.models import RoleList, RoleRequest, RoleResponse
from auth.dependencies import require
from auth.models import User
from auth.permissions import Permission
from auth.roles import RoleService

router = APIRouter()

_can_read = require(Permission.READ_USERS)
_can_write = require(Permission.WRITE_USERS)


def _service(request: Request) -> RoleService:
    return request.app.state.role_service


@router.get("/roles/", response_model=RoleList)
def list_roles(
    request: Request,
    _user: User = Depends(_can_read),
    ids: list[int] = Depends(id_list),
) -> RoleList:
    roles = _service(request).by_ids(*ids)
    return RoleList(items=[RoleResponse.from_domain(r) for r in roles])


@router.get("/roles/{role_id}", response_model=RoleResponse)
def get_role(request: Request, role_id: RecordId, _user: User = Depends(_can_read)) -> RoleResponse:
    return RoleResponse.from_domain(_service(request).by_id(role_id))


@router.post("/roles/", response_model=RoleResponse, status_code=201)
def create_role(request: Request, body: RoleRequest, _user: User = Depends(_can_write)) -> RoleResponse:
    role = body.to_domain()
    _service(request).create(role)
    return RoleResponse.from_domain(role)


@router.put("/roles/{role_id}", response_model=RoleResponse)
def update_role(
    request: Request,
    role_id: RecordId,
    body: RoleRequest,
    _user: User = Depends(_can_write),
) -> RoleResponse:
    role = body.to_domain(role_id)
    _service(request).update(role)
    return RoleResponse.from_domain(role)


@router.delete("/roles/{role_id}", status_code=204)
def delete_role(request: Request, role_id: RecordId, _user: User = Depends(_can_write)) -> Response:
    _service(request).delete(role_id)
    return Response(status_code=204)
