from __future__ import annotations

from fastapi import APIRouter, Depends, status
from sqlalchemy.engine import Engine

from monetaris.core.auth.context import CurrentUser, require_roles, require_user
from monetaris.core.database import get_engine
from monetaris.core.enums import UserRole

from .models import CreateUserRequest, UserOut
from .service import UserService

router = APIRouter(prefix="/api/v1/users", tags=["users"])

_admin = require_roles(UserRole.ADMIN)


def _service(engine: Engine = Depends(get_engine)) -> UserService:
    return UserService(engine)


@router.get("/me", response_model=UserOut)
def get_me(user: CurrentUser = Depends(require_user), svc: UserService = Depends(_service)):
    return svc.me(user)


@router.get("", response_model=list[UserOut])
def list_users(user: CurrentUser = Depends(_admin), svc: UserService = Depends(_service)):
    return svc.list_users()


@router.post("", response_model=UserOut, status_code=status.HTTP_201_CREATED)
def create_user(
    body: CreateUserRequest,
    user: CurrentUser = Depends(_admin),
    svc: UserService = Depends(_service),
):
    return svc.create_user(body)


@router.put("/{user_id}/kreditoren/{kreditor_id}", response_model=UserOut)
def assign_kreditor(
    user_id: str,
    kreditor_id: str,
    user: CurrentUser = Depends(_admin),
    svc: UserService = Depends(_service),
):
    return svc.assign_kreditor(user_id, kreditor_id)


@router.delete("/{user_id}/kreditoren/{kreditor_id}", response_model=UserOut)
def unassign_kreditor(
    user_id: str,
    kreditor_id: str,
    user: CurrentUser = Depends(_admin),
    svc: UserService = Depends(_service),
):
    return svc.unassign_kreditor(user_id, kreditor_id)
