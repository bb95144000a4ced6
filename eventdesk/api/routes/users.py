"""User Routes: public sign-up, admin account management, password change."""

from fastapi import APIRouter, Depends, Response, status

from eventdesk.api.deps import get_desk, get_identity
from eventdesk.core.entities import Identity
from eventdesk.schemas.user import (
    PasswordChange, UserCreate, UserRegister, UserResponse,
)
from eventdesk.services.event_desk import EventDesk

router = APIRouter(prefix="/api/v1/users", tags=["users"])


@router.post(
    "/register", response_model=UserResponse, status_code=status.HTTP_201_CREATED,
)
def register(body: UserRegister, desk: EventDesk = Depends(get_desk)):
    """Self-service sign-up; always a regular user."""
    user = desk.register_user(body.username, body.password)
    return UserResponse.model_validate(user)


@router.post("", response_model=UserResponse, status_code=status.HTTP_201_CREATED)
def create_user(
    body: UserCreate,
    identity: Identity = Depends(get_identity),
    desk: EventDesk = Depends(get_desk),
):
    user = desk.create_user(identity, body.username, body.password, body.role)
    return UserResponse.model_validate(user)


@router.get("", response_model=list[UserResponse])
def list_users(
    identity: Identity = Depends(get_identity),
    desk: EventDesk = Depends(get_desk),
):
    return [UserResponse.model_validate(u) for u in desk.list_users(identity)]


@router.get("/me", response_model=UserResponse)
def whoami(identity: Identity = Depends(get_identity)):
    return UserResponse(id=identity.user_id, username=identity.username, role=identity.role)


@router.put("/me/password", status_code=status.HTTP_204_NO_CONTENT)
def change_password(
    body: PasswordChange,
    identity: Identity = Depends(get_identity),
    desk: EventDesk = Depends(get_desk),
):
    desk.change_password(identity, body.current_password, body.new_password)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.delete("/{username}", status_code=status.HTTP_204_NO_CONTENT)
def delete_user(
    username: str,
    identity: Identity = Depends(get_identity),
    desk: EventDesk = Depends(get_desk),
):
    desk.delete_user(identity, username)
    return Response(status_code=status.HTTP_204_NO_CONTENT)
