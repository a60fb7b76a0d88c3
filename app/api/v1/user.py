import uuid
from typing import List, Optional

from fastapi import APIRouter, Depends, status

from app.core.dependencies import get_user_service, get_current_principal
from app.models.auth import Principal
from app.models.user import UserRead, UserStatusUpdate
from app.services.user import UserService


router = APIRouter()


@router.get(
    "",
    response_model=List[UserRead],
    status_code=status.HTTP_200_OK,
    summary="List users",
    description="Admin only. Newest accounts first."
)
def list_users(
    principal: Optional[Principal] = Depends(get_current_principal),
    service: UserService = Depends(get_user_service)
):
    return service.list_users(principal)


@router.put(
    "/{user_id}/status",
    response_model=UserRead,
    status_code=status.HTTP_200_OK,
    summary="Approve, reject or suspend a user",
)
def update_user_status(
    user_id: uuid.UUID,
    data: UserStatusUpdate,
    principal: Optional[Principal] = Depends(get_current_principal),
    service: UserService = Depends(get_user_service)
):
    return service.update_status(principal, user_id, data.status)
