from typing import Optional

from fastapi import APIRouter, Depends, Response, status
from fastapi.security import OAuth2PasswordRequestForm
from loguru import logger

from app.core.config import settings
from app.core.dependencies import get_user_service, get_current_principal
from app.core.errors import ErrorKind, ServiceError
from app.models.auth import Principal, Token
from app.models.user import UserSignin, UserRead, UserCreate, SigninResponse
from app.services.user import UserService


router = APIRouter()


def _set_auth_cookie(response: Response, token: str):
    response.set_cookie(
        key=settings.auth_cookie_name,
        value=token,
        httponly=True,
        secure=settings.cookie_secure,
        samesite="lax",
        max_age=settings.access_token_expire_minutes * 60,
        path="/",
    )


@router.post(
    "/register",
    status_code=status.HTTP_201_CREATED,
    response_model=UserRead,
    summary="Register a new user",
    description="Creates a CLIENT, DEALER or AGENT account. Dealers always wait for admin approval."
)
def register(
    user_in: UserCreate,
    service: UserService = Depends(get_user_service)
):
    return service.create_user(user_in)


@router.post(
    "/login",
    response_model=SigninResponse,
    status_code=status.HTTP_200_OK,
    summary="Sign in",
    description="Verifies credentials and account status, then sets the session cookie."
)
def login(
    signin_data: UserSignin,
    response: Response,
    service: UserService = Depends(get_user_service)
):
    """
    1. Verifies password.
    2. Checks the account has been approved.
    3. Issues the JWT and stores it in an httpOnly cookie.
    """
    user, token = service.sign_in(signin_data.email, signin_data.password)
    _set_auth_cookie(response, token)
    return SigninResponse(user=UserRead.model_validate(user), access_token=token)


@router.post(
    "/token",
    response_model=Token,
    status_code=status.HTTP_200_OK,
    summary="OAuth2 password flow",
    description="Form-encoded sign-in for API clients and the interactive docs."
)
def token(
    form_data: OAuth2PasswordRequestForm = Depends(),
    service: UserService = Depends(get_user_service)
):
    _, access_token = service.sign_in(form_data.username.lower(), form_data.password)
    return Token(access_token=access_token)


@router.post(
    "/logout",
    status_code=status.HTTP_200_OK,
    summary="Sign out",
)
def logout(response: Response):
    response.delete_cookie(key=settings.auth_cookie_name, path="/")
    return {"success": True}


@router.get(
    "/me",
    status_code=status.HTTP_200_OK,
    summary="Get current user",
    description="Returns the identity carried by the session token."
)
def get_me(principal: Optional[Principal] = Depends(get_current_principal)):
    if principal is None:
        raise ServiceError(ErrorKind.UNAUTHENTICATED)

    logger.debug(f"Session resolved for {principal.user_id}")
    return {
        "user": {
            "id": principal.user_id,
            "name": principal.name,
            "email": principal.email,
            "role": principal.role,
        }
    }
