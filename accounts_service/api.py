"""FastAPI application exposing login and user account endpoints."""
from __future__ import annotations

import logging
from typing import Dict, List, Optional

from fastapi import APIRouter, Depends, FastAPI, Request, Response, status
from fastapi.responses import JSONResponse
from pydantic import BaseModel, Field, field_validator

from .accounts import AccountService
from .errors import (
    AccountServiceError,
    CredentialFailure,
    InvalidCredentials,
    NotFound,
    StoreFailure,
    Unauthorized,
    ValidationFailure,
)
from .models import NewUser, User, UserUpdate
from .security import BearerToken

logger = logging.getLogger("accounts.api")


class LoginRequest(BaseModel):
    email: str = Field(..., min_length=1, max_length=255)
    password: str = Field(..., min_length=1)


class LoginResponse(BaseModel):
    token: str


class CreateUserRequest(BaseModel):
    email: str = Field(..., min_length=3, max_length=255)
    password: str = Field(..., min_length=1, max_length=128)
    first_name: Optional[str] = Field(default=None, max_length=100)
    last_name: Optional[str] = Field(default=None, max_length=100)
    profile: Dict[str, object] = Field(default_factory=dict)

    @field_validator("email")
    @classmethod
    def _normalize_email(cls, value: str) -> str:
        stripped = value.strip().lower()
        if "@" not in stripped:
            raise ValueError("email must contain '@'")
        return stripped


class UpdateUserRequest(BaseModel):
    email: Optional[str] = Field(default=None, min_length=3, max_length=255)
    password: Optional[str] = Field(default=None, min_length=1, max_length=128)
    first_name: Optional[str] = Field(default=None, max_length=100)
    last_name: Optional[str] = Field(default=None, max_length=100)
    profile: Optional[Dict[str, object]] = None

    @field_validator("email")
    @classmethod
    def _normalize_email(cls, value: Optional[str]) -> Optional[str]:
        if value is None:
            return None
        stripped = value.strip().lower()
        if "@" not in stripped:
            raise ValueError("email must contain '@'")
        return stripped


class UserResponse(BaseModel):
    id: str
    email: str
    first_name: Optional[str]
    last_name: Optional[str]
    profile: Dict[str, object] = Field(default_factory=dict)


def _user_to_response(user: User) -> UserResponse:
    return UserResponse(
        id=user.id,
        email=user.email,
        first_name=user.first_name,
        last_name=user.last_name,
        profile=dict(user.profile),
    )


_ERROR_STATUS = {
    NotFound: status.HTTP_404_NOT_FOUND,
    InvalidCredentials: status.HTTP_401_UNAUTHORIZED,
    Unauthorized: status.HTTP_401_UNAUTHORIZED,
    ValidationFailure: status.HTTP_400_BAD_REQUEST,
    StoreFailure: status.HTTP_500_INTERNAL_SERVER_ERROR,
    CredentialFailure: status.HTTP_500_INTERNAL_SERVER_ERROR,
}


def _status_for(exc: AccountServiceError) -> int:
    for error_type, status_code in _ERROR_STATUS.items():
        if isinstance(exc, error_type):
            return status_code
    return status.HTTP_500_INTERNAL_SERVER_ERROR


def _register_error_handlers(app: FastAPI) -> None:
    @app.exception_handler(AccountServiceError)
    async def _handle_account_error(request: Request, exc: AccountServiceError) -> JSONResponse:
        status_code = _status_for(exc)
        if status_code >= 500:
            logger.error("%s %s failed: %s", request.method, request.url.path, exc)
            detail = "Internal server error"
        else:
            detail = str(exc)
        headers = {"WWW-Authenticate": "Bearer"} if status_code == status.HTTP_401_UNAUTHORIZED else None
        return JSONResponse(status_code=status_code, content={"detail": detail}, headers=headers)


def create_router(accounts: AccountService) -> APIRouter:
    router = APIRouter()
    bearer = BearerToken()

    @router.post("/auth/login", response_model=LoginResponse, tags=["auth"])
    def login(payload: LoginRequest) -> LoginResponse:
        try:
            token = accounts.login(payload.email, payload.password)
        except InvalidCredentials:
            logger.info("Rejected login for %s", payload.email)
            raise
        return LoginResponse(token=token)

    @router.get("/users", response_model=List[UserResponse], tags=["users"])
    def list_users() -> List[UserResponse]:
        return [_user_to_response(user) for user in accounts.list_users()]

    @router.get("/users/{user_id}", response_model=UserResponse, tags=["users"])
    def get_user(user_id: str) -> UserResponse:
        return _user_to_response(accounts.get_user(user_id))

    @router.post(
        "/users",
        response_model=UserResponse,
        status_code=status.HTTP_201_CREATED,
        tags=["users"],
    )
    def create_user(payload: CreateUserRequest) -> UserResponse:
        user = accounts.create_user(
            NewUser(
                email=payload.email,
                password=payload.password,
                first_name=payload.first_name,
                last_name=payload.last_name,
                profile=dict(payload.profile),
            )
        )
        logger.info("Registered user %s (%s)", user.id, user.email)
        return _user_to_response(user)

    @router.put("/users/{user_id}", response_model=UserResponse, tags=["users"])
    def update_user(
        user_id: str,
        payload: UpdateUserRequest,
        token: Optional[str] = Depends(bearer),
    ) -> UserResponse:
        user = accounts.update_user(
            user_id,
            UserUpdate(
                email=payload.email,
                password=payload.password,
                first_name=payload.first_name,
                last_name=payload.last_name,
                profile=payload.profile,
            ),
            token,
        )
        logger.info("Updated user %s", user.id)
        return _user_to_response(user)

    @router.delete("/users/{user_id}", status_code=status.HTTP_204_NO_CONTENT, tags=["users"])
    def delete_user(user_id: str, token: Optional[str] = Depends(bearer)) -> Response:
        accounts.delete_user(user_id, token)
        logger.info("Deleted user %s", user_id)
        return Response(status_code=status.HTTP_204_NO_CONTENT)

    return router


def create_app(*, accounts: AccountService) -> FastAPI:
    """Create the HTTP application around an existing :class:`AccountService`."""

    app = FastAPI(title="User Account Service")
    app.state.accounts = accounts
    _register_error_handlers(app)
    app.include_router(create_router(accounts), prefix="/api/v1")

    @app.get("/health", include_in_schema=False)
    def health() -> Dict[str, str]:
        return {"status": "ok"}

    return app


__all__ = ["create_app", "create_router"]
