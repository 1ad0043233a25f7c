"""
TrialDoc Backend - Auth Routes
================================

    POST /auth/register   create a user (201)
    POST /auth/login      exchange credentials for a bearer token
    GET  /auth/verify     echo the identity of a valid bearer token
"""

import logging

from fastapi import APIRouter, Depends, status

from trialdoc.database import ConnectionManager, get_connection_manager
from trialdoc.schemas.auth import (
    LoginRequest,
    RegisterRequest,
    RegisterResponse,
    TokenResponse,
    UserPublic,
    VerifyResponse,
)
from trialdoc.schemas.common import ErrorResponse
from trialdoc.security import AuthenticatedUser, require_user
from trialdoc.services.auth_service import AuthService

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/auth", tags=["Auth"])


def get_auth_service(
    manager: ConnectionManager = Depends(get_connection_manager),
) -> AuthService:
    return AuthService(manager)


@router.post(
    "/register",
    response_model=RegisterResponse,
    status_code=status.HTTP_201_CREATED,
    responses={
        400: {"description": "Missing fields or username taken", "model": ErrorResponse},
        500: {"description": "Server error", "model": ErrorResponse},
    },
    summary="Register a user",
)
async def register(
    body: RegisterRequest,
    auth_service: AuthService = Depends(get_auth_service),
) -> RegisterResponse:
    user_id = await auth_service.register(body.username, body.password)
    return RegisterResponse(user_id=user_id)


@router.post(
    "/login",
    response_model=TokenResponse,
    responses={
        400: {"description": "Missing fields", "model": ErrorResponse},
        401: {"description": "Invalid credentials", "model": ErrorResponse},
        500: {"description": "Server error", "model": ErrorResponse},
    },
    summary="Log in and receive a bearer token",
)
async def login(
    body: LoginRequest,
    auth_service: AuthService = Depends(get_auth_service),
) -> TokenResponse:
    return await auth_service.login(body.username, body.password)


@router.get(
    "/verify",
    response_model=VerifyResponse,
    responses={
        401: {"description": "No token", "model": ErrorResponse},
        403: {"description": "Invalid or expired token", "model": ErrorResponse},
    },
    summary="Verify a bearer token",
)
async def verify(user: AuthenticatedUser = Depends(require_user)) -> VerifyResponse:
    return VerifyResponse(valid=True, user=UserPublic(id=user.id, username=user.username))
