"""
Postboard Backend - Auth Route Handlers
=======================================

What:  Session login, logout and current-user endpoints.
How:   The session is the signed cookie managed by SessionMiddleware; handlers
       hand `request.session` to AuthService, which reads and writes it.
"""

from fastapi import APIRouter, Depends, Request
from sqlalchemy.ext.asyncio import AsyncSession

from postboard.database import get_db_session
from postboard.dependencies import get_current_user
from postboard.models.user import User
from postboard.schemas.common import ErrorResponse, MessageResponse
from postboard.schemas.user import LoginRequest, UserEnvelope, UserResponse
from postboard.services.auth_service import auth_service

router = APIRouter(prefix="/api", tags=["Auth"])

UNAUTHENTICATED = {401: {"description": "Not logged in", "model": ErrorResponse}}


@router.post(
    "/login",
    response_model=UserEnvelope,
    responses={
        401: {"description": "Invalid email or password", "model": ErrorResponse},
        422: {"description": "Malformed credentials", "model": ErrorResponse},
        429: {"description": "Too many login attempts", "model": ErrorResponse},
    },
    summary="Log in with email and password",
)
async def login(
    credentials: LoginRequest,
    request: Request,
    db: AsyncSession = Depends(get_db_session),
) -> UserEnvelope:
    user = await auth_service.login(db, request.session, credentials)
    return UserEnvelope(user=UserResponse.model_validate(user))


@router.get("/me", response_model=UserEnvelope, responses=UNAUTHENTICATED, summary="Current user")
async def me(user: User = Depends(get_current_user)) -> UserEnvelope:
    return UserEnvelope(user=UserResponse.model_validate(user))


@router.post("/logout", response_model=MessageResponse, responses=UNAUTHENTICATED, summary="Log out")
async def logout(
    request: Request,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db_session),
) -> MessageResponse:
    await auth_service.logout(db, request.session, user)
    return MessageResponse(message="Logged out successfully.")
