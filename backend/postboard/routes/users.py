"""
Postboard Backend - Registration Route
======================================

What:  POST /api/register and its alias POST /api/users.

Check Order:
    1. Payload validation (FastAPI/pydantic)              → 422
    2. E-mail not already registered                      → 422 on `email`
    3. Registration cap (inside UserService.create)       → 500
"""

from fastapi import APIRouter, Depends, status
from sqlalchemy.ext.asyncio import AsyncSession

from postboard.database import get_db_session
from postboard.schemas.common import ErrorResponse
from postboard.schemas.user import UserCreate, UserCreatedResponse, UserResponse
from postboard.services.user_service import user_service

router = APIRouter(prefix="/api", tags=["Users"])

REGISTER_RESPONSES = {
    422: {"description": "Invalid data or e-mail already taken", "model": ErrorResponse},
    500: {"description": "Maximum number of users reached", "model": ErrorResponse},
}


@router.post(
    "/users",
    response_model=UserCreatedResponse,
    status_code=status.HTTP_201_CREATED,
    responses=REGISTER_RESPONSES,
    summary="Register a user (alias of /api/register)",
)
@router.post(
    "/register",
    response_model=UserCreatedResponse,
    status_code=status.HTTP_201_CREATED,
    responses=REGISTER_RESPONSES,
    summary="Register a user",
)
async def register(
    payload: UserCreate,
    db: AsyncSession = Depends(get_db_session),
) -> UserCreatedResponse:
    await user_service.ensure_email_available(db, payload.email)
    user = await user_service.create(db, payload)
    return UserCreatedResponse(data=UserResponse.model_validate(user))
