"""
Guide2Umrah Backend: Login Route
==================================

What:  POST /api/login, exchanges email + password for a bearer token.
Who:   The dashboard login form.

Accounts are created with the CLI (`python -m guide2umrah.cli create-user`);
there is no signup endpoint.
"""

import logging

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from guide2umrah.database import get_db_session
from guide2umrah.schemas.auth import LoginRequest, TokenResponse
from guide2umrah.schemas.common import ErrorResponse
from guide2umrah.services.auth_service import auth_service

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api", tags=["Auth"])


@router.post(
    "/login",
    response_model=TokenResponse,
    responses={
        200: {"description": "Credentials accepted", "model": TokenResponse},
        401: {"description": "Unknown email or wrong password", "model": ErrorResponse},
        422: {"description": "Email or password missing"},
    },
    summary="Log in to the dashboard",
)
async def login(
    body: LoginRequest,
    db: AsyncSession = Depends(get_db_session),
) -> TokenResponse:
    return await auth_service.authenticate(db, body.email, body.password)
