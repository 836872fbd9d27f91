"""
Guide2Umrah Backend: Authentication Schemas
=============================================

What:  Request/response bodies of POST /api/login.
"""

from pydantic import BaseModel, Field


class LoginRequest(BaseModel):
    """
    Credentials posted by the dashboard login form.

    The email is not format-checked here: an unknown address and a malformed
    one get the same 401, so the endpoint reveals nothing about accounts.
    """
    email: str = Field(min_length=1, max_length=320)
    password: str = Field(min_length=1, max_length=1024)


class TokenResponse(BaseModel):
    """
    Bearer token issued on successful login.

    The dashboard stores `token` and sends it as `Authorization: Bearer <token>`.
    """
    token: str = Field(description="Signed JWT")
    token_type: str = Field(default="bearer")
    expires_in: int = Field(description="Seconds until the token expires")
