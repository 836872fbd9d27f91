"""
Guide2Umrah Backend: Authentication Service
=============================================

What:  Password login for dashboard admins and bearer token handling.
How:   One lookup by email → password hash compare → JWT sign.
       Passwords are hashed with werkzeug.security; tokens are HS256 JWTs
       signed with PyJWT and carry the user id in `sub`.
Who:   POST /api/login, the `get_current_user` dependency and the CLI.

There is no refresh, revocation or lockout: a token is valid until `exp`.
"""

import logging
import uuid
from datetime import datetime, timedelta, timezone
from typing import Optional, Tuple

import jwt
from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession
from werkzeug.security import check_password_hash, generate_password_hash

from guide2umrah.config import settings
from guide2umrah.exceptions import AuthenticationError, DatabaseError, ValidationError
from guide2umrah.models.user import User
from guide2umrah.schemas.auth import TokenResponse

logger = logging.getLogger(__name__)

INVALID_CREDENTIALS = "Ongeldige inloggegevens."


def normalize_email(email: str) -> str:
    return (email or "").strip().lower()


def hash_password(password: str) -> str:
    return generate_password_hash(password)


def verify_password(password_hash: str, password: str) -> bool:
    return check_password_hash(password_hash, password)


def create_access_token(user_id: uuid.UUID, now: Optional[datetime] = None) -> Tuple[str, int]:
    """
    Sign a bearer token for `user_id`.

    Returns:
        (token, expires_in_seconds)
    """
    issued = now or datetime.now(timezone.utc)
    lifetime = timedelta(minutes=settings.jwt_expire_minutes)
    payload = {
        "sub": str(user_id),
        "iat": issued,
        "exp": issued + lifetime,
    }
    token = jwt.encode(payload, settings.jwt_secret, algorithm=settings.jwt_algorithm)
    return token, int(lifetime.total_seconds())


def decode_access_token(token: str) -> uuid.UUID:
    """
    Verify a bearer token and return the user id it was issued for.

    Raises:
        AuthenticationError: expired, forged, malformed, or missing `sub`
    """
    try:
        payload = jwt.decode(
            token,
            settings.jwt_secret,
            algorithms=[settings.jwt_algorithm],
            options={"require": ["exp", "sub"]},
        )
        return uuid.UUID(payload["sub"])
    except jwt.ExpiredSignatureError:
        raise AuthenticationError(message="Sessie verlopen. Log opnieuw in.")
    except (jwt.InvalidTokenError, ValueError) as e:
        raise AuthenticationError(
            message="Ongeldig token.",
            context={"error_type": type(e).__name__},
        )


class AuthService:
    """
    Account lookup and login.

    Error Handling Strategy:
        Unknown email and wrong password raise the same AuthenticationError,
        so responses do not reveal which accounts exist. Database failures
        are wrapped in DatabaseError.
    """

    async def get_user_by_email(self, db: AsyncSession, email: str) -> Optional[User]:
        try:
            result = await db.execute(select(User).where(User.email == normalize_email(email)))
            return result.scalar_one_or_none()
        except SQLAlchemyError as e:
            logger.error("Database error looking up user: %s", str(e))
            raise DatabaseError(context={"error_type": type(e).__name__})

    async def get_user(self, db: AsyncSession, user_id: uuid.UUID) -> Optional[User]:
        try:
            return await db.get(User, user_id)
        except SQLAlchemyError as e:
            logger.error("Database error loading user %s: %s", user_id, str(e))
            raise DatabaseError(context={"error_type": type(e).__name__})

    async def authenticate(self, db: AsyncSession, email: str, password: str) -> TokenResponse:
        """
        Check credentials and issue a token.

        Raises:
            AuthenticationError: unknown email or wrong password (→ 401)
            DatabaseError: lookup failed (→ 500)
        """
        user = await self.get_user_by_email(db, email)
        if user is None:
            logger.info("Login rejected: unknown account")
            raise AuthenticationError(message=INVALID_CREDENTIALS)

        if not verify_password(user.password_hash, password):
            logger.info("Login rejected: wrong password for user %s", user.id)
            raise AuthenticationError(message=INVALID_CREDENTIALS)

        token, expires_in = create_access_token(user.id)
        logger.info("User %s logged in", user.id)
        return TokenResponse(token=token, expires_in=expires_in)

    async def create_user(
        self, db: AsyncSession, email: str, password: str
    ) -> Tuple[User, bool]:
        """
        Create an admin account unless one with this email exists.

        Returns:
            (user, created). An existing account is returned unchanged with
            created=False; its password is NOT overwritten.
        """
        normalized = normalize_email(email)
        if "@" not in normalized:
            raise ValidationError(message="Voer een geldig e-mailadres in.", field="email")
        if not password:
            raise ValidationError(message="Wachtwoord is vereist.", field="password")

        existing = await self.get_user_by_email(db, normalized)
        if existing is not None:
            logger.info("User %s already exists", existing.id)
            return existing, False

        user = User(email=normalized, password_hash=hash_password(password))
        try:
            db.add(user)
            await db.flush()
        except SQLAlchemyError as e:
            logger.error("Failed to create user: %s", str(e))
            raise DatabaseError(context={"error_type": type(e).__name__})

        logger.info("New user account added: %s", user.id)
        return user, True


auth_service = AuthService()
