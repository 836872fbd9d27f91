"""
Guide2Umrah Backend: Route Dependencies
=========================================

What:  `get_current_user`, the guard on every mutating endpoint, and
       `photo_uploads`, which reads the multipart `photos` (or `photo`) field.
How:   get_current_user reads `Authorization: Bearer <token>`, verifies the
       JWT and loads the user it names. Any failure is an
       AuthenticationError (→ 401).
"""

import logging
from typing import List, Optional

from fastapi import Depends, File, UploadFile
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy.ext.asyncio import AsyncSession

from guide2umrah.database import get_db_session
from guide2umrah.exceptions import AuthenticationError
from guide2umrah.models.user import User
from guide2umrah.services.auth_service import auth_service, decode_access_token
from guide2umrah.services.image_service import PhotoUpload

logger = logging.getLogger(__name__)

# auto_error=False: a missing header goes through our 401 handler, not FastAPI's 403
bearer_scheme = HTTPBearer(auto_error=False)


async def get_current_user(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(bearer_scheme),
    db: AsyncSession = Depends(get_db_session),
) -> User:
    if credentials is None or not credentials.credentials:
        raise AuthenticationError(message="Inloggen vereist.")

    user_id = decode_access_token(credentials.credentials)
    user = await auth_service.get_user(db, user_id)
    if user is None:
        logger.info("Token for removed user %s rejected", user_id)
        raise AuthenticationError(message="Ongeldig token.")
    return user


async def photo_uploads(
    photos: Optional[List[UploadFile]] = File(
        None,
        description="Photos (PNG, JPG, JPEG or WEBP, max 10MB each)",
    ),
    photo: Optional[UploadFile] = File(
        None,
        description="Single photo field used by older dashboard forms",
    ),
) -> List[PhotoUpload]:
    """
    Reads every uploaded photo into memory and closes the spooled files.

    Accepts both the multipart `photos` list and the single `photo` field;
    a `photo` sent alongside `photos` is appended after them.
    Empty file inputs (a form submitted without choosing a file) are skipped.
    """
    files: List[UploadFile] = list(photos or [])
    if photo is not None:
        files.append(photo)

    uploads: List[PhotoUpload] = []
    for upload in files:
        try:
            content = await upload.read()
            if not upload.filename and not content:
                continue
            uploads.append(
                PhotoUpload(
                    filename=upload.filename or "",
                    content=content,
                    content_length=upload.size,
                )
            )
        finally:
            await upload.close()

    if uploads:
        logger.info(
            "Received %d photo(s), %d bytes total",
            len(uploads),
            sum(len(u.content) for u in uploads),
        )
    return uploads
