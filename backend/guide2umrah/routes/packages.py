"""
Guide2Umrah Backend: Package Route Handlers
=============================================

What:  CRUD for Umrah travel packages under /api/packages.
How:   Multipart form in (text fields + `photos`), PackageService does the
       work, JSON out. Reads are public; writes need a bearer token.
Who:   The public site (reads) and the admin dashboard (writes).

Request Flow (create):
    1. FastAPI parses the multipart body; photo_uploads reads the files
    2. get_current_user verifies the bearer token
    3. package_service.create validates → uploads → inserts
    4. 201 with the new id and photo URLs

Photos that are no longer referenced after an update or delete are removed
from the image host in a background task, after the response is sent.
"""

import logging
from typing import Any, Dict, List, Optional
from uuid import UUID

from fastapi import APIRouter, BackgroundTasks, Depends, Form, Response
from sqlalchemy.ext.asyncio import AsyncSession

from guide2umrah.database import get_db_session
from guide2umrah.dependencies import get_current_user, photo_uploads
from guide2umrah.models.user import User
from guide2umrah.schemas.common import ErrorResponse, MessageResponse
from guide2umrah.schemas.offering import OfferingCreatedResponse, PackageResponse
from guide2umrah.services.image_service import PhotoUpload, image_service
from guide2umrah.services.offering_service import package_service

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api", tags=["Packages"])


def package_form(
    name: Optional[str] = Form(None, description="Package title"),
    description: Optional[str] = Form(None),
    price: Optional[str] = Form(None, description="Price in euro, e.g. 2299 or 2299,-"),
    date: Optional[str] = Form(None, description="Travel dates as text, e.g. 27/02 - 08/03"),
    destinations: Optional[str] = Form(
        None,
        description='JSON list, e.g. [{"city": "Makkah", "nights": 5, "hotel": "..."}]',
    ),
) -> Dict[str, Any]:
    # Missing fields are left out so validation reports them as required
    values = {
        "name": name,
        "description": description,
        "price": price,
        "date": date,
        "destinations": destinations,
    }
    return {key: value for key, value in values.items() if value is not None}


@router.get(
    "/packages",
    response_model=List[PackageResponse],
    responses={500: {"description": "Server error", "model": ErrorResponse}},
    summary="List all packages, newest first",
)
async def list_packages(
    response: Response,
    db: AsyncSession = Depends(get_db_session),
) -> List[PackageResponse]:
    packages = await package_service.list(db)
    response.headers["X-Total-Count"] = str(len(packages))
    return packages


@router.get(
    "/packages/{package_id}",
    response_model=PackageResponse,
    responses={404: {"description": "Package not found", "model": ErrorResponse}},
    summary="Get a single package",
)
async def get_package(
    package_id: UUID,
    db: AsyncSession = Depends(get_db_session),
) -> PackageResponse:
    return await package_service.get(db, package_id)


@router.post(
    "/packages",
    status_code=201,
    response_model=OfferingCreatedResponse,
    responses={
        400: {"description": "Invalid field, missing or unsupported photo", "model": ErrorResponse},
        401: {"description": "Missing or invalid bearer token", "model": ErrorResponse},
        502: {"description": "Image host unavailable", "model": ErrorResponse},
    },
    summary="Add a package",
)
async def create_package(
    fields: Dict[str, Any] = Depends(package_form),
    photos: List[PhotoUpload] = Depends(photo_uploads),
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db_session),
) -> OfferingCreatedResponse:
    logger.info("User %s adds a package with %d photo(s)", user.id, len(photos))
    return await package_service.create(db, fields, photos)


@router.put(
    "/packages/{package_id}",
    response_model=PackageResponse,
    responses={
        400: {"description": "Invalid field or photo", "model": ErrorResponse},
        401: {"description": "Missing or invalid bearer token", "model": ErrorResponse},
        404: {"description": "Package not found", "model": ErrorResponse},
        502: {"description": "Image host unavailable", "model": ErrorResponse},
    },
    summary="Replace a package; new photos replace the old ones",
)
async def update_package(
    package_id: UUID,
    background_tasks: BackgroundTasks,
    fields: Dict[str, Any] = Depends(package_form),
    photos: List[PhotoUpload] = Depends(photo_uploads),
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db_session),
) -> PackageResponse:
    updated, stale_urls = await package_service.update(db, package_id, fields, photos)
    if stale_urls:
        background_tasks.add_task(image_service.delete_many, stale_urls)
    return updated


@router.delete(
    "/packages/{package_id}",
    response_model=MessageResponse,
    responses={
        401: {"description": "Missing or invalid bearer token", "model": ErrorResponse},
        404: {"description": "Package not found", "model": ErrorResponse},
    },
    summary="Delete a package and its photos",
)
async def delete_package(
    package_id: UUID,
    background_tasks: BackgroundTasks,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db_session),
) -> MessageResponse:
    message, stale_urls = await package_service.delete(db, package_id)
    if stale_urls:
        background_tasks.add_task(image_service.delete_many, stale_urls)
    return MessageResponse(message=message)
