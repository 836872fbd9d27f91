"""
Guide2Umrah Backend: Service Route Handlers
=============================================

What:  CRUD for the agency's extra services (visa, transfers, ...) under
       /api/services. Same contract as /api/packages without the itinerary.
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
from guide2umrah.schemas.offering import OfferingCreatedResponse, ServiceResponse
from guide2umrah.services.image_service import PhotoUpload, image_service
from guide2umrah.services.offering_service import service_service

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api", tags=["Services"])


def service_form(
    name: Optional[str] = Form(None),
    description: Optional[str] = Form(None),
    price: Optional[str] = Form(None, description="Price in euro"),
) -> Dict[str, Any]:
    values = {"name": name, "description": description, "price": price}
    return {key: value for key, value in values.items() if value is not None}


@router.get(
    "/services",
    response_model=List[ServiceResponse],
    responses={500: {"description": "Server error", "model": ErrorResponse}},
    summary="List all services, newest first",
)
async def list_services(
    response: Response,
    db: AsyncSession = Depends(get_db_session),
) -> List[ServiceResponse]:
    services = await service_service.list(db)
    response.headers["X-Total-Count"] = str(len(services))
    return services


@router.get(
    "/services/{service_id}",
    response_model=ServiceResponse,
    responses={404: {"description": "Service not found", "model": ErrorResponse}},
    summary="Get a single service",
)
async def get_service(
    service_id: UUID,
    db: AsyncSession = Depends(get_db_session),
) -> ServiceResponse:
    return await service_service.get(db, service_id)


@router.post(
    "/services",
    status_code=201,
    response_model=OfferingCreatedResponse,
    responses={
        400: {"description": "Invalid field, missing or unsupported photo", "model": ErrorResponse},
        401: {"description": "Missing or invalid bearer token", "model": ErrorResponse},
        502: {"description": "Image host unavailable", "model": ErrorResponse},
    },
    summary="Add a service",
)
async def create_service(
    fields: Dict[str, Any] = Depends(service_form),
    photos: List[PhotoUpload] = Depends(photo_uploads),
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db_session),
) -> OfferingCreatedResponse:
    logger.info("User %s adds a service with %d photo(s)", user.id, len(photos))
    return await service_service.create(db, fields, photos)


@router.put(
    "/services/{service_id}",
    response_model=ServiceResponse,
    responses={
        400: {"description": "Invalid field or photo", "model": ErrorResponse},
        401: {"description": "Missing or invalid bearer token", "model": ErrorResponse},
        404: {"description": "Service not found", "model": ErrorResponse},
    },
    summary="Replace a service; new photos replace the old ones",
)
async def update_service(
    service_id: UUID,
    background_tasks: BackgroundTasks,
    fields: Dict[str, Any] = Depends(service_form),
    photos: List[PhotoUpload] = Depends(photo_uploads),
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db_session),
) -> ServiceResponse:
    updated, stale_urls = await service_service.update(db, service_id, fields, photos)
    if stale_urls:
        background_tasks.add_task(image_service.delete_many, stale_urls)
    return updated


@router.delete(
    "/services/{service_id}",
    response_model=MessageResponse,
    responses={
        401: {"description": "Missing or invalid bearer token", "model": ErrorResponse},
        404: {"description": "Service not found", "model": ErrorResponse},
    },
    summary="Delete a service and its photos",
)
async def delete_service(
    service_id: UUID,
    background_tasks: BackgroundTasks,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db_session),
) -> MessageResponse:
    message, stale_urls = await service_service.delete(db, service_id)
    if stale_urls:
        background_tasks.add_task(image_service.delete_many, stale_urls)
    return MessageResponse(message=message)
