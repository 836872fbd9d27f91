"""
Guide2Umrah Backend: Offering Service (Packages & Services)
=============================================================

What:  CRUD for the agency's offerings: upload photos → write row → respond.
How:   One OfferingService class, instantiated twice: for Package rows
       (folder `umrah-packages`) and for Service rows (`umrah-services`).
Who:   The packages and services routers.

Create Flow (POST /api/packages):
    ┌──────────┐    ┌─────────────┐    ┌──────────────┐    ┌──────────┐
    │  Form +  │───▶│  Validate   │───▶│ Image host   │───▶│  Insert  │
    │  photos  │    │  fields     │    │ upload_many  │    │  (DB)    │
    └──────────┘    └─────────────┘    └──────────────┘    └──────────┘

    On failure:
    - Invalid fields / no photo → ValidationError, nothing uploaded
    - Upload fails              → photos of this request removed, error propagates
    - Insert fails              → uploaded photos removed, DatabaseError

Update and delete return the URLs that are no longer referenced; the router
removes them at the image host in a background task once the transaction is
committed. Concurrent edits are last-write-wins.
"""

import logging
from typing import Any, List, Mapping, Optional, Sequence, Tuple, Type
from uuid import UUID

from pydantic import BaseModel
from pydantic import ValidationError as PydanticValidationError
from sqlalchemy import desc, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from guide2umrah.config import settings
from guide2umrah.exceptions import DatabaseError, NotFoundError, ValidationError
from guide2umrah.models.offering import Package, Service
from guide2umrah.schemas.offering import (
    OfferingCreatedResponse,
    PackageFields,
    PackageResponse,
    ServiceFields,
    ServiceResponse,
)
from guide2umrah.services.image_service import ImageService, PhotoUpload, image_service

logger = logging.getLogger(__name__)


def to_validation_error(exc: PydanticValidationError) -> ValidationError:
    """Turns the first pydantic error into our 400 with a readable Dutch message."""
    errors = exc.errors()
    first = errors[0] if errors else {}
    field = ".".join(str(part) for part in first.get("loc", ())) or None
    message = str(first.get("msg", "Ongeldige invoer."))
    if message.startswith("Value error, "):
        message = message[len("Value error, "):]
    elif field:
        message = f"Ongeldige waarde voor '{field}': {message}"
    return ValidationError(
        message=message,
        field=field,
        context={"errors": [
            {"field": ".".join(str(p) for p in e.get("loc", ())), "message": str(e.get("msg"))}
            for e in errors
        ]},
    )


class OfferingService:
    """
    Business logic for one offering table.

    Error Handling Strategy:
        Application errors (ValidationError, NotFoundError, ImageStorageError)
        propagate as-is; SQLAlchemy failures are wrapped in DatabaseError.
    """

    def __init__(
        self,
        model: Type[Any],
        fields_schema: Type[BaseModel],
        response_schema: Type[BaseModel],
        folder: str,
        resource: str,
        created_message: str,
        deleted_message: str,
        images: Optional[ImageService] = None,
    ):
        self.model = model
        self.fields_schema = fields_schema
        self.response_schema = response_schema
        self.folder = folder
        self.resource = resource
        self.created_message = created_message
        self.deleted_message = deleted_message
        self._images = images

    @property
    def images(self) -> ImageService:
        # Resolved late so tests can patch the module-level image_service
        return self._images or image_service

    def parse_fields(self, data: Mapping[str, Any]) -> BaseModel:
        try:
            return self.fields_schema.model_validate(dict(data))
        except PydanticValidationError as e:
            raise to_validation_error(e)

    def to_response(self, row: Any) -> BaseModel:
        return self.response_schema.model_validate(row)

    async def _get_row(self, db: AsyncSession, offering_id: UUID) -> Any:
        try:
            row = await db.get(self.model, offering_id)
        except SQLAlchemyError as e:
            logger.error("Database error fetching %s %s: %s", self.resource, offering_id, str(e))
            raise DatabaseError(context={"resource_id": str(offering_id)})
        if row is None:
            raise NotFoundError(resource=self.resource, resource_id=str(offering_id))
        return row

    async def list(self, db: AsyncSession) -> List[BaseModel]:
        """All offerings, newest first. The catalogue is small; no pagination."""
        try:
            result = await db.execute(select(self.model).order_by(desc(self.model.created_at)))
            rows = list(result.scalars().all())
        except SQLAlchemyError as e:
            logger.error("Database error listing %s: %s", self.resource, str(e), exc_info=True)
            raise DatabaseError(context={"error_type": type(e).__name__})
        return [self.to_response(row) for row in rows]

    async def get(self, db: AsyncSession, offering_id: UUID) -> BaseModel:
        return self.to_response(await self._get_row(db, offering_id))

    async def create(
        self,
        db: AsyncSession,
        data: Mapping[str, Any],
        photos: Sequence[PhotoUpload],
    ) -> OfferingCreatedResponse:
        """
        Validate → upload photos → insert.

        Raises:
            ValidationError: bad field or no photo (→ 400)
            ImageStorageError: image host failed (→ 502)
            DatabaseError: insert failed; uploaded photos are removed (→ 500)
        """
        fields = self.parse_fields(data)
        if not photos:
            raise ValidationError(message="Foto is vereist.", field="photos")

        urls = await self.images.upload_many(photos, self.folder)

        row = self.model(**fields.model_dump(), photos=urls)
        try:
            db.add(row)
            await db.flush()
        except SQLAlchemyError as e:
            logger.error("Failed to insert %s: %s", self.resource, str(e), exc_info=True)
            await self.images.delete_many(urls)
            raise DatabaseError(context={"error_type": type(e).__name__})

        logger.info("%s %s created with %d photo(s)", self.resource, row.id, len(urls))
        return OfferingCreatedResponse(
            message=self.created_message,
            id=row.id,
            url=urls[0],
            urls=urls,
        )

    async def update(
        self,
        db: AsyncSession,
        offering_id: UUID,
        data: Mapping[str, Any],
        photos: Optional[Sequence[PhotoUpload]] = None,
    ) -> Tuple[BaseModel, List[str]]:
        """
        Replace the text fields; replace the photo list only when new photos are sent.

        Returns:
            (updated offering, photo URLs no longer referenced)
        """
        row = await self._get_row(db, offering_id)
        fields = self.parse_fields(data)

        new_urls: List[str] = []
        if photos:
            new_urls = await self.images.upload_many(photos, self.folder)

        stale_urls: List[str] = []
        try:
            for name, value in fields.model_dump().items():
                setattr(row, name, value)
            if new_urls:
                stale_urls = list(row.photos or [])
                row.photos = new_urls
            await db.flush()
        except SQLAlchemyError as e:
            logger.error("Failed to update %s %s: %s", self.resource, offering_id, str(e))
            await self.images.delete_many(new_urls)
            raise DatabaseError(context={"resource_id": str(offering_id)})

        logger.info("%s %s updated", self.resource, offering_id)
        return self.to_response(row), stale_urls

    async def delete(self, db: AsyncSession, offering_id: UUID) -> Tuple[str, List[str]]:
        """
        Returns:
            (confirmation message, photo URLs to remove from the image host)
        """
        row = await self._get_row(db, offering_id)
        stale_urls = list(row.photos or [])
        try:
            await db.delete(row)
            await db.flush()
        except SQLAlchemyError as e:
            logger.error("Failed to delete %s %s: %s", self.resource, offering_id, str(e))
            raise DatabaseError(context={"resource_id": str(offering_id)})

        logger.info("%s %s deleted", self.resource, offering_id)
        return self.deleted_message, stale_urls


package_service = OfferingService(
    model=Package,
    fields_schema=PackageFields,
    response_schema=PackageResponse,
    folder=settings.package_image_folder,
    resource="Pakket",
    created_message="Pakket succesvol toegevoegd!",
    deleted_message="Pakket succesvol verwijderd.",
)

service_service = OfferingService(
    model=Service,
    fields_schema=ServiceFields,
    response_schema=ServiceResponse,
    folder=settings.service_image_folder,
    resource="Dienst",
    created_message="Dienst succesvol toegevoegd!",
    deleted_message="Dienst succesvol verwijderd.",
)
