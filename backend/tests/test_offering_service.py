"""
Guide2Umrah Backend: Offering Service Unit Tests
==================================================

What:  Create/update/delete orchestration of OfferingService and the form
       parsing rules of the offering schemas.
How:   Mock DB sessions and a mock ImageService (no real DB or image host).

What we test:
    ✅ Create: validate → upload → insert, and photo cleanup when the insert fails
    ✅ Create without a photo or with a bad field uploads nothing
    ✅ Update replaces photos only when new ones are sent
    ✅ Unknown ids raise NotFoundError
    ✅ Price and destination parsing
"""

import uuid
from datetime import datetime, timezone
from unittest.mock import AsyncMock, MagicMock

import pytest
from pydantic import ValidationError as SchemaError
from sqlalchemy.exc import OperationalError

from guide2umrah.exceptions import DatabaseError, ImageStorageError, NotFoundError, ValidationError
from guide2umrah.models.offering import Package, Service
from guide2umrah.schemas.offering import PackageFields, PackageResponse, ServiceFields, ServiceResponse, parse_price
from guide2umrah.services.image_service import PhotoUpload
from guide2umrah.services.offering_service import OfferingService, to_validation_error

URLS = ["https://cdn.test/umrah-packages/1.jpg", "https://cdn.test/umrah-packages/2.jpg"]

PACKAGE_FORM = {
    "name": "Umrah Ramadan 2026",
    "description": "Twee weken Makkah en Madinah",
    "price": "2299,-",
    "date": "27/02 - 08/03",
    "destinations": '[{"city": "Makkah", "nights": 7}, {"city": "Madinah", "nights": 5, "hotel": "Pullman"}]',
}


def _images(urls=URLS):
    images = MagicMock()
    images.upload_many = AsyncMock(return_value=list(urls))
    images.delete_many = AsyncMock()
    return images


def _package_service(images):
    return OfferingService(
        model=Package,
        fields_schema=PackageFields,
        response_schema=PackageResponse,
        folder="umrah-packages",
        resource="Pakket",
        created_message="Pakket succesvol toegevoegd!",
        deleted_message="Pakket succesvol verwijderd.",
        images=images,
    )


def _stored_package(**overrides):
    now = datetime.now(timezone.utc)
    values = dict(
        id=uuid.uuid4(),
        name="Umrah Winter",
        description="Tien dagen",
        price=1399.5,
        date="01/12 - 10/12",
        destinations=[{"city": "Makkah", "nights": 10, "hotel": None}],
        photos=["https://cdn.test/umrah-packages/old.jpg"],
        created_at=now,
        updated_at=now,
    )
    values.update(overrides)
    return Package(**values)


def _assign_id_on_flush(session):
    """The primary key default only fires on a real INSERT."""
    async def flush():
        row = session.add.call_args.args[0]
        if row.id is None:
            row.id = uuid.uuid4()
    session.flush = AsyncMock(side_effect=flush)


@pytest.fixture
def photos(sample_image_bytes):
    return [PhotoUpload("cover.jpg", sample_image_bytes), PhotoUpload("hotel.jpg", sample_image_bytes)]


class TestCreate:

    @pytest.mark.asyncio
    async def test_create_uploads_then_inserts(self, mock_db_session, photos):
        _assign_id_on_flush(mock_db_session)
        images = _images()
        service = _package_service(images)

        result = await service.create(mock_db_session, PACKAGE_FORM, photos)

        images.upload_many.assert_awaited_once_with(photos, "umrah-packages")
        row = mock_db_session.add.call_args.args[0]
        assert isinstance(row, Package)
        assert row.price == 2299.0
        assert row.photos == URLS
        assert row.destinations[1] == {"city": "Madinah", "nights": 5, "hotel": "Pullman"}
        assert result.message == "Pakket succesvol toegevoegd!"
        assert result.url == URLS[0]
        assert result.urls == URLS

    @pytest.mark.asyncio
    async def test_create_without_photo(self, mock_db_session):
        images = _images()
        with pytest.raises(ValidationError, match="Foto is vereist."):
            await _package_service(images).create(mock_db_session, PACKAGE_FORM, [])
        images.upload_many.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_invalid_field_uploads_nothing(self, mock_db_session, photos):
        images = _images()
        form = dict(PACKAGE_FORM, price="gratis")
        with pytest.raises(ValidationError) as exc_info:
            await _package_service(images).create(mock_db_session, form, photos)
        assert exc_info.value.field == "price"
        images.upload_many.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_missing_field_reported(self, mock_db_session, photos):
        form = {k: v for k, v in PACKAGE_FORM.items() if k != "name"}
        with pytest.raises(ValidationError) as exc_info:
            await _package_service(_images()).create(mock_db_session, form, photos)
        assert exc_info.value.field == "name"

    @pytest.mark.asyncio
    async def test_insert_failure_removes_uploaded_photos(self, mock_db_session, photos):
        images = _images()
        mock_db_session.flush.side_effect = OperationalError("INSERT", {}, Exception("db down"))

        with pytest.raises(DatabaseError):
            await _package_service(images).create(mock_db_session, PACKAGE_FORM, photos)
        images.delete_many.assert_awaited_once_with(URLS)

    @pytest.mark.asyncio
    async def test_upload_failure_propagates_without_insert(self, mock_db_session, photos):
        images = _images()
        images.upload_many.side_effect = ImageStorageError()

        with pytest.raises(ImageStorageError):
            await _package_service(images).create(mock_db_session, PACKAGE_FORM, photos)
        mock_db_session.add.assert_not_called()


class TestReadUpdateDelete:

    @pytest.mark.asyncio
    async def test_get_unknown_id(self, mock_db_session):
        mock_db_session.get.return_value = None
        with pytest.raises(NotFoundError, match="Pakket met ID"):
            await _package_service(_images()).get(mock_db_session, uuid.uuid4())

    @pytest.mark.asyncio
    async def test_update_without_photos_keeps_list(self, mock_db_session):
        row = _stored_package()
        mock_db_session.get.return_value = row
        images = _images()

        updated, stale = await _package_service(images).update(mock_db_session, row.id, PACKAGE_FORM)

        assert updated.name == "Umrah Ramadan 2026"
        assert updated.photos == ["https://cdn.test/umrah-packages/old.jpg"]
        assert stale == []
        images.upload_many.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_update_with_photos_replaces_list(self, mock_db_session, photos):
        row = _stored_package()
        mock_db_session.get.return_value = row

        updated, stale = await _package_service(_images()).update(mock_db_session, row.id, PACKAGE_FORM, photos)

        assert updated.photos == URLS
        assert stale == ["https://cdn.test/umrah-packages/old.jpg"]

    @pytest.mark.asyncio
    async def test_update_unknown_id(self, mock_db_session):
        mock_db_session.get.return_value = None
        with pytest.raises(NotFoundError):
            await _package_service(_images()).update(mock_db_session, uuid.uuid4(), PACKAGE_FORM)

    @pytest.mark.asyncio
    async def test_delete_returns_photos_to_remove(self, mock_db_session):
        row = _stored_package()
        mock_db_session.get.return_value = row

        message, stale = await _package_service(_images()).delete(mock_db_session, row.id)

        assert message == "Pakket succesvol verwijderd."
        assert stale == row.photos
        mock_db_session.delete.assert_awaited_once_with(row)

    @pytest.mark.asyncio
    async def test_delete_unknown_id(self, mock_db_session):
        mock_db_session.get.return_value = None
        with pytest.raises(NotFoundError):
            await _package_service(_images()).delete(mock_db_session, uuid.uuid4())

    @pytest.mark.asyncio
    async def test_service_offering_has_no_itinerary(self, mock_db_session, photos):
        _assign_id_on_flush(mock_db_session)
        service = OfferingService(
            model=Service,
            fields_schema=ServiceFields,
            response_schema=ServiceResponse,
            folder="umrah-services",
            resource="Dienst",
            created_message="Dienst succesvol toegevoegd!",
            deleted_message="Dienst succesvol verwijderd.",
            images=_images(),
        )
        form = {"name": "Visum", "description": "Aanvraag Umrah-visum", "price": "150"}

        result = await service.create(mock_db_session, form, photos)

        row = mock_db_session.add.call_args.args[0]
        assert isinstance(row, Service)
        assert row.price == 150.0
        assert result.message == "Dienst succesvol toegevoegd!"


class TestFormParsing:

    @pytest.mark.parametrize("raw, expected", [
        ("2299", 2299.0),
        ("2299,-", 2299.0),
        ("1.399,50", 1399.5),
        ("1.399,-", 1399.0),
        ("1.399", 1399.0),
        ("12.500,-", 12500.0),
        ("1.250.000", 1250000.0),
        ("€ 1399.50", 1399.5),
        ("1.5", 1.5),
        ("0", 0.0),
        (150, 150.0),
        ("99.999.999,99", 99_999_999.99),
    ])
    def test_parse_price(self, raw, expected):
        assert parse_price(raw) == expected

    @pytest.mark.parametrize("raw", ["100000000", "100.000.000,-", 1e9])
    def test_parse_price_rejects_amount_too_large_for_column(self, raw):
        with pytest.raises(ValueError, match="te hoog"):
            parse_price(raw)

    def test_too_large_price_is_a_field_error(self):
        with pytest.raises(SchemaError) as exc_info:
            ServiceFields.model_validate({"name": "Visum", "description": "x", "price": "250.000.000"})
        error = to_validation_error(exc_info.value)
        assert error.context["field"] == "price"
        assert error.message == "Prijs is te hoog."

    @pytest.mark.parametrize("raw", ["", "gratis", "-5", "nan", "inf"])
    def test_parse_price_rejects(self, raw):
        with pytest.raises(ValueError):
            parse_price(raw)

    def test_empty_destinations_become_empty_list(self):
        fields = PackageFields.model_validate(dict(PACKAGE_FORM, destinations=""))
        assert fields.destinations == []

    def test_destination_nights_must_be_positive(self):
        with pytest.raises(SchemaError):
            PackageFields.model_validate(dict(PACKAGE_FORM, destinations='[{"city": "Makkah", "nights": 0}]'))

    def test_destinations_must_be_a_list(self):
        with pytest.raises(SchemaError):
            PackageFields.model_validate(dict(PACKAGE_FORM, destinations='{"city": "Makkah"}'))
