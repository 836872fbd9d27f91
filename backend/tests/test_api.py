"""
Guide2Umrah Backend: API Endpoint Tests
=========================================

What:  End-to-end HTTP tests through the full middleware chain.
How:   httpx AsyncClient + ASGITransport against the real app, tables in a
       throwaway SQLite file, a stub S3 client and a patched mail sender.

What we test:
    ✅ Login: success, wrong password, unknown email
    ✅ Bearer guard on every mutating endpoint
    ✅ Package/Service create → list → get → update → delete
    ✅ Subscriptions: 201, 400, 409, background confirmation mail
    ✅ Health check and request id header
"""

import json
import uuid
from unittest.mock import AsyncMock, patch

import pytest

from guide2umrah.services.email_service import EmailService

PACKAGE_FORM = {
    "name": "Umrah Ramadan 2026",
    "description": "Twee weken Makkah en Madinah",
    "price": "2299,-",
    "date": "27/02 - 08/03",
    "destinations": json.dumps([
        {"city": "Makkah", "nights": 7, "hotel": "Swissôtel"},
        {"city": "Madinah", "nights": 5},
    ]),
}


def _photos(sample_image_bytes, count=1):
    return [("photos", (f"photo{i}.jpg", sample_image_bytes, "image/jpeg")) for i in range(count)]


class TestHealth:

    @pytest.mark.asyncio
    async def test_health(self, test_client, database):
        response = await test_client.get("/health")
        assert response.status_code == 200
        body = response.json()
        assert body["status"] == "healthy"
        assert body["database"] == "connected"

    @pytest.mark.asyncio
    async def test_request_id_echoed(self, test_client, database):
        response = await test_client.get("/api/packages", headers={"X-Request-ID": "abc12345"})
        assert response.headers["X-Request-ID"] == "abc12345"


class TestLogin:

    @pytest.mark.asyncio
    async def test_login_success(self, test_client, admin_user):
        response = await test_client.post(
            "/api/login",
            json={"email": "Admin@Guide2Umrah.test", "password": "correct horse"},
        )
        assert response.status_code == 200
        body = response.json()
        assert body["token_type"] == "bearer"
        assert body["expires_in"] == 3600
        assert body["token"]

    @pytest.mark.asyncio
    async def test_wrong_password(self, test_client, admin_user):
        response = await test_client.post(
            "/api/login",
            json={"email": "admin@guide2umrah.test", "password": "wrong"},
        )
        assert response.status_code == 401
        assert response.json()["message"] == "Ongeldige inloggegevens."
        assert response.headers["WWW-Authenticate"] == "Bearer"

    @pytest.mark.asyncio
    async def test_unknown_email_looks_the_same(self, test_client, admin_user):
        response = await test_client.post(
            "/api/login",
            json={"email": "nobody@guide2umrah.test", "password": "correct horse"},
        )
        assert response.status_code == 401
        assert response.json()["message"] == "Ongeldige inloggegevens."

    @pytest.mark.asyncio
    async def test_login_token_opens_dashboard_endpoints(self, test_client, admin_user):
        login = await test_client.post(
            "/api/login",
            json={"email": "admin@guide2umrah.test", "password": "correct horse"},
        )
        token = login.json()["token"]
        response = await test_client.get(
            "/api/subscriptions", headers={"Authorization": f"Bearer {token}"}
        )
        assert response.status_code == 200


class TestBearerGuard:

    @pytest.mark.asyncio
    async def test_create_without_token(self, test_client, database, s3_client, sample_image_bytes):
        response = await test_client.post(
            "/api/packages", data=PACKAGE_FORM, files=_photos(sample_image_bytes)
        )
        assert response.status_code == 401
        s3_client.put_object.assert_not_called()

    @pytest.mark.asyncio
    async def test_garbage_token(self, test_client, database):
        response = await test_client.delete(
            f"/api/services/{uuid.uuid4()}", headers={"Authorization": "Bearer nonsense"}
        )
        assert response.status_code == 401

    @pytest.mark.asyncio
    async def test_subscription_list_needs_token(self, test_client, database):
        response = await test_client.get("/api/subscriptions")
        assert response.status_code == 401


class TestPackages:

    @pytest.mark.asyncio
    async def test_full_lifecycle(self, test_client, auth_headers, s3_client, sample_image_bytes):
        # ── Create ────────────────────────────────────────────────────────
        created = await test_client.post(
            "/api/packages",
            data=PACKAGE_FORM,
            files=_photos(sample_image_bytes, count=2),
            headers=auth_headers,
        )
        assert created.status_code == 201
        body = created.json()
        assert body["message"] == "Pakket succesvol toegevoegd!"
        assert len(body["urls"]) == 2
        assert body["url"] == body["urls"][0]
        assert body["url"].startswith("https://cdn.test/test-bucket/umrah-packages/")
        assert s3_client.put_object.call_count == 2
        package_id = body["id"]

        # ── List & Get ────────────────────────────────────────────────────
        listed = await test_client.get("/api/packages")
        assert listed.status_code == 200
        assert listed.headers["X-Total-Count"] == "1"
        assert listed.json()[0]["id"] == package_id

        detail = await test_client.get(f"/api/packages/{package_id}")
        assert detail.status_code == 200
        package = detail.json()
        assert package["price"] == 2299.0
        assert package["date"] == "27/02 - 08/03"
        assert package["destinations"][0] == {"city": "Makkah", "nights": 7, "hotel": "Swissôtel"}
        assert package["photos"] == body["urls"]

        # ── Update without photos keeps them ──────────────────────────────
        updated = await test_client.put(
            f"/api/packages/{package_id}",
            data=dict(PACKAGE_FORM, name="Umrah Ramadan 2026 (laatste plaatsen)", price="1.999,50"),
            headers=auth_headers,
        )
        assert updated.status_code == 200
        assert updated.json()["name"] == "Umrah Ramadan 2026 (laatste plaatsen)"
        assert updated.json()["price"] == 1999.5
        assert updated.json()["photos"] == body["urls"]

        # ── Update with a photo replaces them ─────────────────────────────
        replaced = await test_client.put(
            f"/api/packages/{package_id}",
            data=PACKAGE_FORM,
            files=_photos(sample_image_bytes),
            headers=auth_headers,
        )
        assert replaced.status_code == 200
        assert len(replaced.json()["photos"]) == 1
        deleted_keys = {c.kwargs["Key"] for c in s3_client.delete_object.call_args_list}
        assert deleted_keys == {url.split("/test-bucket/", 1)[1] for url in body["urls"]}

        # ── Delete ────────────────────────────────────────────────────────
        removed = await test_client.delete(f"/api/packages/{package_id}", headers=auth_headers)
        assert removed.status_code == 200
        assert removed.json() == {"message": "Pakket succesvol verwijderd."}
        assert s3_client.delete_object.call_count == 3

        missing = await test_client.get(f"/api/packages/{package_id}")
        assert missing.status_code == 404

    @pytest.mark.asyncio
    async def test_single_photo_field(self, test_client, auth_headers, s3_client, sample_image_bytes):
        created = await test_client.post(
            "/api/packages",
            data=PACKAGE_FORM,
            files=[("photo", ("cover.jpg", sample_image_bytes, "image/jpeg"))],
            headers=auth_headers,
        )
        assert created.status_code == 201
        assert len(created.json()["urls"]) == 1
        assert s3_client.put_object.call_count == 1

        replaced = await test_client.put(
            f"/api/packages/{created.json()['id']}",
            data=dict(PACKAGE_FORM, price="1.399,-"),
            files=[("photo", ("hotel.jpg", sample_image_bytes, "image/jpeg"))],
            headers=auth_headers,
        )
        assert replaced.status_code == 200
        assert replaced.json()["price"] == 1399.0
        assert len(replaced.json()["photos"]) == 1
        assert replaced.json()["photos"] != created.json()["urls"]
        assert s3_client.delete_object.call_count == 1

    @pytest.mark.asyncio
    async def test_create_rejects_price_too_large(self, test_client, auth_headers, s3_client, sample_image_bytes):
        response = await test_client.post(
            "/api/packages",
            data=dict(PACKAGE_FORM, price="100.000.000,-"),
            files=_photos(sample_image_bytes),
            headers=auth_headers,
        )
        assert response.status_code == 400
        assert response.json()["message"] == "Prijs is te hoog."
        s3_client.put_object.assert_not_called()

    @pytest.mark.asyncio
    async def test_create_requires_photo(self, test_client, auth_headers, s3_client):
        response = await test_client.post("/api/packages", data=PACKAGE_FORM, headers=auth_headers)
        assert response.status_code == 400
        assert response.json()["message"] == "Foto is vereist."

    @pytest.mark.asyncio
    async def test_create_rejects_bad_price(self, test_client, auth_headers, s3_client, sample_image_bytes):
        response = await test_client.post(
            "/api/packages",
            data=dict(PACKAGE_FORM, price="gratis"),
            files=_photos(sample_image_bytes),
            headers=auth_headers,
        )
        assert response.status_code == 400
        assert response.json()["details"]["field"] == "price"
        s3_client.put_object.assert_not_called()

    @pytest.mark.asyncio
    async def test_create_rejects_unsupported_file(self, test_client, auth_headers, s3_client):
        response = await test_client.post(
            "/api/packages",
            data=PACKAGE_FORM,
            files=[("photos", ("brochure.pdf", b"%PDF-1.4", "application/pdf"))],
            headers=auth_headers,
        )
        assert response.status_code == 400
        s3_client.put_object.assert_not_called()

    @pytest.mark.asyncio
    async def test_update_unknown_id(self, test_client, auth_headers):
        response = await test_client.put(
            f"/api/packages/{uuid.uuid4()}", data=PACKAGE_FORM, headers=auth_headers
        )
        assert response.status_code == 404

    @pytest.mark.asyncio
    async def test_delete_unknown_id(self, test_client, auth_headers):
        response = await test_client.delete(f"/api/packages/{uuid.uuid4()}", headers=auth_headers)
        assert response.status_code == 404

    @pytest.mark.asyncio
    async def test_list_newest_first(self, test_client, auth_headers, s3_client, sample_image_bytes):
        for name in ("Eerste", "Tweede"):
            response = await test_client.post(
                "/api/packages",
                data=dict(PACKAGE_FORM, name=name),
                files=_photos(sample_image_bytes),
                headers=auth_headers,
            )
            assert response.status_code == 201

        listed = await test_client.get("/api/packages")
        assert [p["name"] for p in listed.json()] == ["Tweede", "Eerste"]


class TestServices:

    @pytest.mark.asyncio
    async def test_create_and_delete(self, test_client, auth_headers, s3_client, sample_image_bytes):
        created = await test_client.post(
            "/api/services",
            data={"name": "Visum", "description": "Aanvraag Umrah-visum", "price": "150"},
            files=_photos(sample_image_bytes),
            headers=auth_headers,
        )
        assert created.status_code == 201
        assert created.json()["message"] == "Dienst succesvol toegevoegd!"
        assert "/umrah-services/" in created.json()["url"]

        listed = await test_client.get("/api/services")
        assert listed.headers["X-Total-Count"] == "1"
        assert "destinations" not in listed.json()[0]

        removed = await test_client.delete(
            f"/api/services/{created.json()['id']}", headers=auth_headers
        )
        assert removed.json() == {"message": "Dienst succesvol verwijderd."}


class TestSubscriptions:

    @pytest.mark.asyncio
    async def test_subscribe_sends_confirmation(self, test_client, database):
        with patch.object(EmailService, "send_confirmation_email", new_callable=AsyncMock) as send:
            response = await test_client.post(
                "/api/subscriptions", json={"email": "  Fatima@Example.com "}
            )

        assert response.status_code == 201
        assert response.json() == {
            "success": True,
            "message": "Bedankt voor je inschrijving! We houden je op de hoogte.",
        }
        send.assert_awaited_once_with("fatima@example.com")

    @pytest.mark.asyncio
    async def test_invalid_address(self, test_client, database):
        response = await test_client.post("/api/subscriptions", json={"email": "fatima"})
        assert response.status_code == 400
        assert response.json()["message"] == "Voer een geldig e-mailadres in."

    @pytest.mark.asyncio
    async def test_duplicate_address(self, test_client, database):
        with patch.object(EmailService, "send_confirmation_email", new_callable=AsyncMock):
            first = await test_client.post("/api/subscriptions", json={"email": "fatima@example.com"})
            second = await test_client.post("/api/subscriptions", json={"email": "FATIMA@example.com"})

        assert first.status_code == 201
        assert second.status_code == 409
        assert second.json()["message"] == "Dit e-mailadres is al geregistreerd."

    @pytest.mark.asyncio
    async def test_mail_failure_does_not_fail_signup(self, test_client, database):
        with patch("guide2umrah.services.email_service.smtplib.SMTP", side_effect=ConnectionRefusedError()):
            response = await test_client.post("/api/subscriptions", json={"email": "yusuf@example.com"})
        assert response.status_code == 201

    @pytest.mark.asyncio
    async def test_list_for_dashboard(self, test_client, auth_headers):
        with patch.object(EmailService, "send_confirmation_email", new_callable=AsyncMock):
            await test_client.post("/api/subscriptions", json={"email": "a@example.com"})
            await test_client.post("/api/subscriptions", json={"email": "b@example.com"})

        response = await test_client.get("/api/subscriptions", headers=auth_headers)
        assert response.status_code == 200
        body = response.json()
        assert body["total_count"] == 2
        assert [s["email"] for s in body["subscriptions"]] == ["b@example.com", "a@example.com"]
