"""
Guide2Umrah Backend: Image Upload Service
===========================================

What:  Validates offering photos and pushes them to the hosted image store.
How:   Extension, size and sniffed MIME type are checked in memory, then the
       bytes go to an S3-compatible bucket with a UUID key. The public URL of
       the object is what gets stored on the offering row.
Who:   OfferingService during create/update/delete.
When:  Before the database write (upload) and after a failed write (cleanup).

Key layout:
    <folder>/<uuid><ext>         e.g. umrah-packages/0b8c...e1.jpg
    URL = <S3_PUBLIC_BASE_URL>/<key>

Uploads are held in memory only; nothing touches the local disk.
"""

import logging
import uuid
from pathlib import Path
from typing import List, NamedTuple, Optional, Sequence

import boto3
from botocore.client import Config as BotoConfig
from botocore.exceptions import BotoCoreError, ClientError
from starlette.concurrency import run_in_threadpool
from tenacity import (
    before_sleep_log,
    retry,
    retry_if_exception_type,
    stop_after_attempt,
    wait_exponential_jitter,
)

from guide2umrah.config import settings
from guide2umrah.exceptions import ImageStorageError, ValidationError

logger = logging.getLogger(__name__)

ALLOWED_MIME_TYPES = {
    "image/png": ".png",
    "image/jpeg": ".jpg",
    "image/jpg": ".jpg",
    "image/webp": ".webp",
}

ALLOWED_EXTENSIONS = {".png", ".jpg", ".jpeg", ".webp"}


class PhotoUpload(NamedTuple):
    """One file of a multipart request, already read into memory."""
    filename: str
    content: bytes
    content_length: Optional[int] = None


class ImageService:
    """
    Manages the photo lifecycle at the image host.

    Lifecycle of an uploaded photo:
        1. Extension check (rejects obviously wrong files)
        2. Size check (empty or above MAX_FILE_SIZE)
        3. MIME type check via magic bytes (catches renamed files)
        4. put_object with retry → public URL returned
        5. On a later failure in the same request: delete_by_url()
    """

    def __init__(self, client=None, bucket: Optional[str] = None, public_base_url: Optional[str] = None):
        """
        Args:
            client: Preconfigured S3 client (tests inject a stub). If None,
                    one is built from settings on first use.
        """
        self._client = client
        self.bucket = bucket if bucket is not None else settings.s3_bucket
        self.public_base_url = (
            public_base_url if public_base_url is not None else settings.s3_public_base_url
        ).rstrip("/")

    @property
    def client(self):
        if self._client is None:
            self._client = boto3.client(
                "s3",
                endpoint_url=settings.s3_endpoint_url or None,
                region_name=settings.s3_region,
                aws_access_key_id=settings.s3_access_key_id or None,
                aws_secret_access_key=settings.s3_secret_access_key or None,
                config=BotoConfig(signature_version="s3v4", s3={"addressing_style": "path"}),
            )
        return self._client

    # ── Validation ────────────────────────────────────────────────────────

    def validate_extension(self, filename: str) -> str:
        """Returns the normalized extension (lowercase with dot)."""
        ext = Path(filename or "").suffix.lower()
        if ext not in ALLOWED_EXTENSIONS:
            raise ValidationError(
                message=(
                    f"Bestandstype '{ext or filename}' wordt niet ondersteund. "
                    f"Toegestaan: {', '.join(sorted(ALLOWED_EXTENSIONS))}"
                ),
                field="photos",
                context={"extension": ext, "allowed": sorted(ALLOWED_EXTENSIONS)},
            )
        return ext

    def validate_size(self, content_length: Optional[int], actual_size: int) -> None:
        """
        Checks the reported size first, then the real byte count.

        Raises:
            ValidationError for empty files and files above the limit
        """
        max_mb = settings.max_file_size / (1024 * 1024)

        if actual_size == 0:
            raise ValidationError(message="De foto is leeg.", field="photos")

        if (content_length and content_length > settings.max_file_size) or (
            actual_size > settings.max_file_size
        ):
            raise ValidationError(
                message=f"De foto is groter dan {max_mb:.0f}MB.",
                field="photos",
                context={
                    "max_size_mb": max_mb,
                    "reported_size": content_length,
                    "actual_size": actual_size,
                },
            )

    def validate_mime_type(self, content: bytes, filename: str) -> str:
        """
        Inspects the file header with python-magic.

        Returns:
            Detected MIME type string (e.g. "image/jpeg")
        """
        try:
            import magic
            mime_type = magic.from_buffer(content, mime=True)
        except Exception as e:
            logger.error("MIME type detection failed for %s: %s", filename, str(e))
            raise ImageStorageError(
                message="Kon het bestandstype niet controleren. Probeer het opnieuw.",
                context={"error": str(e)},
            )

        if mime_type not in ALLOWED_MIME_TYPES:
            raise ValidationError(
                message=(
                    f"Inhoudstype '{mime_type}' wordt niet ondersteund. "
                    "De foto moet een PNG, JPEG of WEBP zijn."
                ),
                field="photos",
                context={"detected_mime": mime_type, "allowed": list(ALLOWED_MIME_TYPES)},
            )
        return mime_type

    # ── Keys & URLs ───────────────────────────────────────────────────────

    def object_key(self, folder: str, extension: str) -> str:
        return f"{folder.strip('/')}/{uuid.uuid4()}{extension}"

    def public_url(self, key: str) -> str:
        return f"{self.public_base_url}/{key}"

    def key_from_url(self, url: str) -> Optional[str]:
        """Inverse of public_url; None for URLs that are not ours."""
        prefix = f"{self.public_base_url}/"
        if self.public_base_url and url.startswith(prefix):
            return url[len(prefix):]
        return None

    # ── Host Calls ────────────────────────────────────────────────────────

    @retry(
        retry=retry_if_exception_type((BotoCoreError, ConnectionError, TimeoutError)),
        stop=stop_after_attempt(settings.retry_max_attempts),
        wait=wait_exponential_jitter(
            initial=settings.retry_min_wait,
            max=settings.retry_max_wait,
            jitter=1,
        ),
        before_sleep=before_sleep_log(logger, logging.WARNING),
        reraise=True,
    )
    async def _put_object(self, key: str, content: bytes, content_type: str) -> None:
        await run_in_threadpool(
            self.client.put_object,
            Bucket=self.bucket,
            Key=key,
            Body=content,
            ContentType=content_type,
        )

    async def upload(
        self,
        filename: str,
        content: bytes,
        folder: str,
        content_length: Optional[int] = None,
    ) -> str:
        """
        Validate one photo and store it at the image host.

        Returns:
            Public URL of the stored object

        Raises:
            ValidationError: wrong type, empty or too large (→ 400)
            ImageStorageError: the host failed after retries (→ 502)
        """
        self.validate_extension(filename)
        self.validate_size(content_length, len(content))
        mime_type = self.validate_mime_type(content, filename)

        # Extension follows the sniffed content, not the client's filename
        key = self.object_key(folder, ALLOWED_MIME_TYPES[mime_type])
        try:
            await self._put_object(key, content, mime_type)
        except (BotoCoreError, ClientError, OSError) as e:
            logger.error("Upload of %s to bucket %s failed: %s", key, self.bucket, str(e))
            raise ImageStorageError(context={"key": key, "error_type": type(e).__name__})

        logger.info("Photo stored: %s (%d bytes)", key, len(content))
        return self.public_url(key)

    async def upload_many(self, photos: Sequence[PhotoUpload], folder: str) -> List[str]:
        """
        Upload every photo of one request, in order.

        All-or-nothing per request: if one upload fails, the photos already
        stored for this request are removed before the error propagates.
        """
        if len(photos) > settings.max_photos_per_request:
            raise ValidationError(
                message=f"Maximaal {settings.max_photos_per_request} foto's per keer.",
                field="photos",
            )

        urls: List[str] = []
        try:
            for photo in photos:
                urls.append(
                    await self.upload(
                        filename=photo.filename,
                        content=photo.content,
                        folder=folder,
                        content_length=photo.content_length,
                    )
                )
        except Exception:
            await self.delete_many(urls)
            raise
        return urls

    async def delete_by_url(self, url: str) -> None:
        """
        Remove a stored photo. Best-effort: failures are logged, never raised.
        """
        key = self.key_from_url(url)
        if key is None:
            logger.debug("Not deleting foreign URL: %s", url)
            return
        try:
            await run_in_threadpool(self.client.delete_object, Bucket=self.bucket, Key=key)
            logger.info("Deleted photo: %s", key)
        except (BotoCoreError, ClientError, OSError) as e:
            logger.warning("Failed to delete photo %s: %s", key, str(e))

    async def delete_many(self, urls: Sequence[str]) -> None:
        for url in urls:
            await self.delete_by_url(url)


image_service = ImageService()
