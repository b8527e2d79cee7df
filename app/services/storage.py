"""
DigitalOcean Spaces storage service for blog and category images
"""

import asyncio
import io
import logging
import uuid
from datetime import datetime
from typing import Optional, Tuple

import boto3
from botocore.exceptions import BotoCoreError, ClientError
from fastapi import UploadFile
from PIL import Image, UnidentifiedImageError

from ..config import settings
from ..exceptions import DependencyError, ValidationError

logger = logging.getLogger(__name__)

ALLOWED_IMAGE_TYPES = {"image/jpeg", "image/png", "image/gif", "image/webp"}
MAX_IMAGE_BYTES = 5 * 1024 * 1024


class StorageService:
    """Service for handling image uploads to DigitalOcean Spaces"""

    def __init__(self):
        self._s3_client = None
        self.bucket_name = settings.DO_SPACES_BUCKET
        self.cdn_endpoint = (
            settings.DO_SPACES_CDN_ENDPOINT or settings.DO_SPACES_ENDPOINT
        )

    @property
    def is_configured(self) -> bool:
        return bool(
            settings.DO_SPACES_ENDPOINT
            and settings.DO_SPACES_KEY
            and settings.DO_SPACES_SECRET
            and settings.DO_SPACES_BUCKET
        )

    @property
    def s3_client(self):
        if self._s3_client is None:
            self._s3_client = boto3.client(
                "s3",
                endpoint_url=settings.DO_SPACES_ENDPOINT,
                aws_access_key_id=settings.DO_SPACES_KEY,
                aws_secret_access_key=settings.DO_SPACES_SECRET,
                region_name=settings.DO_SPACES_REGION,
            )
        return self._s3_client

    def _generate_file_path(self, folder: str, original_filename: str) -> str:
        """Generate a unique object key for an upload"""
        timestamp = datetime.now().strftime("%Y/%m/%d")
        return f"{folder}/{timestamp}/{uuid.uuid4()}.jpg"

    def _get_public_url(self, file_path: str) -> str:
        return f"{self.cdn_endpoint}/{file_path}"

    @staticmethod
    def _optimize_image(
        file_content: bytes, max_width: int, max_height: int, quality: int
    ) -> bytes:
        """Flatten to RGB, shrink to fit and re-encode as JPEG"""
        image = Image.open(io.BytesIO(file_content))

        if image.mode in ("RGBA", "LA", "P"):
            background = Image.new("RGB", image.size, (255, 255, 255))
            if image.mode == "P":
                image = image.convert("RGBA")
            background.paste(
                image, mask=image.split()[-1] if image.mode in ("RGBA", "LA") else None
            )
            image = background
        elif image.mode != "RGB":
            image = image.convert("RGB")

        if image.width > max_width or image.height > max_height:
            image.thumbnail((max_width, max_height), Image.Resampling.LANCZOS)

        output = io.BytesIO()
        image.save(output, format="JPEG", quality=quality, optimize=True)
        return output.getvalue()

    async def upload_image(
        self,
        file_content: bytes,
        original_filename: str,
        folder: str = "blogs",
        content_type: Optional[str] = None,
        max_width: int = 1920,
        max_height: int = 1080,
        quality: int = 85,
    ) -> Tuple[str, str]:
        """
        Optimize and upload an image

        Returns:
            Tuple of (public_url, object_key)

        Raises:
            ValidationError: the upload is not an acceptable image
            DependencyError: storage is unavailable or rejected the upload
        """
        if content_type and content_type not in ALLOWED_IMAGE_TYPES:
            raise ValidationError("Only JPEG, PNG, GIF and WebP images are allowed")
        if len(file_content) > MAX_IMAGE_BYTES:
            raise ValidationError("Image must be 5MB or smaller")

        try:
            optimized = self._optimize_image(file_content, max_width, max_height, quality)
        except (UnidentifiedImageError, OSError):
            raise ValidationError("Uploaded file is not a valid image")

        if not self.is_configured:
            raise DependencyError("Image storage is not configured")

        file_path = self._generate_file_path(folder, original_filename)
        try:
            await asyncio.to_thread(
                self.s3_client.put_object,
                Bucket=self.bucket_name,
                Key=file_path,
                Body=optimized,
                ContentType="image/jpeg",
                ACL="public-read",
            )
        except (BotoCoreError, ClientError) as e:
            logger.error(f"Image upload failed for {original_filename}: {e}")
            raise DependencyError("Failed to upload image", str(e))

        logger.info(f"Uploaded image {file_path} ({len(optimized)} bytes)")
        return self._get_public_url(file_path), file_path

    async def upload_form_image(self, file: UploadFile, folder: str) -> Tuple[str, str]:
        """Upload an image received as a multipart form field"""
        content = await file.read()
        if not content:
            raise ValidationError("Uploaded image is empty")
        return await self.upload_image(
            content, file.filename or "image", folder=folder, content_type=file.content_type
        )

    async def delete_file(self, file_path: Optional[str]) -> bool:
        """
        Delete an object from the bucket

        Returns:
            True if successful, False otherwise
        """
        if not file_path or not self.is_configured:
            return False
        try:
            await asyncio.to_thread(
                self.s3_client.delete_object, Bucket=self.bucket_name, Key=file_path
            )
            return True
        except (BotoCoreError, ClientError) as e:
            logger.warning(f"Error deleting file {file_path}: {e}")
            return False


# Global instance
storage_service = StorageService()
