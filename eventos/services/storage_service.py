"""
Storage Service - Handles event documents and certificate attachments in S3/MinIO
With retry logic for resilient uploads
"""

import asyncio
import re
from dataclasses import dataclass
from datetime import datetime
from typing import Optional

import boto3
from botocore.config import Config
from botocore.exceptions import BotoCoreError, ClientError

from eventos.core.config import settings
from eventos.core.exceptions import InvalidFileError, StorageError
from eventos.core.logging_config import logger
from eventos.core.types import utcnow

IMAGE_TYPES = ("image/jpeg", "image/png", "image/gif")

_UNSAFE_NAME_CHARS = re.compile(r"[^a-zA-Z0-9.-]")


@dataclass
class UploadedFile:
    """File received from a multipart request, already read into memory"""
    file_name: str
    content: bytes
    content_type: str

    @property
    def size(self) -> int:
        return len(self.content)


def clean_file_name(file_name: str) -> str:
    return _UNSAFE_NAME_CHARS.sub("_", file_name or "file")


def generate_file_path(user_id: str, event_id: str, category: str, file_name: str,
                       now: Optional[datetime] = None) -> str:
    """
    Object key for an uploaded file.

    Format: {user_id}/{event_id}/{category}/{timestamp_ms}_{clean_name}
    """
    timestamp = int((now or utcnow()).timestamp() * 1000)
    return f"{user_id}/{event_id}/{category}/{timestamp}_{clean_file_name(file_name)}"


def validate_file(file_name: str, size: int, content_type: str,
                  images_only: bool = False, max_size: Optional[int] = None) -> None:
    """Raise InvalidFileError when the type is not allowed or the file is too large"""
    max_size = max_size or settings.MAX_UPLOAD_SIZE
    allowed = IMAGE_TYPES if images_only else settings.ALLOWED_FILE_TYPES

    if content_type not in allowed:
        raise InvalidFileError(
            "Solo se permiten imágenes" if images_only
            else "Tipo de archivo no permitido. Solo se permiten PDF, DOC, DOCX, TXT e imágenes",
            file_name=file_name,
        )
    if size <= 0:
        raise InvalidFileError("El archivo está vacío", file_name=file_name)
    if size > max_size:
        raise InvalidFileError(
            f"El archivo es demasiado grande. Máximo {max_size // (1024 * 1024)}MB",
            file_name=file_name,
        )


class StorageService:
    """
    Blob store backed by S3 or MinIO.

    Uploads retry transient failures with exponential backoff and raise
    StorageError once retries are exhausted. Deletes are best-effort.
    """

    def __init__(self, bucket_name: Optional[str] = None, retry_base_delay: float = 1.0):
        self._client = None
        self._public_client = None  # Separate client for presigned URLs with public endpoint
        self._bucket_name = bucket_name or settings.effective_bucket_name
        self._initialized = False
        self.retry_base_delay = retry_base_delay

    def _get_client(self):
        """Lazy initialization of S3/MinIO client"""
        if self._client is None:
            if settings.USE_MINIO:
                self._client = boto3.client(
                    's3',
                    endpoint_url=f"http://{settings.MINIO_ENDPOINT}",
                    aws_access_key_id=settings.AWS_ACCESS_KEY_ID,
                    aws_secret_access_key=settings.AWS_SECRET_ACCESS_KEY,
                    config=Config(
                        signature_version='s3v4',
                        s3={'addressing_style': 'path'}
                    ),
                    region_name=settings.AWS_REGION
                )
            elif settings.AWS_ACCESS_KEY_ID and settings.AWS_SECRET_ACCESS_KEY:
                self._client = boto3.client(
                    's3',
                    aws_access_key_id=settings.AWS_ACCESS_KEY_ID,
                    aws_secret_access_key=settings.AWS_SECRET_ACCESS_KEY,
                    region_name=settings.AWS_REGION
                )
            else:
                # IAM role credentials
                self._client = boto3.client('s3', region_name=settings.AWS_REGION)

            self._ensure_bucket()

        return self._client

    def _get_public_client(self):
        """Client configured with the browser-reachable endpoint for presigned URLs"""
        if self._public_client is None:
            if settings.USE_MINIO and settings.MINIO_PUBLIC_ENDPOINT:
                self._public_client = boto3.client(
                    's3',
                    endpoint_url=f"http://{settings.MINIO_PUBLIC_ENDPOINT}",
                    aws_access_key_id=settings.AWS_ACCESS_KEY_ID,
                    aws_secret_access_key=settings.AWS_SECRET_ACCESS_KEY,
                    config=Config(
                        signature_version='s3v4',
                        s3={'addressing_style': 'path'}
                    ),
                    region_name=settings.AWS_REGION
                )
            else:
                self._public_client = self._get_client()

        return self._public_client

    def _ensure_bucket(self):
        """Create bucket if it doesn't exist"""
        if self._initialized:
            return

        try:
            self._client.head_bucket(Bucket=self._bucket_name)
        except ClientError as e:
            error_code = e.response.get('Error', {}).get('Code', '')
            if error_code in ['404', 'NoSuchBucket']:
                try:
                    if settings.USE_MINIO or settings.AWS_REGION == 'us-east-1':
                        self._client.create_bucket(Bucket=self._bucket_name)
                    else:
                        self._client.create_bucket(
                            Bucket=self._bucket_name,
                            CreateBucketConfiguration={'LocationConstraint': settings.AWS_REGION}
                        )
                    logger.info(f"Created bucket '{self._bucket_name}'")
                except ClientError as create_error:
                    logger.error(f"Failed to create bucket: {create_error}")
            else:
                logger.error(f"Error checking bucket: {e}")

        self._initialized = True

    async def upload_file(self, key: str, content: bytes, content_type: str,
                          max_retries: int = 3) -> dict:
        """
        Upload bytes under `key`.

        Returns:
            dict with file_path and size_bytes
        """
        client = self._get_client()
        last_exception: Optional[Exception] = None

        for attempt in range(max_retries):
            try:
                client.put_object(
                    Bucket=self._bucket_name,
                    Key=key,
                    Body=content,
                    ContentType=content_type,
                )
                logger.info(f"[S3-Upload] Uploaded: {key} ({len(content)} bytes)")
                return {'file_path': key, 'size_bytes': len(content)}

            except (ClientError, BotoCoreError, ConnectionError, TimeoutError) as e:
                last_exception = e
                if attempt < max_retries - 1:
                    delay = self.retry_base_delay * (2 ** attempt)
                    logger.warning(
                        f"[S3-Upload] Attempt {attempt + 1}/{max_retries} failed for {key}: {e}. "
                        f"Retrying in {delay:.1f}s..."
                    )
                    await asyncio.sleep(delay)

        logger.error(f"[S3-Upload] All {max_retries} attempts failed for {key}: {last_exception}")
        raise StorageError(f"Error al subir el archivo: {last_exception}", key=key)

    async def delete_file(self, key: str) -> bool:
        """Delete an object; failures are logged and reported as False"""
        try:
            client = self._get_client()
            client.delete_object(Bucket=self._bucket_name, Key=key)
            logger.info(f"Deleted file from storage: {key}")
            return True
        except (ClientError, BotoCoreError, ConnectionError, TimeoutError) as e:
            logger.error(f"Failed to delete file {key} from storage: {e}")
            return False

    async def get_presigned_url(self, key: str, expiration: Optional[int] = None) -> str:
        """Generate presigned URL for direct file download"""
        try:
            client = self._get_public_client()
            return client.generate_presigned_url(
                'get_object',
                Params={'Bucket': self._bucket_name, 'Key': key},
                ExpiresIn=expiration or settings.STORAGE_URL_EXPIRY
            )
        except (ClientError, BotoCoreError) as e:
            logger.error(f"Failed to generate presigned URL for {key}: {e}")
            raise StorageError("No se pudo generar la URL del archivo", key=key)


# Singleton instance
storage_service = StorageService()
