"""
Unit tests for file validation and the S3/MinIO storage service
"""
from datetime import datetime, timezone
from unittest.mock import MagicMock, patch

import pytest
from botocore.exceptions import ClientError, EndpointConnectionError

from eventos.core.config import settings
from eventos.core.exceptions import InvalidFileError, StorageError
from eventos.services.storage_service import (
    StorageService,
    clean_file_name,
    generate_file_path,
    validate_file,
)


def client_error(code: str, operation: str = "PutObject") -> ClientError:
    return ClientError({"Error": {"Code": code, "Message": "boom"}}, operation)


@pytest.fixture
def s3_client():
    with patch("eventos.services.storage_service.boto3") as boto3:
        client = MagicMock()
        boto3.client.return_value = client
        yield client


class TestFileNames:
    def test_clean_file_name(self):
        assert clean_file_name("Programa final (v2).pdf") == "Programa_final__v2_.pdf"
        assert clean_file_name("fotografía 1.jpg") == "fotograf_a_1.jpg"

    def test_generate_file_path(self):
        now = datetime(2025, 3, 1, 18, 0, tzinfo=timezone.utc)
        path = generate_file_path("user-1", "event-9", "program", "mi programa.pdf", now=now)
        assert path == "user-1/event-9/program/1740852000000_mi_programa.pdf"


class TestValidateFile:
    def test_accepts_pdf(self):
        validate_file("programa.pdf", 2048, "application/pdf")

    def test_rejects_executable(self):
        with pytest.raises(InvalidFileError) as exc_info:
            validate_file("setup.exe", 2048, "application/x-msdownload")
        assert exc_info.value.details["file_name"] == "setup.exe"

    def test_rejects_empty_file(self):
        with pytest.raises(InvalidFileError):
            validate_file("vacio.pdf", 0, "application/pdf")

    def test_size_limit(self):
        validate_file("grande.pdf", 10 * 1024 * 1024, "application/pdf")
        with pytest.raises(InvalidFileError):
            validate_file("grande.pdf", 10 * 1024 * 1024 + 1, "application/pdf")

    def test_images_only(self):
        validate_file("foto.png", 10, "image/png", images_only=True)
        with pytest.raises(InvalidFileError):
            validate_file("lista.pdf", 10, "application/pdf", images_only=True)


class TestStorageService:
    @pytest.mark.parametrize("configured,expected", [("fmp-constancias", "fmp-constancias"), ("", "fmp-eventos")])
    def test_bucket_name_from_settings(self, monkeypatch, configured, expected):
        monkeypatch.setattr(settings, "S3_BUCKET_NAME", configured)
        assert StorageService()._bucket_name == expected

    async def test_upload(self, s3_client):
        service = StorageService(bucket_name="eventos-test")

        result = await service.upload_file("a/b/c.pdf", b"%PDF", "application/pdf")

        assert result == {"file_path": "a/b/c.pdf", "size_bytes": 4}
        s3_client.put_object.assert_called_once_with(
            Bucket="eventos-test", Key="a/b/c.pdf", Body=b"%PDF", ContentType="application/pdf"
        )

    async def test_upload_retries_transient_errors(self, s3_client):
        s3_client.put_object.side_effect = [client_error("SlowDown"), {"ETag": "abc"}]
        service = StorageService(bucket_name="eventos-test", retry_base_delay=0)

        result = await service.upload_file("a/b/c.pdf", b"%PDF", "application/pdf")

        assert result["file_path"] == "a/b/c.pdf"
        assert s3_client.put_object.call_count == 2

    async def test_upload_gives_up_after_retries(self, s3_client):
        s3_client.put_object.side_effect = EndpointConnectionError(endpoint_url="http://localhost:9000")
        service = StorageService(bucket_name="eventos-test", retry_base_delay=0)

        with pytest.raises(StorageError) as exc_info:
            await service.upload_file("a/b/c.pdf", b"%PDF", "application/pdf", max_retries=3)

        assert s3_client.put_object.call_count == 3
        assert exc_info.value.details["key"] == "a/b/c.pdf"

    async def test_missing_bucket_is_created(self, s3_client):
        s3_client.head_bucket.side_effect = client_error("404", "HeadBucket")
        service = StorageService(bucket_name="eventos-test")

        await service.upload_file("k", b"x", "text/plain")

        s3_client.create_bucket.assert_called_once_with(Bucket="eventos-test")

    async def test_delete_reports_failure(self, s3_client):
        s3_client.delete_object.side_effect = client_error("AccessDenied", "DeleteObject")
        service = StorageService(bucket_name="eventos-test")

        assert await service.delete_file("a/b/c.pdf") is False

    async def test_delete(self, s3_client):
        service = StorageService(bucket_name="eventos-test")
        assert await service.delete_file("a/b/c.pdf") is True
        s3_client.delete_object.assert_called_once_with(Bucket="eventos-test", Key="a/b/c.pdf")

    async def test_presigned_url(self, s3_client):
        s3_client.generate_presigned_url.return_value = "http://localhost:9000/eventos-test/a.pdf?X-Amz=1"
        service = StorageService(bucket_name="eventos-test")

        url = await service.get_presigned_url("a.pdf", expiration=60)

        assert url.startswith("http://localhost:9000/eventos-test/a.pdf")
        s3_client.generate_presigned_url.assert_called_once_with(
            "get_object", Params={"Bucket": "eventos-test", "Key": "a.pdf"}, ExpiresIn=60
        )

    async def test_presigned_url_failure(self, s3_client):
        s3_client.generate_presigned_url.side_effect = client_error("AccessDenied", "GetObject")
        service = StorageService(bucket_name="eventos-test")

        with pytest.raises(StorageError):
            await service.get_presigned_url("a.pdf")
