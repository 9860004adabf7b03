"""
Unit tests for the S3 media uploader.
"""
import io
import zipfile
from unittest.mock import MagicMock

import httpx
import pytest

from internal.domain.errors import MediaUploadError
from internal.infrastructure.storage.s3_uploader import S3MediaUploader


ARCHIVE_URL = "https://files.example.com/kbl.zip"


def make_zip(*names):
    buffer = io.BytesIO()
    with zipfile.ZipFile(buffer, "w") as archive:
        for name in names:
            if name.endswith("/"):
                archive.writestr(name, "")
            else:
                archive.writestr(name, f"data of {name}")
    return buffer.getvalue()


def serving(content, status_code=200):
    return httpx.MockTransport(lambda request: httpx.Response(status_code, content=content))


@pytest.fixture
def s3():
    return MagicMock()


def make_uploader(s3, transport, public_base_url=None):
    return S3MediaUploader(
        bucket="media",
        region="eu-central-1",
        public_base_url=public_base_url,
        s3_client=s3,
        http_transport=transport,
    )


class TestS3MediaUploader:
    """Tests for S3MediaUploader.upload."""

    @pytest.mark.asyncio
    async def test_uploads_archive_files(self, s3):
        """Test files are numbered from 2 and stored public-read."""
        uploader = make_uploader(s3, serving(make_zip("a.jpg", "photos/", "photos/b.png")))

        result = await uploader.upload(ARCHIVE_URL, "Кабель мідний", "products")

        assert not result.error
        assert result.links == [
            "https://media.s3.eu-central-1.amazonaws.com/products/Кабель мідний_2.jpg",
            "https://media.s3.eu-central-1.amazonaws.com/products/Кабель мідний_3.png",
        ]
        first_call = s3.put_object.call_args_list[0].kwargs
        assert first_call["Bucket"] == "media"
        assert first_call["Key"] == "products/Кабель мідний_2.jpg"
        assert first_call["Body"] == b"data of a.jpg"
        assert first_call["ContentType"] == "image/jpeg"
        assert first_call["ACL"] == "public-read"
        assert s3.put_object.call_count == 2

    @pytest.mark.asyncio
    async def test_public_base_url(self, s3):
        """Test links use the configured public base."""
        uploader = make_uploader(s3, serving(make_zip("a.jpg")), "https://cdn.example.com/")

        result = await uploader.upload(ARCHIVE_URL, "Кабель", "products")

        assert result.links == ["https://cdn.example.com/products/Кабель_2.jpg"]

    @pytest.mark.asyncio
    async def test_title_slashes_replaced(self, s3):
        """Test a title cannot create extra folders."""
        uploader = make_uploader(s3, serving(make_zip("a.jpg")))

        await uploader.upload(ARCHIVE_URL, "Кабель 3/4", "products")

        assert s3.put_object.call_args.kwargs["Key"] == "products/Кабель 3-4_2.jpg"

    @pytest.mark.asyncio
    async def test_not_a_zip(self, s3):
        """Test an invalid archive is reported, not raised."""
        uploader = make_uploader(s3, serving(b"<html>not found</html>"))

        result = await uploader.upload(ARCHIVE_URL, "Кабель", "products")

        assert result.error
        assert result.media_records == []
        s3.put_object.assert_not_called()

    @pytest.mark.asyncio
    async def test_download_failure(self, s3):
        """Test an HTTP error on download raises."""
        uploader = make_uploader(s3, serving(b"", status_code=404))

        with pytest.raises(MediaUploadError) as exc_info:
            await uploader.upload(ARCHIVE_URL, "Кабель", "products")

        assert exc_info.value.archive_url == ARCHIVE_URL

    @pytest.mark.asyncio
    async def test_upload_failure(self, s3):
        """Test an S3 failure raises."""
        s3.put_object.side_effect = RuntimeError("AccessDenied")
        uploader = make_uploader(s3, serving(make_zip("a.jpg")))

        with pytest.raises(MediaUploadError) as exc_info:
            await uploader.upload(ARCHIVE_URL, "Кабель", "products")

        assert "AccessDenied" in exc_info.value.reason
