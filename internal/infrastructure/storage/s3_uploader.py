"""
S3 Media Uploader.

Downloads a product's media archive, unpacks it in memory and uploads
every file to the media bucket.
"""
import asyncio
import io
import mimetypes
import zipfile
from typing import Any, Optional

import boto3
import httpx

from internal.domain.entities import MediaUploadResult
from internal.domain.errors import MediaUploadError
from pkg.logger.logger import get_logger


logger = get_logger(__name__)


# Image 1 is the product's main image; archive files are numbered from 2
FIRST_ARCHIVE_INDEX = 2


class S3MediaUploader:
    """
    Media uploader backed by S3.

    boto3 is blocking, so uploads run in a worker thread.
    """

    def __init__(
        self,
        bucket: str,
        region: str,
        access_key_id: Optional[str] = None,
        secret_access_key: Optional[str] = None,
        public_base_url: Optional[str] = None,
        s3_client: Any = None,
        http_transport: Optional[httpx.AsyncBaseTransport] = None,
        timeout: float = 60.0,
    ) -> None:
        """
        Initialize the uploader.

        Args:
            bucket: Target bucket name.
            region: AWS region of the bucket.
            access_key_id: AWS access key; boto3 defaults apply when None.
            secret_access_key: AWS secret key.
            public_base_url: Base of the public links; the bucket's S3 URL
                when None.
            s3_client: Preconfigured boto3 client (tests).
            http_transport: httpx transport used for archive downloads (tests).
            timeout: Archive download timeout in seconds.
        """
        self._bucket = bucket
        self._region = region
        self._public_base_url = (
            public_base_url or f"https://{bucket}.s3.{region}.amazonaws.com"
        ).rstrip("/")
        self._s3 = s3_client or boto3.client(
            "s3",
            region_name=region,
            aws_access_key_id=access_key_id,
            aws_secret_access_key=secret_access_key,
        )
        self._http_transport = http_transport
        self._timeout = timeout

    async def upload(
        self,
        archive_url: str,
        product_title: str,
        folder: str,
    ) -> MediaUploadResult:
        """
        Upload the files of a media archive.

        Files are stored as ``<folder>/<title>_<n>.<ext>`` with n starting
        at 2, in archive order.

        Args:
            archive_url: URL of the ZIP archive.
            product_title: Product title used in file names.
            folder: Destination folder in the bucket.

        Returns:
            Upload result; ``error`` is set when the archive is not a ZIP.

        Raises:
            MediaUploadError: If the archive cannot be downloaded or a file
                cannot be uploaded.
        """
        logger.info(
            "Uploading media archive",
            archive_url=archive_url,
            title=product_title,
            folder=folder,
        )
        content = await self._download(archive_url)

        try:
            archive = zipfile.ZipFile(io.BytesIO(content))
        except zipfile.BadZipFile:
            logger.warning("Media archive is not a ZIP file", archive_url=archive_url)
            return MediaUploadResult(error=True, archive_url=archive_url)

        records = []
        with archive:
            entries = [entry for entry in archive.infolist() if not entry.is_dir()]
            for index, entry in enumerate(entries, start=FIRST_ARCHIVE_INDEX):
                extension = entry.filename.rsplit(".", 1)[-1]
                file_name = f"{self._safe_title(product_title)}_{index}.{extension}"
                key = f"{folder.strip('/')}/{file_name}" if folder.strip("/") else file_name
                link = await self._put(key, archive.read(entry), file_name, archive_url)
                records.append({"link": link})

        logger.info("Media archive uploaded", archive_url=archive_url, files=len(records))
        return MediaUploadResult(error=False, media_records=records, archive_url=archive_url)

    async def _download(self, archive_url: str) -> bytes:
        try:
            async with httpx.AsyncClient(
                timeout=self._timeout,
                transport=self._http_transport,
                follow_redirects=True,
            ) as client:
                response = await client.get(archive_url)
                response.raise_for_status()
                return response.content
        except httpx.HTTPError as e:
            raise MediaUploadError(archive_url, str(e)) from e

    async def _put(self, key: str, body: bytes, file_name: str, archive_url: str) -> str:
        content_type, _ = mimetypes.guess_type(file_name)
        try:
            await asyncio.to_thread(
                self._s3.put_object,
                Bucket=self._bucket,
                Key=key,
                Body=body,
                ContentType=content_type or "application/octet-stream",
                ACL="public-read",
            )
        except Exception as e:
            logger.error("S3 upload failed", key=key, error=str(e))
            raise MediaUploadError(archive_url, f"upload of {key} failed: {e}") from e
        return f"{self._public_base_url}/{key}"

    @staticmethod
    def _safe_title(title: str) -> str:
        return title.replace("/", "-").strip()
