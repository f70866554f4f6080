"""
Cloudinary file uploader - Implements FileUploader protocol.

Supporting documents (CVs, certificates) are uploaded before the
registration is stored; only the returned secure URL is persisted.
Transient failures are retried with exponential backoff.
"""

import logging
from typing import BinaryIO

import cloudinary
import cloudinary.exceptions
import cloudinary.uploader
from tenacity import retry, retry_if_exception_type, stop_after_attempt, wait_exponential

from onboarding.domain.exceptions import InternalError
from onboarding.domain.ports import UploadResult

logger = logging.getLogger(__name__)


class CloudinaryFileUploader:
    """
    Implements FileUploader protocol via the Cloudinary SDK.

    Uses structural subtyping - no explicit inheritance from Protocol.
    """

    def __init__(self, cloud_name: str, api_key: str, api_secret: str) -> None:
        self._credentials = {"cloud_name": cloud_name, "api_key": api_key, "api_secret": api_secret}
        self._configured = False

    def _configure(self) -> None:
        if not self._configured:
            cloudinary.config(**self._credentials, secure=True)
            self._configured = True

    def upload(self, file: BinaryIO, filename: str, folder: str) -> UploadResult:
        """
        Upload one document and return its hosted URL.

        Raises:
            InternalError: Cloudinary rejected the upload or stayed unreachable
        """
        self._configure()
        try:
            result = self._upload(file, filename, folder)
        except cloudinary.exceptions.Error as e:
            logger.error("Upload of %s to %s failed: %s", filename, folder, e)
            raise InternalError(f"Could not upload {filename}") from e

        secure_url = result.get("secure_url") or result.get("url")
        if not secure_url:
            raise InternalError(f"No URL returned for {filename}")
        logger.info("Uploaded %s to %s", filename, secure_url)
        return UploadResult(secure_url=secure_url, public_id=result.get("public_id"))

    @retry(
        retry=retry_if_exception_type(cloudinary.exceptions.Error),
        stop=stop_after_attempt(3),
        wait=wait_exponential(multiplier=1, min=2, max=10),
        reraise=True,
    )
    def _upload(self, file: BinaryIO, filename: str, folder: str) -> dict:
        file.seek(0)
        return cloudinary.uploader.upload(
            file,
            folder=folder,
            resource_type="auto",
            use_filename=True,
            unique_filename=True,
            filename_override=filename,
        )
