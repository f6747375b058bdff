"""
Storefront Backend — File Storage Service
============================================

What:  Validates and stores uploaded product images, builds their public URLs,
       and removes files again when the surrounding database write fails.
How:   Gates on the declared MIME type against the configured allow-list,
       enforces the size limit, writes with aiofiles under a generated name.
Who:   Called by ProductService (create, update, gallery update).
When:  After the product/category checks pass, before the database write.

Filename scheme:
    <sanitized-original-stem>-<epoch-millis>.<mapped-extension>
    e.g. "Red Shoes (v2).PNG" uploaded as image/png → "Red-Shoes-v2-1718000000000.png"

    Sanitizing replaces every run of characters outside [A-Za-z0-9._-]
    (whitespace included) with "-" and drops directory components, so a
    client-supplied name can never leave the upload directory.
    Files are opened with exclusive creation ("xb"); if the name already
    exists a numeric suffix is added and the write is retried.
"""

import logging
import os
import re
import time
from pathlib import Path
from typing import Iterable, List, NamedTuple, Optional, Sequence

import aiofiles

from storefront.config import UploadConfig
from storefront.exceptions import FileStorageError, ValidationError

logger = logging.getLogger(__name__)

_UNSAFE_CHARS = re.compile(r"[^A-Za-z0-9._-]+")

# Attempts at a unique name before giving up on a single upload
MAX_NAME_ATTEMPTS = 20


class IncomingFile(NamedTuple):
    """An uploaded file as read from the multipart request."""
    filename: str
    content_type: Optional[str]
    content: bytes


class StoredFile(NamedTuple):
    """A file written to the upload directory."""
    filename: str
    path: Path


class FileService:
    """
    Manages upload validation, storage and cleanup.

    Lifecycle of an uploaded file:
        1. validate() checks MIME type (allow-list) and size
        2. store() writes the bytes under a generated unique filename
        3. public_url() turns the filename into an absolute URL
        4. cleanup_files() removes files whose database write failed
    """

    def __init__(self, config: UploadConfig):
        self.config = config
        self.upload_dir = Path(config.upload_dir).resolve()
        self.upload_dir.mkdir(parents=True, exist_ok=True)
        logger.info("FileService initialized with upload_dir=%s", self.upload_dir)

    # ── Validation ────────────────────────────────────────────────────────

    def validate_mime_type(self, content_type: Optional[str], field: str = "image") -> str:
        """
        Check the declared MIME type against the allow-list.

        Returns:
            The extension mapped to the MIME type (e.g. "png").
        Raises:
            ValidationError if the type is missing or not allowed.
        """
        extension = self.config.allowed_mime_types.get((content_type or "").lower())
        if extension is None:
            raise ValidationError(
                message=(
                    f"Invalid image type '{content_type}'. "
                    f"Allowed types: {', '.join(sorted(self.config.allowed_mime_types))}"
                ),
                field=field,
                context={
                    "content_type": content_type,
                    "allowed": sorted(self.config.allowed_mime_types),
                },
            )
        return extension

    def check_max_size(self, size: Optional[int], field: str = "image") -> None:
        """
        Reject a size over the configured limit; an unknown size (None) passes.

        Routes call this with the multipart part's declared size before
        reading it, so an oversized upload is never loaded into memory.
        """
        if size is not None and size > self.config.max_file_size:
            raise ValidationError(
                message=f"File is too large. Maximum size is {self.config.max_file_size} bytes.",
                field=field,
                context={"max_size": self.config.max_file_size, "actual_size": size},
            )

    def validate_size(self, size: int, field: str = "image") -> None:
        """Reject empty files and files over the configured limit."""
        if size == 0:
            raise ValidationError(message="Uploaded file is empty", field=field)
        self.check_max_size(size, field=field)

    def validate(self, upload: IncomingFile, field: str = "image") -> str:
        """Run all checks for one file; returns its mapped extension."""
        extension = self.validate_mime_type(upload.content_type, field=field)
        self.validate_size(len(upload.content), field=field)
        return extension

    # ── Naming ────────────────────────────────────────────────────────────

    @staticmethod
    def sanitize_name(original: str) -> str:
        """Stem of the client filename with unsafe characters replaced by '-'."""
        # Treat backslashes as separators too so "C:\\x\\a.png" yields "a"
        stem = Path(original.replace("\\", "/")).stem
        cleaned = _UNSAFE_CHARS.sub("-", stem).strip("-.")
        return cleaned or "upload"

    def generate_filename(
        self,
        original: str,
        extension: str,
        timestamp_ms: Optional[int] = None,
        attempt: int = 0,
    ) -> str:
        """
        Build "<stem>-<millis>.<ext>", with "-<attempt>" before the extension
        on retries after a collision.
        """
        if timestamp_ms is None:
            timestamp_ms = time.time_ns() // 1_000_000
        name = f"{self.sanitize_name(original)}-{timestamp_ms}"
        if attempt:
            name = f"{name}-{attempt}"
        return f"{name}.{extension}"

    def public_url(self, base_url: str, filename: str) -> str:
        """Absolute URL for a stored file, e.g. http://host/public/uploads/a-1.png"""
        return f"{base_url.rstrip('/')}{self.config.public_path}/{filename}"

    # ── Storage ───────────────────────────────────────────────────────────

    async def store(self, upload: IncomingFile, field: str = "image") -> StoredFile:
        """
        Validate and write one upload.

        Raises:
            ValidationError for a rejected file (nothing is written)
            FileStorageError if the write itself fails
        """
        extension = self.validate(upload, field=field)
        timestamp_ms = time.time_ns() // 1_000_000

        for attempt in range(MAX_NAME_ATTEMPTS):
            filename = self.generate_filename(upload.filename, extension, timestamp_ms, attempt)
            path = self.upload_dir / filename
            try:
                async with aiofiles.open(path, "xb") as f:
                    await f.write(upload.content)
            except FileExistsError:
                continue
            except OSError as e:
                logger.error("Failed to store file at %s: %s", path, str(e))
                raise FileStorageError(
                    message="Failed to save uploaded image. Please try again.",
                    context={"path": str(path), "os_error": str(e)},
                )
            logger.info("File stored: %s (%d bytes)", filename, len(upload.content))
            return StoredFile(filename=filename, path=path)

        raise FileStorageError(
            message="Failed to save uploaded image. Please try again.",
            context={"reason": "no unique filename", "original": upload.filename},
        )

    async def store_many(self, uploads: Sequence[IncomingFile], field: str = "images") -> List[StoredFile]:
        """
        Validate every upload first, then write them in order.

        A rejected file means nothing is written; if a later write fails,
        the files already written by this call are removed.
        """
        for upload in uploads:
            self.validate(upload, field=field)

        stored: List[StoredFile] = []
        try:
            for upload in uploads:
                stored.append(await self.store(upload, field=field))
        except Exception:
            await self.cleanup_files(item.path for item in stored)
            raise
        return stored

    async def cleanup_file(self, file_path: Path) -> None:
        """
        Remove a file from storage, best effort.

        When: A database write failed after the file was stored.
        Missing files are ignored; other failures are logged, not raised.
        """
        path = Path(file_path)
        try:
            if path.exists():
                os.remove(path)
                logger.info("Cleaned up file: %s", path.name)
            else:
                logger.debug("Cleanup: file already gone: %s", path.name)
        except OSError as e:
            logger.warning("Failed to clean up file %s: %s", path, str(e))

    async def cleanup_files(self, paths: Iterable[Path]) -> None:
        for path in paths:
            await self.cleanup_file(path)
