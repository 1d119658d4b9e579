"""Materialization of raw runner attachments into report references."""

import asyncio
import base64
import io
import itertools
import logging
import re
import time
from collections.abc import Iterator
from dataclasses import dataclass, field
from pathlib import Path

import aiofiles
from PIL import Image

from trend_report.config import AttachmentMode
from trend_report.models.attempt import RawAttachment
from trend_report.models.report import MaterializedAttachment

log = logging.getLogger(__name__)

DEFAULT_CONTENT_TYPE = "application/octet-stream"
UNSAFE_NAME_CHARS = re.compile(r"[^A-Za-z0-9._-]+")


@dataclass(frozen=True, kw_only=True)
class CompressionConfig:
    """Lossy re-encoding settings for image attachments."""

    enabled: bool = True
    quality: int = 80

    def __post_init__(self) -> None:
        object.__setattr__(self, "quality", max(1, min(100, self.quality)))


def should_compress(content_type: str, compression: CompressionConfig) -> bool:
    """Images other than GIF are re-encoded when compression is enabled."""
    return (
        compression.enabled
        and content_type.startswith("image/")
        and content_type != "image/gif"
    )


def compress_image(data: bytes, quality: int) -> bytes:
    """Re-encode image bytes as an optimized JPEG."""
    with Image.open(io.BytesIO(data)) as image:
        if image.mode not in ("RGB", "L"):
            image = image.convert("RGB")
        output = io.BytesIO()
        image.save(output, format="JPEG", quality=quality, optimize=True)
    return output.getvalue()


def blob_file_name(
    test_id: str,
    attachment_name: str,
    retry: int,
    content_type: str,
    sequence: int = 0,
) -> str:
    """Build a collision-resistant file name for a stored attachment."""
    subtype = content_type.partition("/")[2] or "bin"
    extension = UNSAFE_NAME_CHARS.sub("_", subtype.split(";")[0].strip()) or "bin"
    stamp = f"{time.time_ns() // 1_000_000}-{sequence}"
    stem = f"{test_id}-{attachment_name}-{retry}-{stamp}"
    return f"{UNSAFE_NAME_CHARS.sub('_', stem)}.{extension}"


@dataclass(frozen=True, kw_only=True)
class AttachmentMaterializer:
    """Turns raw attachments into inline payloads or stored blobs.

    Every failure is recoverable: an unreadable source yields an empty
    reference and a failed re-encode keeps the original bytes.
    """

    mode: AttachmentMode
    compression: CompressionConfig
    attachments_dir: Path | None = None
    reference_prefix: str = "attachments"
    _sequence: Iterator[int] = field(default_factory=itertools.count, repr=False)

    def __post_init__(self) -> None:
        if self.mode == "stored" and self.attachments_dir is None:
            raise ValueError("attachments_dir is required in stored mode")

    async def materialize(
        self, attachment: RawAttachment, test_id: str, retry: int
    ) -> MaterializedAttachment:
        """Resolve one attachment of the given test attempt."""
        content_type = attachment.content_type or DEFAULT_CONTENT_TYPE

        data = await self._read_source(attachment)
        if data is None:
            log.warning(
                "Attachment %r of test %s has no readable source, using placeholder",
                attachment.name,
                test_id,
            )
            return MaterializedAttachment(
                name=attachment.name, content_type=content_type, path="", retry=retry
            )

        data, content_type = await self._maybe_compress(
            attachment.name, data, content_type
        )

        if self.mode == "stored" and self.attachments_dir is not None:
            path = await self._store(
                self.attachments_dir,
                data,
                test_id,
                attachment.name,
                retry,
                content_type,
            )
        else:
            encoded = base64.b64encode(data).decode("ascii")
            path = f"data:{content_type};base64,{encoded}"

        return MaterializedAttachment(
            name=attachment.name, content_type=content_type, path=path, retry=retry
        )

    async def _read_source(self, attachment: RawAttachment) -> bytes | None:
        if attachment.path:
            try:
                async with aiofiles.open(attachment.path, "rb") as f:
                    return await f.read()
            except OSError as e:
                log.warning("Cannot read attachment %s: %s", attachment.path, e)
        return attachment.body

    async def _maybe_compress(
        self, name: str, data: bytes, content_type: str
    ) -> tuple[bytes, str]:
        if not should_compress(content_type, self.compression):
            return data, content_type
        try:
            compressed = await asyncio.to_thread(
                compress_image, data, self.compression.quality
            )
        except Exception as e:
            log.error("Failed to compress image %r, using original: %s", name, e)
            return data, content_type
        return compressed, "image/jpeg"

    async def _store(
        self,
        attachments_dir: Path,
        data: bytes,
        test_id: str,
        name: str,
        retry: int,
        content_type: str,
    ) -> str:
        file_name = blob_file_name(
            test_id, name, retry, content_type, next(self._sequence)
        )
        try:
            async with aiofiles.open(attachments_dir / file_name, "wb") as f:
                await f.write(data)
        except OSError as e:
            log.error("Failed to store attachment %r of test %s: %s", name, test_id, e)
            return ""
        return f"{self.reference_prefix}/{file_name}"
