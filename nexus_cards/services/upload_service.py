"""
File uploads: validation, Pillow re-encoding for images and on-disk storage.
"""

from __future__ import annotations

from dataclasses import dataclass
import io
import logging
import os
import re
import secrets
import time
from pathlib import Path
from typing import Optional

from PIL import Image, ImageOps, UnidentifiedImageError

from nexus_cards.core.config import get_settings
from nexus_cards.core.errors import NotFoundError, ValidationError

logger = logging.getLogger(__name__)

VIDEO_MAX_BYTES = 50 * 1024 * 1024

IMAGE_MIMES = {"image/jpeg", "image/png", "image/gif", "image/webp"}
VCARD_MIMES = {"text/vcard", "text/x-vcard"}
VIDEO_MIMES = {"video/mp4", "video/webm", "video/ogg", "video/quicktime"}
ALLOWED_MIMES = IMAGE_MIMES | VCARD_MIMES | VIDEO_MIMES | {"application/pdf"}

EXTENSIONS = {
    "image/jpeg": ".jpg",
    "image/png": ".png",
    "image/gif": ".gif",
    "image/webp": ".webp",
    "application/pdf": ".pdf",
    "text/vcard": ".vcf",
    "text/x-vcard": ".vcf",
    "video/mp4": ".mp4",
    "video/webm": ".webm",
    "video/ogg": ".ogv",
    "video/quicktime": ".mov",
}


@dataclass(frozen=True)
class KindRule:
    mimes: frozenset
    resize_to: Optional[tuple[int, int]] = None
    max_bytes: Optional[int] = None


KINDS = {
    "profile-photo": KindRule(frozenset(IMAGE_MIMES), resize_to=(512, 512)),
    "card-logo": KindRule(frozenset(IMAGE_MIMES), resize_to=(512, 512)),
    "card-background": KindRule(frozenset(IMAGE_MIMES), resize_to=(1600, 1600)),
    "gallery": KindRule(frozenset(IMAGE_MIMES), resize_to=(1600, 1600)),
    "contact-attachment": KindRule(frozenset(IMAGE_MIMES | VCARD_MIMES | {"application/pdf"})),
    "video": KindRule(frozenset(VIDEO_MIMES), max_bytes=VIDEO_MAX_BYTES),
}

_SAFE_SEGMENT = re.compile(r"^[A-Za-z0-9][A-Za-z0-9._-]{0,127}$")


def _magic_matches(mimetype: str, data: bytes) -> bool:
    if mimetype == "image/jpeg":
        return data.startswith(b"\xFF\xD8\xFF")
    if mimetype == "image/png":
        return data.startswith(b"\x89PNG\r\n\x1a\n")
    if mimetype == "image/gif":
        return data[:6] in (b"GIF87a", b"GIF89a")
    if mimetype == "image/webp":
        return data[:4] == b"RIFF" and data[8:12] == b"WEBP"
    if mimetype == "application/pdf":
        return data.startswith(b"%PDF-")
    # vCard and video containers are not sniffed.
    return True


def _resize_image(data: bytes, max_size: tuple[int, int]) -> bytes:
    try:
        image = Image.open(io.BytesIO(data))
        image = ImageOps.exif_transpose(image)
        image = image.convert("RGB")
    except (UnidentifiedImageError, OSError, Image.DecompressionBombError) as exc:
        raise ValidationError("Invalid image file") from exc
    image.thumbnail(max_size, Image.LANCZOS)
    buffer = io.BytesIO()
    image.save(buffer, format="JPEG", quality=85, optimize=True)
    return buffer.getvalue()


def _check_segment(value: str, what: str) -> str:
    if not value or not _SAFE_SEGMENT.fullmatch(value) or ".." in value:
        raise ValidationError(f"Invalid {what}")
    return value


@dataclass
class UploadService:

    def __post_init__(self):
        self.settings = get_settings()
        self.base_dir = Path(self.settings.upload_dir).resolve()

    def _rule(self, kind: str) -> KindRule:
        rule = KINDS.get(kind)
        if rule is None:
            raise ValidationError(f"Unknown upload kind: {kind}")
        return rule

    def size_limit(self, kind: str) -> int:
        return self._rule(kind).max_bytes or self.settings.max_upload_bytes

    def _path(self, user_id: str, kind: str, filename: str) -> Path:
        self._rule(kind)
        path = (
            self.base_dir
            / _check_segment(user_id, "user id")
            / kind
            / _check_segment(filename, "filename")
        ).resolve()
        if self.base_dir not in path.parents:
            raise ValidationError("Invalid file path")
        return path

    def save(self, user_id: str, kind: str, *, data: bytes, original_name: str, mimetype: str) -> dict:
        rule = self._rule(kind)
        mimetype = (mimetype or "").split(";", 1)[0].strip().lower()
        if not data:
            raise ValidationError("No file provided")
        limit = self.size_limit(kind)
        if len(data) > limit:
            raise ValidationError(f"File size exceeds maximum of {limit / 1024 / 1024:g}MB")
        if mimetype not in ALLOWED_MIMES:
            raise ValidationError(f"File type {mimetype or 'unknown'} is not allowed")
        if mimetype not in rule.mimes:
            raise ValidationError(f"File type {mimetype} is not allowed for {kind}")
        if not _magic_matches(mimetype, data):
            raise ValidationError("File content does not match its declared type")

        if rule.resize_to:
            data = _resize_image(data, rule.resize_to)
            mimetype = "image/jpeg"

        filename = f"{int(time.time() * 1000)}-{secrets.token_hex(16)}{EXTENSIONS[mimetype]}"
        dest = self._path(user_id, kind, filename)
        dest.parent.mkdir(parents=True, exist_ok=True)
        dest.write_bytes(data)
        logger.info("Stored %s upload for user %s (%d bytes)", kind, user_id, len(data))
        return {
            "filename": filename,
            "original_name": os.path.basename(original_name or "") or filename,
            "mimetype": mimetype,
            "size": len(data),
            "url": f"/uploads/{user_id}/{kind}/{filename}",
        }

    def read(self, user_id: str, kind: str, filename: str) -> Path:
        path = self._path(user_id, kind, filename)
        if not path.is_file():
            raise NotFoundError("File not found")
        return path

    def delete(self, user_id: str, kind: str, filename: str) -> None:
        """Remove one of ``user_id``'s own files."""
        path = self.read(user_id, kind, filename)
        path.unlink()
