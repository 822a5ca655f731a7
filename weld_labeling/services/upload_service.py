from __future__ import annotations

import base64
import io
import logging
import mimetypes
import random
import string
import time
from dataclasses import dataclass
from pathlib import Path
from typing import Optional, Union

from PIL import Image, UnidentifiedImageError

from ..config import DEFAULT_MAX_UPLOAD_MB

_ID_ALPHABET = string.digits + string.ascii_lowercase


class ImageRejected(Exception):
    """Raised when an uploaded file is not an acceptable image."""


@dataclass(frozen=True)
class UploadedImage:
    image_ref: str
    image_id: str
    width: int
    height: int
    content_type: str


def generate_image_id() -> str:
    """`manual_<epoch-ms>_<9 base36 chars>`"""
    suffix = "".join(random.choices(_ID_ALPHABET, k=9))
    return f"manual_{int(time.time() * 1000)}_{suffix}"


class ImageUploadService:
    """Manual upload source: validates a local image and turns it into a data URL."""

    def __init__(self, max_bytes: int = DEFAULT_MAX_UPLOAD_MB * 1024 * 1024):
        self.max_bytes = int(max_bytes)
        self._log = logging.getLogger("weld_labeling.service.ImageUploadService")

    def from_path(self, path: Union[str, Path]) -> UploadedImage:
        p = Path(path)
        if not p.is_file():
            raise FileNotFoundError(f"Image not found: {p}")
        size = p.stat().st_size
        if size > self.max_bytes:
            raise ImageRejected(f"Image size must be less than {self.max_bytes // (1024 * 1024)}MB")
        return self.from_bytes(p.read_bytes(), filename=p.name)

    def from_bytes(self, data: bytes, filename: Optional[str] = None, content_type: Optional[str] = None) -> UploadedImage:
        if not content_type and filename:
            content_type, _ = mimetypes.guess_type(filename)
        if content_type and not content_type.startswith("image/"):
            raise ImageRejected("Please upload an image file")
        if len(data) > self.max_bytes:
            raise ImageRejected(f"Image size must be less than {self.max_bytes // (1024 * 1024)}MB")
        try:
            with Image.open(io.BytesIO(data)) as img:
                img.verify()
            # verify() leaves the image unusable; reopen to read dimensions
            with Image.open(io.BytesIO(data)) as img:
                width, height = img.size
                detected = Image.MIME.get(img.format or "")
        except (UnidentifiedImageError, OSError, SyntaxError) as e:
            raise ImageRejected("Please upload an image file") from e
        content_type = detected or content_type or "application/octet-stream"
        encoded = base64.b64encode(data).decode("ascii")
        uploaded = UploadedImage(
            image_ref=f"data:{content_type};base64,{encoded}",
            image_id=generate_image_id(),
            width=int(width),
            height=int(height),
            content_type=content_type,
        )
        self._log.debug("accepted upload filename=%s size=%d %dx%d", filename, len(data), width, height)
        return uploaded
