from __future__ import annotations

import io
from dataclasses import dataclass

from PIL import Image, UnidentifiedImageError
from werkzeug.datastructures import FileStorage
from werkzeug.utils import secure_filename

from .constants import MAX_SCREENSHOT_BYTES

MAX_DIMENSION = 8192
FORMAT_EXTENSIONS = {
    "PNG": "png",
    "JPEG": "jpg",
    "GIF": "gif",
    "WEBP": "webp",
}


class ImageValidationError(ValueError):
    pass


@dataclass
class ValidatedImage:
    data: bytes
    filename: str
    extension: str
    width: int
    height: int


def _validate_image_bytes(raw: bytes) -> tuple[str, int, int]:
    if len(raw) > MAX_SCREENSHOT_BYTES:
        raise ImageValidationError("File size exceeds 10MB limit")
    try:
        image = Image.open(io.BytesIO(raw))
        image.verify()
        image = Image.open(io.BytesIO(raw))
    except (UnidentifiedImageError, OSError):
        raise ImageValidationError("Only image files are allowed")
    fmt = (image.format or "").upper()
    if fmt not in FORMAT_EXTENSIONS:
        raise ImageValidationError("Only image files are allowed")
    width, height = image.size
    if width > MAX_DIMENSION or height > MAX_DIMENSION:
        raise ImageValidationError("Image dimensions are too large")
    return FORMAT_EXTENSIONS[fmt], width, height


def validate_upload(upload: FileStorage | None) -> ValidatedImage:
    """Check an uploaded screenshot: declared as an image, small enough, decodable."""
    if upload is None or not upload.filename:
        raise ImageValidationError("No file provided")
    mimetype = upload.mimetype or ""
    if not mimetype.startswith("image/"):
        raise ImageValidationError("Only image files are allowed")
    data = upload.read()
    extension, width, height = _validate_image_bytes(data)
    stem = secure_filename(upload.filename).rsplit(".", 1)[0] or "screenshot"
    return ValidatedImage(
        data=data,
        filename=f"{stem}.{extension}",
        extension=extension,
        width=width,
        height=height,
    )
