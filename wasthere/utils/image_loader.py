"""Flyer image loading for the vision call.

Reads a flyer from disk, checks that Pillow can decode it, and downscales
oversized scans before they are base64-encoded into an LLM request.  Phone
photos of flyers are often 4000px+ on the long side; vision models read
flyer text just as well at 2048px and the request stays small.
"""

from __future__ import annotations

import io
from pathlib import Path

from PIL import Image, UnidentifiedImageError

from wasthere.models.flyer import FlyerImage
from wasthere.utils.errors import FlyerImageError

ALLOWED_EXTENSIONS = frozenset({".jpg", ".jpeg", ".png", ".gif", ".webp"})
MAX_FILE_SIZE = 10 * 1024 * 1024
MAX_IMAGE_DIM = 2048

_MIME_TYPES = {
    ".jpg": "image/jpeg",
    ".jpeg": "image/jpeg",
    ".png": "image/png",
    ".gif": "image/gif",
    ".webp": "image/webp",
}


def mime_type_for(path: str | Path) -> str:
    """Return the MIME type for a flyer file name, defaulting to JPEG."""
    return _MIME_TYPES.get(Path(path).suffix.lower(), "image/jpeg")


def load_flyer_image(path: str | Path, max_dim: int = MAX_IMAGE_DIM) -> FlyerImage:
    """Read and verify a flyer image, downscaling it if needed.

    Args:
        path: Image file on disk.
        max_dim: Largest allowed side in pixels; bigger images are
                 re-encoded as JPEG at that size.

    Returns:
        A :class:`FlyerImage` whose ``image_data`` holds the bytes to send.

    Raises:
        FlyerImageError: Unsupported extension, file too large, or bytes
            Pillow cannot decode.
        OSError: The file cannot be read.
    """
    image_path = Path(path)
    extension = image_path.suffix.lower()
    if extension not in ALLOWED_EXTENSIONS:
        allowed = ", ".join(sorted(ALLOWED_EXTENSIONS))
        raise FlyerImageError(f"Invalid file type '{extension}'. Allowed types: {allowed}")

    raw = image_path.read_bytes()
    if not raw:
        raise FlyerImageError(f"Flyer image is empty: {image_path.name}")
    if len(raw) > MAX_FILE_SIZE:
        raise FlyerImageError(
            f"File size exceeds maximum allowed size of {MAX_FILE_SIZE // 1024 // 1024}MB."
        )

    try:
        with Image.open(io.BytesIO(raw)) as img:
            img.load()
            width, height = img.size
            data = raw
            mime_type = mime_type_for(image_path)
            downscaled = False
            if max(width, height) > max_dim:
                # thumbnail() keeps the aspect ratio.
                resized = img.convert("RGB")
                resized.thumbnail((max_dim, max_dim))
                buffer = io.BytesIO()
                resized.save(buffer, format="JPEG", quality=95)
                data = buffer.getvalue()
                width, height = resized.size
                mime_type = "image/jpeg"
                downscaled = True
    except (UnidentifiedImageError, Image.DecompressionBombError) as exc:
        raise FlyerImageError(f"Cannot decode flyer image {image_path.name}: {exc}") from exc

    flyer = FlyerImage(
        path=str(image_path),
        file_name=image_path.name,
        mime_type=mime_type,
        size_bytes=len(data),
        width=width,
        height=height,
        downscaled=downscaled,
    )
    flyer.__pydantic_private__["_image_data"] = data
    return flyer
