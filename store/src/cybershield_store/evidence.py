"""Screenshot evidence intake."""

import base64
import io
import logging
from pathlib import Path

from PIL import Image, UnidentifiedImageError

from .errors import EvidenceTooLargeError, InvalidEvidenceError

logger = logging.getLogger(__name__)


def encode_image(img: Image.Image, max_side: int = 1600, quality: int = 80) -> str:
    """Downsize an image to fit max_side and return it as base64 JPEG."""
    img = img.convert("RGB")
    img.thumbnail((max_side, max_side))

    buffer = io.BytesIO()
    img.save(buffer, format="JPEG", quality=quality)
    return base64.b64encode(buffer.getvalue()).decode("ascii")


def load_evidence(
    path: Path,
    max_bytes: int = 2 * 1024 * 1024,
    max_side: int = 1600,
) -> str:
    """Read a screenshot from disk as base64 JPEG.

    Raises EvidenceTooLargeError for files over max_bytes and
    InvalidEvidenceError for files that are missing or are not images.
    """
    try:
        size = path.stat().st_size
        if size > max_bytes:
            raise EvidenceTooLargeError(size, max_bytes)
        with Image.open(path) as img:
            img.load()
            encoded = encode_image(img, max_side=max_side)
    except (UnidentifiedImageError, Image.DecompressionBombError, OSError) as e:
        raise InvalidEvidenceError(f"Could not read {path.name} as an image.") from e

    logger.debug("Loaded evidence %s (%d bytes -> %d chars)", path.name, size, len(encoded))
    return encoded
