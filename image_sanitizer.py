"""
Validation of base64 card images received from the public exchange form.
"""
import re
import logging
from config import MIN_IMAGE_BASE64_LENGTH, MAX_IMAGE_BYTES
from scan_errors import InvalidImageFormat, ImageTooSmall, ImageTooLarge

logger = logging.getLogger(__name__)

DATA_URL_PREFIX = re.compile(r'^data:image/[a-zA-Z0-9.+-]+;base64,')
BASE64_PATTERN = re.compile(r'^[A-Za-z0-9+/]*={0,2}$')


def estimated_size(base64_payload: str) -> float:
    """Decoded byte size estimate for a base64 string"""
    return len(base64_payload) * 0.75


def sanitize_image(image_base64) -> str:
    """Strip any data-URL header and check the payload is a usable base64 image"""
    if not image_base64 or not isinstance(image_base64, str):
        raise InvalidImageFormat(
            f"Invalid image data: must be base64 string (got {type(image_base64).__name__})"
        )

    clean = DATA_URL_PREFIX.sub('', image_base64.strip(), count=1)

    if not BASE64_PATTERN.match(clean):
        raise InvalidImageFormat("Invalid base64 format")

    if len(clean) < MIN_IMAGE_BASE64_LENGTH:
        raise ImageTooSmall("Image data too small")

    size = estimated_size(clean)
    if size > MAX_IMAGE_BYTES:
        raise ImageTooLarge("Image too large (max 15MB)")

    logger.debug("Image validated: %d base64 chars, ~%d KB", len(clean), round(size / 1024))
    return clean
