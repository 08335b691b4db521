"""Validate an uploaded image and turn it into a transport payload."""
import asyncio
import base64
import logging

from app.config import settings
from app.models.image import EncodedPayload, ImageAsset
from app.utils.exceptions import FileReadError, ValidationError

logger = logging.getLogger(__name__)


def _normalize_content_type(content_type: str | None) -> str:
    return (content_type or "").split(";", 1)[0].strip().lower()


def validate(filename: str | None, content_type: str | None, data: bytes) -> ImageAsset:
    """Return an ImageAsset for an `image/*` upload, or raise ValidationError.

    Only the declared content type is checked; the bytes are not sniffed.
    """
    mime_type = _normalize_content_type(content_type)
    if not mime_type.startswith("image/"):
        logger.info("Rejected upload %r with content type %r", filename, content_type)
        raise ValidationError()

    if not data:
        raise ValidationError("The uploaded image is empty.")

    if len(data) > settings.max_image_size_bytes:
        logger.info("Rejected upload %r: %d bytes exceeds limit", filename, len(data))
        raise ValidationError(
            f"The image is too large (max {settings.max_image_size_bytes // (1024 * 1024)} MB)."
        )

    return ImageAsset(filename=filename or "image", content_type=mime_type, data=data)


def _b64encode(data: bytes) -> str:
    return base64.b64encode(data).decode("ascii")


async def encode(asset: ImageAsset) -> EncodedPayload:
    """Read the asset into a base64 payload off the event loop."""
    if not asset.data:
        raise FileReadError()
    try:
        b64 = await asyncio.to_thread(_b64encode, bytes(asset.data))
    except (TypeError, ValueError) as e:
        logger.warning("Failed to encode image %r: %s", asset.filename, e)
        raise FileReadError() from e
    return EncodedPayload(mime_type=asset.content_type, base64_data=b64)
