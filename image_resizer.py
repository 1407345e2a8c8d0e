import logging
from io import BytesIO
from PIL import Image, UnidentifiedImageError

from api.error_utils import InvalidInput

logger = logging.getLogger(__name__)

# Formats Pillow writes for each upload mime type we re-encode.
_FORMATS = {
    'image/jpeg': 'JPEG',
    'image/jpg': 'JPEG',
    'image/png': 'PNG',
    'image/webp': 'WEBP',
}


def _open(image_bytes: bytes) -> Image.Image:
    try:
        img = Image.open(BytesIO(image_bytes))
        img.load()
        return img
    except (UnidentifiedImageError, Image.DecompressionBombError, OSError) as e:
        raise InvalidInput(f"El archivo no es una imagen válida: {e}") from e


def shrink_for_upload(image_bytes: bytes, mime_type: str, max_edge: int) -> tuple:
    """
    Downscale a user photo so its longest edge is at most `max_edge` pixels.
    Small images are returned untouched; unreadable payloads raise InvalidInput.

    Returns:
        Tuple of (image bytes, mime type) to send to the model
    """
    with _open(image_bytes) as img:
        if not (mime_type or "").startswith("image/"):
            mime_type = Image.MIME.get(img.format, "image/jpeg")
        if max(img.size) <= max_edge:
            return image_bytes, mime_type

        original_size = img.size
        img.thumbnail((max_edge, max_edge))

        target_mime = mime_type if mime_type in _FORMATS else 'image/jpeg'
        image_format = _FORMATS[target_mime]
        if image_format == 'JPEG' and img.mode not in ('RGB', 'L'):
            img = img.convert('RGB')

        output_buffer = BytesIO()
        img.save(output_buffer, format=image_format, quality=85)

    logger.info(f"Resized upload from {original_size} to {img.size} ({target_mime})")
    return output_buffer.getvalue(), target_mime


def ensure_png(image_bytes: bytes, mime_type: str = 'image/png') -> bytes:
    """Re-encode generated images as PNG so quiz images always share one format."""
    if mime_type == 'image/png':
        return image_bytes
    with _open(image_bytes) as img:
        output_buffer = BytesIO()
        img.save(output_buffer, format='PNG')
    logger.debug(f"Converted generated {mime_type} image to PNG")
    return output_buffer.getvalue()
